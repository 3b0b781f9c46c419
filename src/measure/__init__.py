"""Measure file-count metrics across a repository's commit history.

Example:
    >>> from measure import MeasurementConfig, measure_commits
    >>>
    >>> config = MeasurementConfig.from_dict({
    ...     "repositoryPath": "/repos/app",
    ...     "trackByFileExtension": {"ts": ["**.ts", "**.tsx"]},
    ...     "trackByFileContent": {"todo": {"globs": ["**.ts"], "phrase": "TODO"}},
    ...     "strategy": "differential",
    ... })
    >>> results = measure_commits(config)
    >>> results[0].metrics
    {'ts': 42, 'todo': 7}
"""

import asyncio

from .config import ContentRule, MeasurementConfig, StrategyType, load_config
from .errors import (
    ConfigurationError,
    EmptyArchiveError,
    LookupError,
    MaterializationError,
    MeasurementError,
    OracleError,
)
from .models import (
    ChangeStatus,
    CommitDetails,
    CommitMetrics,
    CommitWithMetrics,
    ContentMetric,
    ExtensionMetric,
    FileChange,
)
from .service import MeasurementService


def measure_commits(config: MeasurementConfig) -> list[CommitWithMetrics]:
    """Synchronous convenience wrapper around MeasurementService.run()."""
    return asyncio.run(MeasurementService(config).run())


__all__ = [
    # Service
    "MeasurementService",
    "measure_commits",
    # Configuration
    "MeasurementConfig",
    "ContentRule",
    "StrategyType",
    "load_config",
    # Models
    "ChangeStatus",
    "CommitDetails",
    "CommitMetrics",
    "CommitWithMetrics",
    "ContentMetric",
    "ExtensionMetric",
    "FileChange",
    # Errors
    "MeasurementError",
    "ConfigurationError",
    "OracleError",
    "MaterializationError",
    "EmptyArchiveError",
    "LookupError",
]
