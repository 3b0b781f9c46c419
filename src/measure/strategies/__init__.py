"""Measurement strategies and the factory that picks one."""

from pathlib import Path

from ..calculator import MetricCalculator
from ..config import MeasurementConfig, StrategyType
from ..errors import ConfigurationError
from ..git_backend import GitBackend
from .base import MeasurementStrategy
from .differential import DifferentialStrategy
from .full_snapshot import FullSnapshotStrategy
from .tree_query import TreeQueryStrategy


def create_strategy(
    config: MeasurementConfig,
    backend: GitBackend,
    snapshots_dir: Path | None = None,
) -> MeasurementStrategy:
    """Build the strategy selected by `config.strategy`.

    Args:
        config: Validated measurement configuration
        backend: Object-store port the strategy talks to
        snapshots_dir: Where snapshots are extracted (default: from config)

    Raises:
        ConfigurationError: If the strategy is unknown
    """
    calculator = MetricCalculator(config.metrics)
    snapshots_dir = snapshots_dir or config.snapshots_dir

    if config.strategy == StrategyType.FULL_SNAPSHOT:
        return FullSnapshotStrategy(backend, calculator, snapshots_dir)

    elif config.strategy == StrategyType.DIFFERENTIAL:
        return DifferentialStrategy(
            backend,
            calculator,
            baseline=FullSnapshotStrategy(backend, calculator, snapshots_dir),
            tolerate_lookup_errors=config.tolerate_lookup_errors,
        )

    elif config.strategy == StrategyType.TREE_QUERY:
        return TreeQueryStrategy(backend, calculator)

    else:
        raise ConfigurationError(f"Unsupported strategy: {config.strategy}")


__all__ = [
    "create_strategy",
    "MeasurementStrategy",
    "FullSnapshotStrategy",
    "DifferentialStrategy",
    "TreeQueryStrategy",
]
