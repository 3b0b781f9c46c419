"""Measurement configuration.

One MeasurementConfig is built and validated once, then handed to every
component. Nothing below the entry point reads the environment.
"""

import hashlib
import json
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from common.constants import ARCHIVE_FORMATS, ARCHIVES_DIRNAME, SNAPSHOTS_DIRNAME

from .errors import ConfigurationError
from .models import ContentMetric, ExtensionMetric, MetricDefinition


class StrategyType(str, Enum):
    """Supported measurement strategies."""

    FULL_SNAPSHOT = "full-snapshot"
    DIFFERENTIAL = "differential"
    TREE_QUERY = "tree-query"


@dataclass
class ContentRule:
    """Globs selecting candidate files plus the phrase they must contain."""

    globs: list[str]
    phrase: str


@dataclass
class MeasurementConfig:
    """Validated configuration for one measurement run.

    Attributes:
        repository_path: Git repository to measure (required)
        max_commits_count: Upper bound on commits returned by the oracle
        commits_since: Oldest commit date accepted (git date syntax)
        commits_until: Newest commit date accepted (git date syntax)
        track_by_file_extension: Metric name -> globs
        track_by_file_content: Metric name -> ContentRule
        strategy: Strategy used to compute metrics
        ignore_modified_only_commits: Drop commits that only modify files;
            honoured only without content metrics
        tolerate_lookup_errors: Differential only; a failed phrase lookup
            contributes 0 to its metric instead of failing the batch
        scratch_root: Directory for archives and extracted snapshots
        archive_format: 'tar' or 'zip'
        subprocess_timeout: Deadline in seconds for each external process
        max_concurrency: Maximum number of simultaneous external processes
    """

    repository_path: Path
    max_commits_count: int | None = None
    commits_since: str | None = None
    commits_until: str | None = None
    track_by_file_extension: dict[str, list[str]] = field(default_factory=dict)
    track_by_file_content: dict[str, ContentRule] = field(default_factory=dict)
    strategy: StrategyType | str = StrategyType.DIFFERENTIAL
    ignore_modified_only_commits: bool = False
    tolerate_lookup_errors: bool = False
    scratch_root: Path | None = None
    archive_format: str = "tar"
    subprocess_timeout: float = 120.0
    max_concurrency: int = 8

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.repository_path or not str(self.repository_path).strip():
            raise ConfigurationError("repository_path is required")
        self.repository_path = Path(self.repository_path).expanduser().resolve()

        if isinstance(self.strategy, str) and not isinstance(self.strategy, StrategyType):
            try:
                self.strategy = StrategyType(self.strategy.lower())
            except ValueError as e:
                raise ConfigurationError(
                    f"Unsupported strategy: {self.strategy}. "
                    f"Must be one of: {', '.join(s.value for s in StrategyType)}"
                ) from e

        self.archive_format = self.archive_format.lower()
        if self.archive_format not in ARCHIVE_FORMATS:
            raise ConfigurationError(
                f"Unsupported archive format: {self.archive_format}. "
                f"Must be one of: {', '.join(sorted(ARCHIVE_FORMATS))}"
            )

        if self.max_commits_count is not None and self.max_commits_count <= 0:
            raise ConfigurationError("max_commits_count must be positive")
        if self.subprocess_timeout <= 0:
            raise ConfigurationError("subprocess_timeout must be positive")
        if self.max_concurrency <= 0:
            raise ConfigurationError("max_concurrency must be positive")

        self.track_by_file_content = {
            name: _content_rule(name, rule) for name, rule in self.track_by_file_content.items()
        }
        duplicates = set(self.track_by_file_extension) & set(self.track_by_file_content)
        if duplicates:
            raise ConfigurationError(
                f"Metric names must be unique across extension and content metrics: "
                f"{', '.join(sorted(duplicates))}"
            )
        for name, rule in self.track_by_file_content.items():
            if not rule.phrase:
                raise ConfigurationError(f"Content metric '{name}' needs a non-empty phrase")

        if self.scratch_root is None:
            self.scratch_root = Path(tempfile.gettempdir()) / "git-measure"
        self.scratch_root = Path(self.scratch_root).expanduser().resolve()

    @property
    def repository_name(self) -> str:
        return self.repository_path.name

    @property
    def scratch_dir(self) -> Path:
        """Per-repository scratch directory, e.g. `<scratch_root>/app-1a2b3c4d`.

        The suffix hashes the resolved path, so same-named repositories in
        different places never share (and never reset) each other's archives.
        """
        encoded = str(self.repository_path).encode("utf-8", errors="surrogateescape")
        digest = hashlib.sha1(encoded).hexdigest()[:8]
        return self.scratch_root / f"{self.repository_name}-{digest}"

    @property
    def archives_dir(self) -> Path:
        return self.scratch_dir / ARCHIVES_DIRNAME

    @property
    def snapshots_dir(self) -> Path:
        return self.scratch_dir / SNAPSHOTS_DIRNAME

    @property
    def has_content_metrics(self) -> bool:
        return bool(self.track_by_file_content)

    @property
    def metrics(self) -> list[MetricDefinition]:
        """All metric definitions, extension metrics first, in configured order."""
        definitions: list[MetricDefinition] = [
            ExtensionMetric(name=name, globs=tuple(globs))
            for name, globs in self.track_by_file_extension.items()
        ]
        definitions.extend(
            ContentMetric(name=name, globs=tuple(rule.globs), phrase=rule.phrase)
            for name, rule in self.track_by_file_content.items()
        )
        return definitions

    @property
    def tracked_globs(self) -> list[str]:
        """Every glob of every metric, first occurrence order, no duplicates."""
        globs = [glob for metric in self.metrics for glob in metric.globs]
        return list(dict.fromkeys(globs))

    @classmethod
    def from_dict(cls, data: dict[str, Any], **defaults: Any) -> "MeasurementConfig":
        """Build a config from the JSON configuration surface.

        Keys may be camelCase (`repositoryPath`, `trackByFileExtension`, ...)
        or snake_case. `defaults` fill in anything the mapping leaves out.

        Example:
            >>> MeasurementConfig.from_dict({
            ...     "repositoryPath": "/repos/app",
            ...     "trackByFileExtension": {"ts": ["**.ts"]},
            ...     "strategy": "full-snapshot",
            ... })
        """
        values = dict(defaults)
        for key, value in data.items():
            name = _CAMEL_TO_FIELD.get(key, key)
            if name not in _FIELDS:
                raise ConfigurationError(f"Unknown configuration key: {key}")
            values[name] = value
        if "repository_path" not in values:
            raise ConfigurationError("repositoryPath is required")
        return cls(**values)


def _content_rule(name: str, rule: Any) -> ContentRule:
    if isinstance(rule, ContentRule):
        return rule
    try:
        return ContentRule(globs=list(rule["globs"]), phrase=str(rule["phrase"]))
    except (KeyError, TypeError) as e:
        raise ConfigurationError(
            f"Content metric '{name}' needs 'globs' and 'phrase'"
        ) from e


_FIELDS = set(MeasurementConfig.__dataclass_fields__)

_CAMEL_TO_FIELD = {
    "repositoryPath": "repository_path",
    "maxCommitsCount": "max_commits_count",
    "commitsSince": "commits_since",
    "commitsUntil": "commits_until",
    "trackByFileExtension": "track_by_file_extension",
    "trackByFileContent": "track_by_file_content",
    "ignoreModifiedOnlyCommits": "ignore_modified_only_commits",
    "ignoreModifiedFiles": "ignore_modified_only_commits",
    "tolerateLookupErrors": "tolerate_lookup_errors",
    "scratchRoot": "scratch_root",
    "archiveFormat": "archive_format",
    "subprocessTimeout": "subprocess_timeout",
    "maxConcurrency": "max_concurrency",
}


def env_defaults() -> dict[str, Any]:
    """Defaults taken from the environment (and .env), for entry points only."""
    from common.env import env

    return {
        "scratch_root": env.scratch_dir(),
        "archive_format": env.archive_format(),
        "subprocess_timeout": env.subprocess_timeout(),
        "max_concurrency": env.max_concurrency(),
    }


def load_config(path: Path, **overrides: Any) -> MeasurementConfig:
    """Load a JSON configuration file.

    Args:
        path: JSON file holding the configuration mapping
        overrides: snake_case values that win over the file (None is ignored)

    Raises:
        ConfigurationError: If the file is missing, unparsable, or invalid
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {path} must be a JSON object")

    data.update({key: value for key, value in overrides.items() if value is not None})
    return MeasurementConfig.from_dict(data, **env_defaults())
