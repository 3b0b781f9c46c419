"""Measurement facade: configuration in, latest-first commit metrics out."""

from common.logger import get_logger

from .commands import CommandRunner
from .config import MeasurementConfig
from .errors import MeasurementError, OracleError
from .git_backend import GitBackend, GitCliBackend
from .globs import quote_globs
from .materializer import TreeMaterializer
from .models import CommitDetails, CommitWithMetrics
from .oracle import CommitOracle, CommitQuery, GitLogOracle
from .strategies import MeasurementStrategy, create_strategy

logger = get_logger(__name__)


def build_file_filter(config: MeasurementConfig) -> str | None:
    """Oracle prefilter: every tracked glob, single-quoted, space-separated.

    None when nothing is tracked, so the oracle returns every commit.
    """
    globs = config.tracked_globs
    return quote_globs(globs) if globs else None


def filter_commits(commits: list[CommitDetails], ignore_modified_only: bool) -> list[CommitDetails]:
    """Drop commits whose every change is a plain modification."""
    if not ignore_modified_only:
        return commits
    return [commit for commit in commits if not commit.is_modified_only]


class MeasurementService:
    """Resolves configuration, fetches and filters commits, runs a strategy.

    Example:
        >>> config = MeasurementConfig(
        ...     repository_path=Path("/repos/app"),
        ...     track_by_file_extension={"ts": ["**.ts"]},
        ...     strategy="differential",
        ... )
        >>> results = await MeasurementService(config).run()
    """

    def __init__(
        self,
        config: MeasurementConfig,
        oracle: CommitOracle | None = None,
        backend: GitBackend | None = None,
    ):
        self.config = config
        self.runner = CommandRunner(
            timeout=config.subprocess_timeout,
            max_concurrency=config.max_concurrency,
        )
        self.oracle = oracle or GitLogOracle(self.runner)
        self.backend = backend or GitCliBackend(
            config.repository_path,
            self.runner,
            TreeMaterializer(
                config.repository_path,
                config.archives_dir,
                self.runner,
                archive_format=config.archive_format,
            ),
        )

    @property
    def ignore_modified_only_commits(self) -> bool:
        """Modified-only commits can change content metrics, so never skip them then."""
        return self.config.ignore_modified_only_commits and not self.config.has_content_metrics

    def build_query(self) -> CommitQuery:
        return CommitQuery(
            repository_path=self.config.repository_path,
            since=self.config.commits_since,
            until=self.config.commits_until,
            max_count=self.config.max_commits_count,
            file_filter=build_file_filter(self.config),
        )

    def create_strategy(self) -> MeasurementStrategy:
        return create_strategy(self.config, self.backend)

    async def get_commits(self) -> list[CommitDetails]:
        try:
            return await self.oracle.get_commits(self.build_query())
        except MeasurementError:
            raise
        except Exception as e:
            raise OracleError(f"Commit oracle failed: {e}") from e

    async def run(self) -> list[CommitWithMetrics]:
        """Measure the configured window.

        Returns:
            One CommitWithMetrics per retained commit, latest first

        Raises:
            MeasurementError: The first failure; no partial list is returned
        """
        commits = await self.get_commits()

        if self.config.ignore_modified_only_commits and self.config.has_content_metrics:
            logger.warning(
                "Ignoring modified-only commits is disabled while content metrics are tracked"
            )
        retained = filter_commits(commits, self.ignore_modified_only_commits)
        logger.info(
            "Measuring %d of %d commits in %s with the %s strategy",
            len(retained),
            len(commits),
            self.config.repository_name,
            self.config.strategy.value,
        )

        strategy = self.create_strategy()
        return await strategy.calculate_metrics_for_commits(retained)
