"""Tree-query strategy: measure every commit straight from the object store."""

from common.logger import get_logger

from ..calculator import MetricCalculator
from ..git_backend import GitBackend
from ..lookup_cache import PhraseLookupCache
from ..models import CommitDetails, CommitWithMetrics
from .full_snapshot import gather_all_or_nothing

logger = get_logger(__name__)


class TreeQueryStrategy:
    """Lists each commit's tree and asks git for phrase containment per file.

    Nothing is extracted to disk. Like the full snapshot, every commit is
    measured independently, so the two must agree exactly.
    """

    def __init__(self, backend: GitBackend, calculator: MetricCalculator):
        self.backend = backend
        self.calculator = calculator

    async def calculate_metrics_for_commits(
        self, commits: list[CommitDetails]
    ) -> list[CommitWithMetrics]:
        if not commits:
            return []
        cache = PhraseLookupCache(self.backend)
        logger.info("Tree query of %d commits", len(commits))
        return await gather_all_or_nothing(
            self.calculate_metrics_for_commit(commit, cache) for commit in commits
        )

    async def calculate_metrics_for_commit(
        self, commit: CommitDetails, cache: PhraseLookupCache
    ) -> CommitWithMetrics:
        if not self.calculator.metrics:
            return CommitWithMetrics(commit=commit, metrics={})

        paths = await self.backend.list_paths(commit.hash)

        async def contains(path: str, phrase: str) -> bool:
            return await cache.contains_phrase(path, commit.hash, phrase)

        metrics = await self.calculator.measure_async(paths, contains)
        return CommitWithMetrics(commit=commit, metrics=metrics)
