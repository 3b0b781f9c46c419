"""Full-snapshot strategy: materialize every commit and scan it."""

import asyncio
from pathlib import Path

from common.logger import get_logger

from ..calculator import MetricCalculator
from ..git_backend import GitBackend
from ..materializer import list_files, read_snapshot_file
from ..models import CommitDetails, CommitSnapshot, CommitWithMetrics

logger = get_logger(__name__)


async def gather_all_or_nothing(coroutines) -> list:
    """Await coroutines concurrently; on the first failure cancel the rest and raise."""
    tasks = [asyncio.ensure_future(coroutine) for coroutine in coroutines]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class FullSnapshotStrategy:
    """Measures each commit independently from its extracted tree.

    This is the correctness baseline: every other strategy must reproduce its
    output. Cost is one archive, one extraction and one scan per commit.
    """

    def __init__(self, backend: GitBackend, calculator: MetricCalculator, snapshots_dir: Path):
        self.backend = backend
        self.calculator = calculator
        self.snapshots_dir = snapshots_dir

    async def calculate_metrics_for_commits(
        self, commits: list[CommitDetails]
    ) -> list[CommitWithMetrics]:
        if not commits:
            return []
        await self.backend.reset_scratch()
        logger.info("Full snapshot of %d commits", len(commits))
        return await gather_all_or_nothing(
            self.calculate_metrics_for_commit(commit) for commit in commits
        )

    async def calculate_metrics_for_commit(self, commit: CommitDetails) -> CommitWithMetrics:
        """Materialize, scan and discard one commit."""
        if not self.calculator.metrics:
            return CommitWithMetrics(commit=commit, metrics={})

        snapshot = await self.create_snapshot(commit)
        try:
            metrics = await asyncio.to_thread(self._measure_snapshot, snapshot)
        finally:
            await self.backend.discard(snapshot.clone_destination)

        logger.debug("%s %s", commit.hash[:10], metrics)
        return CommitWithMetrics(commit=commit, metrics=metrics)

    async def create_snapshot(self, commit: CommitDetails) -> CommitSnapshot:
        destination = self.snapshots_dir / commit.hash
        await self.backend.materialize(commit.hash, destination)
        return CommitSnapshot(commit=commit, clone_destination=destination)

    def _measure_snapshot(self, snapshot: CommitSnapshot):
        root = snapshot.clone_destination
        return self.calculator.measure(
            list_files(root),
            read_content=lambda path: read_snapshot_file(root, path),
        )
