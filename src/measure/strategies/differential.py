"""Differential strategy: measure the oldest commit, then apply per-commit deltas.

The walk is a fold over the window, oldest to latest:

    metrics(0) = full snapshot of the oldest commit
    metrics(i) = metrics(i - 1) + delta(i)

where delta(i) is derived from commit i's change list alone. Deltas are
independent of each other and computed concurrently; only the fold is
sequential.
"""

from collections.abc import Awaitable

from common.logger import get_logger

from ..calculator import MetricCalculator
from ..errors import LookupError
from ..git_backend import GitBackend
from ..lookup_cache import PhraseLookupCache
from ..models import (
    ChangeStatus,
    CommitDetails,
    CommitMetrics,
    CommitWithMetrics,
    ContentMetric,
    FileChange,
)
from .full_snapshot import FullSnapshotStrategy, gather_all_or_nothing

logger = get_logger(__name__)


def paths_before_and_after(change: FileChange) -> tuple[str | None, str | None]:
    """Where a changed file lived in the parent commit and in this commit.

    A rename is a deletion of its source plus an addition of its destination.
    A copy leaves its source untouched, so only the destination counts.
    """
    if change.status == ChangeStatus.ADDED:
        return None, change.path
    if change.status == ChangeStatus.COPIED:
        return None, change.path
    if change.status == ChangeStatus.DELETED:
        return change.path, None
    if change.status == ChangeStatus.RENAMED:
        return change.previous_path, change.path
    # Modified / type change: same path on both sides
    return change.path, change.path


class DifferentialStrategy:
    """Derives every commit after the oldest from its file-change list.

    Must return exactly what FullSnapshotStrategy returns for the same
    commits. Only the oldest commit is materialized.
    """

    def __init__(
        self,
        backend: GitBackend,
        calculator: MetricCalculator,
        baseline: FullSnapshotStrategy,
        tolerate_lookup_errors: bool = False,
    ):
        self.backend = backend
        self.calculator = calculator
        self.baseline = baseline
        self.tolerate_lookup_errors = tolerate_lookup_errors

    async def calculate_metrics_for_commits(
        self, commits: list[CommitDetails]
    ) -> list[CommitWithMetrics]:
        if not commits:
            return []

        oldest, *later = list(reversed(commits))
        cache = PhraseLookupCache(self.backend)
        await self.backend.reset_scratch()
        logger.info("Differential measurement: 1 snapshot + %d deltas", len(later))

        oldest_measured, *deltas = await gather_all_or_nothing(
            [self.baseline.calculate_metrics_for_commit(oldest)]
            + [self.calculate_delta(commit, cache) for commit in later]
        )
        logger.debug("Phrase lookups: %d queried, %d reused", cache.misses, cache.hits)

        return self.accumulate(oldest_measured, list(zip(later, deltas)))

    def accumulate(
        self,
        oldest: CommitWithMetrics,
        later_with_deltas: list[tuple[CommitDetails, CommitMetrics]],
    ) -> list[CommitWithMetrics]:
        """Fold deltas onto the oldest metrics; returns latest first."""
        oldest_to_latest = [oldest]
        for commit, delta in later_with_deltas:
            previous = oldest_to_latest[-1].metrics
            current = {name: value + delta.get(name, 0) for name, value in previous.items()}
            negative = [name for name, value in current.items() if value < 0]
            if negative:
                logger.warning(
                    "Commit %s drove %s below zero; its change list was not fully modelled",
                    commit.hash[:10],
                    ", ".join(negative),
                )
            oldest_to_latest.append(CommitWithMetrics(commit=commit, metrics=current))
        return list(reversed(oldest_to_latest))

    async def calculate_delta(self, commit: CommitDetails, cache: PhraseLookupCache) -> CommitMetrics:
        """Net change of every metric caused by this commit alone."""
        delta: CommitMetrics = {metric.name: 0 for metric in self.calculator.metrics}
        contributions: list[tuple[str, Awaitable[int]]] = []

        for change in commit.changes:
            before, after = paths_before_and_after(change)

            # Modified files keep their path, so extension counts cannot move
            if before != after:
                for metric in self.calculator.extension_metrics:
                    if before is not None and self.calculator.matches(metric, before):
                        delta[metric.name] -= 1
                    if after is not None and self.calculator.matches(metric, after):
                        delta[metric.name] += 1

            for metric in self.calculator.content_metrics:
                tracked_before = self._tracked(metric, before)
                tracked_after = self._tracked(metric, after)
                if tracked_before is None and tracked_after is None:
                    continue
                contribution = self._content_contribution(
                    cache, metric, commit.hash, tracked_before, tracked_after
                )
                contributions.append((metric.name, contribution))

        if contributions:
            values = await gather_all_or_nothing(contribution for _, contribution in contributions)
            for (name, _), value in zip(contributions, values):
                delta[name] += value

        return delta

    def _tracked(self, metric: ContentMetric, path: str | None) -> str | None:
        if path is not None and self.calculator.matches(metric, path):
            return path
        return None

    async def _content_contribution(
        self,
        cache: PhraseLookupCache,
        metric: ContentMetric,
        commit_hash: str,
        before: str | None,
        after: str | None,
    ) -> int:
        """+1 if the phrase appeared, -1 if it vanished, 0 otherwise.

        `before` is looked up in the first parent, `after` in the commit
        itself; a side that is None does not exist (added or deleted file).
        """
        try:
            found_after = after is not None and await cache.contains_phrase(
                after, commit_hash, metric.phrase
            )
            found_before = before is not None and await cache.contains_phrase(
                before, f"{commit_hash}^", metric.phrase
            )
        except LookupError as e:
            if not self.tolerate_lookup_errors:
                raise
            logger.warning(
                "Phrase lookup failed in %s; metric %s gets no contribution from it: %s",
                commit_hash[:10],
                metric.name,
                e,
            )
            return 0
        return int(found_after) - int(found_before)
