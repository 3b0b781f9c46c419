"""The measurement-strategy capability."""

from typing import Protocol, runtime_checkable

from ..models import CommitDetails, CommitWithMetrics


@runtime_checkable
class MeasurementStrategy(Protocol):
    """Anything that turns commits into metrics.

    Implementations receive commits latest first and must return one
    CommitWithMetrics per commit, in the same order, or raise. Returning a
    partial list is never allowed.
    """

    async def calculate_metrics_for_commits(
        self, commits: list[CommitDetails]
    ) -> list[CommitWithMetrics]: ...
