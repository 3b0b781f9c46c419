"""Turn a file list into per-metric counts."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence

from .globs import PathPredicate, compile_globs
from .models import CommitMetrics, ContentMetric, ExtensionMetric, MetricDefinition

ReadContent = Callable[[str], bytes]
AsyncContains = Callable[[str, str], Awaitable[bool]]  # (path, phrase) -> found


class MetricCalculator:
    """Measures extension and content metrics over a list of paths.

    Globs are compiled once per calculator. Counting is over distinct paths,
    so a path matched by several globs of one metric counts once.

    Example:
        >>> calculator = MetricCalculator([ExtensionMetric("ts", ("**.ts",))])
        >>> calculator.measure(["a.ts", "b.txt"], read_content=lambda path: b"")
        {'ts': 1}
    """

    def __init__(self, metrics: Sequence[MetricDefinition]):
        self.metrics = list(metrics)
        self._predicates: dict[str, PathPredicate] = {
            metric.name: compile_globs(metric.globs) for metric in self.metrics
        }

    @property
    def extension_metrics(self) -> list[ExtensionMetric]:
        return [metric for metric in self.metrics if isinstance(metric, ExtensionMetric)]

    @property
    def content_metrics(self) -> list[ContentMetric]:
        return [metric for metric in self.metrics if isinstance(metric, ContentMetric)]

    def matches(self, metric: MetricDefinition, path: str) -> bool:
        return self._predicates[metric.name](path)

    def content_candidates(self, paths: Iterable[str]) -> dict[str, list[ContentMetric]]:
        """Map each path to the content metrics whose globs select it."""
        candidates: dict[str, list[ContentMetric]] = {}
        for path in dict.fromkeys(paths):
            selected = [metric for metric in self.content_metrics if self.matches(metric, path)]
            if selected:
                candidates[path] = selected
        return candidates

    def measure(self, paths: Iterable[str], read_content: ReadContent) -> CommitMetrics:
        """Count matching files for every configured metric.

        Args:
            paths: Repository-relative POSIX paths present in one commit
            read_content: Returns a path's raw bytes; called at most once per path

        Returns:
            Metric name -> count, one entry per configured metric
        """
        unique_paths = list(dict.fromkeys(paths))
        metrics: CommitMetrics = {}

        for metric in self.extension_metrics:
            metrics[metric.name] = sum(1 for path in unique_paths if self.matches(metric, path))

        for metric in self.content_metrics:
            metrics[metric.name] = 0
        for path, selected in self.content_candidates(unique_paths).items():
            content = read_content(path)
            for metric in selected:
                if metric.needle in content:
                    metrics[metric.name] += 1

        return self._ordered(metrics)

    async def measure_async(self, paths: Iterable[str], contains: AsyncContains) -> CommitMetrics:
        """Like measure(), but content is answered by an async phrase query.

        Used when the tree is not materialized and every content check is an
        object-store lookup.
        """
        unique_paths = list(dict.fromkeys(paths))
        metrics: CommitMetrics = {}

        for metric in self.extension_metrics:
            metrics[metric.name] = sum(1 for path in unique_paths if self.matches(metric, path))

        checks = [
            (metric.name, contains(path, metric.phrase))
            for path, selected in self.content_candidates(unique_paths).items()
            for metric in selected
        ]
        found = await asyncio.gather(*(check for _, check in checks))
        for metric in self.content_metrics:
            metrics[metric.name] = 0
        for (name, _), hit in zip(checks, found):
            if hit:
                metrics[name] += 1

        return self._ordered(metrics)

    def _ordered(self, metrics: CommitMetrics) -> CommitMetrics:
        # Same key order as the configuration, whatever the computation order
        return {metric.name: metrics[metric.name] for metric in self.metrics}
