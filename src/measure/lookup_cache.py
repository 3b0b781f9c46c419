"""Batch-scoped memo of phrase-containment lookups."""

import asyncio

from .git_backend import GitBackend

LookupKey = tuple[str, str, str]  # (path, revision, phrase)


class PhraseLookupCache:
    """Memoizes `contains_phrase` by (path, revision, phrase).

    Create one per batch and drop it afterwards; it is never shared across
    batches. Concurrent requests for the same key await one in-flight query,
    so overlapping metric definitions cost a single git call.
    """

    def __init__(self, backend: GitBackend):
        self.backend = backend
        self._pending: dict[LookupKey, asyncio.Future[bool]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._pending)

    async def contains_phrase(self, path: str, revision: str, phrase: str) -> bool:
        key = (path, revision, phrase)
        future = self._pending.get(key)
        if future is None:
            self.misses += 1
            future = asyncio.ensure_future(self.backend.contains_phrase(path, revision, phrase))
            self._pending[key] = future
        else:
            self.hits += 1
        # shield: one waiter being cancelled must not cancel the shared query
        return await asyncio.shield(future)
