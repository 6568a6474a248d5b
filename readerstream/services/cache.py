"""Query cache, pending-request tracker and the stale-while-revalidate loader."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)

CacheKey = tuple[Hashable, ...]
Listener = Callable[[CacheKey], None]

STREAM_PREFIX: CacheKey = ("stream",)
COMMENTS = "comments"
REVIEWS = "reviews"
SHELVES = "shelves"


def feed_key(feed: str) -> CacheKey:
    return STREAM_PREFIX + (feed,)


class PendingRequestTracker:
    """At most one in-flight request per ``(kind, key)``.

    The registration is dropped as soon as the request settles, whatever the
    outcome, so a failed request can be retried by the next caller. Every
    awaiter of a shared request sees the same result or the same exception.
    """

    def __init__(self) -> None:
        self._pending: dict[tuple[str, Hashable], asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def track(self, kind: str, key: Hashable, awaitable: Awaitable[Any]) -> asyncio.Future:
        pair = (kind, key)
        task = asyncio.ensure_future(awaitable)
        self._pending[pair] = task

        def _cleanup(done: asyncio.Future) -> None:
            if self._pending.get(pair) is done:
                del self._pending[pair]

        task.add_done_callback(_cleanup)
        return task

    def get(self, kind: str, key: Hashable) -> asyncio.Future | None:
        return self._pending.get((kind, key))

    async def run(self, kind: str, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        task = self.get(kind, key)
        if task is None:
            task = self.track(kind, key, factory())
        else:
            logger.debug("Joining in-flight %s request for %s", kind, key)
        # One awaiter being cancelled must not cancel the shared request
        return await asyncio.shield(task)

    def forget(self, kind: str, key: Hashable) -> None:
        self._pending.pop((kind, key), None)


@dataclass(slots=True)
class CacheEntry:
    value: Any
    updated_at: float
    stale: bool = False


class QueryCache:
    """Keyed store of fetched values.

    Values are replaced wholesale, never mutated, so a reader holding an old
    value keeps a consistent snapshot.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._listeners: list[Listener] = []
        self._clock = clock

    def get(self, key: CacheKey, default: Any = None) -> Any:
        entry = self._entries.get(key)
        return default if entry is None else entry.value

    def get_entry(self, key: CacheKey) -> CacheEntry | None:
        return self._entries.get(key)

    def set(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, updated_at=self._clock())
        self._notify(key)

    def update(self, key: CacheKey, fn: Callable[[Any], Any]) -> None:
        """Replace the value at ``key`` with ``fn(value)``.

        An absent key is seeded from an empty tuple and marked stale, so the
        next load still goes to the server.
        """

        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = CacheEntry(value=fn(()), updated_at=self._clock(), stale=True)
            self._notify(key)
            return
        value = fn(entry.value)
        if value is entry.value:
            return
        self._entries[key] = CacheEntry(value=value, updated_at=entry.updated_at, stale=entry.stale)
        self._notify(key)

    def update_prefix(self, prefix: CacheKey, fn: Callable[[Any], Any]) -> None:
        for key in self.keys(prefix):
            self.update(key, fn)

    def invalidate(self, prefix: CacheKey) -> None:
        for key in self.keys(prefix):
            entry = self._entries[key]
            self._entries[key] = CacheEntry(value=entry.value, updated_at=entry.updated_at, stale=True)
            self._notify(key)

    def remove(self, prefix: CacheKey) -> None:
        for key in self.keys(prefix):
            del self._entries[key]

    def is_stale(self, key: CacheKey, max_age: float | None = None) -> bool:
        entry = self._entries.get(key)
        if entry is None or entry.stale:
            return True
        if max_age is None:
            return False
        return self._clock() - entry.updated_at > max_age

    def keys(self, prefix: CacheKey = ()) -> list[CacheKey]:
        size = len(prefix)
        return [key for key in self._entries if key[:size] == prefix]

    def listen(self, callback: Listener) -> Callable[[], None]:
        self._listeners.append(callback)

        def dispose() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return dispose

    def _notify(self, key: CacheKey) -> None:
        for listener in list(self._listeners):
            try:
                listener(key)
            except Exception:
                logger.exception("Cache listener failed for %s", key)


class ResourceCache:
    """Comments, reviews and shelf lists with stale-while-revalidate loading."""

    def __init__(
        self,
        *,
        queries: QueryCache | None = None,
        pending: PendingRequestTracker | None = None,
        stale_after: float = 30.0,
    ) -> None:
        self.queries = queries or QueryCache()
        self.pending = pending or PendingRequestTracker()
        self.stale_after = stale_after

    async def load(self, kind: str, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for ``(kind, key)``, fetching when needed.

        A fresh hit returns immediately. A stale hit also returns immediately
        while a refresh runs in the background. A miss awaits the (shared)
        request.
        """

        cache_key = (kind, key)
        entry = self.queries.get_entry(cache_key)

        async def fetch_and_store() -> Any:
            value = await fetch()
            self.queries.set(cache_key, value)
            return value

        if entry is None:
            return await self.pending.run(kind, key, fetch_and_store)
        if not self.queries.is_stale(cache_key, self.stale_after):
            return entry.value
        if self.pending.get(kind, key) is None:
            logger.debug("Refreshing stale %s for %s", kind, key)
            task = self.pending.track(kind, key, fetch_and_store())
            task.add_done_callback(_log_refresh_failure)
        return entry.value

    async def refresh(self, kind: str, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Fetch regardless of freshness, sharing any request already in flight."""

        cache_key = (kind, key)

        async def fetch_and_store() -> Any:
            value = await fetch()
            self.queries.set(cache_key, value)
            return value

        return await self.pending.run(kind, key, fetch_and_store)

    def clear_book(self, book_id: str) -> None:
        """Drop a book's comments and reviews and the shelf list, pending requests included."""

        for kind, key in ((COMMENTS, book_id), (REVIEWS, book_id), (SHELVES, None)):
            self.queries.remove((kind, key))
            self.pending.forget(kind, key)


def _log_refresh_failure(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Background refresh failed: %s", exc)


__all__ = [
    "CacheEntry",
    "CacheKey",
    "COMMENTS",
    "PendingRequestTracker",
    "QueryCache",
    "ResourceCache",
    "REVIEWS",
    "SHELVES",
    "STREAM_PREFIX",
    "feed_key",
]
