"""
Remote-state cache for backend reads.

A read is described by a ``QueryDescriptor``: a cache key name, the values
the key depends on, the coroutine that fetches it and whether it may run at
all. Invalidation is always scoped to an exact key or to one key name.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, Optional, Sequence, Tuple, TypeVar

from tutorhub.config import settings
from tutorhub.utils.errors import AuthorizationFailed

logger = logging.getLogger(__name__)

T = TypeVar("T")
CacheKey = Tuple[Hashable, ...]


class QueryDescriptor(Generic[T]):

    __slots__ = ("cache_key", "dependencies", "fetch", "enabled", "stale_after")

    def __init__(
        self,
        cache_key: str,
        fetch: Callable[[], Awaitable[T]],
        *,
        dependencies: Sequence[Hashable] = (),
        enabled: bool = True,
        stale_after: Optional[float] = None,
    ):
        self.cache_key = cache_key
        self.dependencies = tuple(dependencies)
        self.fetch = fetch
        self.enabled = enabled
        self.stale_after = stale_after

    @property
    def key(self) -> CacheKey:
        return (self.cache_key, *self.dependencies)

    def __repr__(self) -> str:
        return f"QueryDescriptor(key={self.key!r}, enabled={self.enabled})"


class _Entry:
    __slots__ = ("value", "fetched_at")

    def __init__(self, value: Any, fetched_at: float):
        self.value = value
        self.fetched_at = fetched_at


class QueryCache:

    def __init__(
        self,
        stale_after: float = settings.QUERY_STALE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._stale_after = stale_after
        self._clock = clock
        self._entries: Dict[CacheKey, _Entry] = {}
        self._inflight: Dict[CacheKey, "asyncio.Future[Any]"] = {}
        self._generations: Dict[CacheKey, int] = {}

    async def fetch(self, descriptor: QueryDescriptor[T]) -> Optional[T]:
        if not descriptor.enabled:
            return None

        key = descriptor.key
        ttl = self._stale_after if descriptor.stale_after is None else descriptor.stale_after
        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry.fetched_at < ttl:
            return entry.value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, descriptor, self._generations.get(key, 0)))
            self._inflight[key] = task
            # Shielded so one cancelled waiter does not cancel the shared fetch.
            return await asyncio.shield(task)

        try:
            return await asyncio.shield(task)
        except AuthorizationFailed:
            # The shared fetch ran with another visitor's credentials; retry with ours.
            logger.info("Shared fetch of %r was rejected; fetching again for this caller", key)
            return await self._load(key, descriptor, self._generations.get(key, 0))

    async def _load(self, key: CacheKey, descriptor: QueryDescriptor[T], generation: int) -> T:
        try:
            value = await descriptor.fetch()
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                self._inflight.pop(key, None)
        # A mutation invalidated the key while we were fetching; the value may predate it.
        if self._generations.get(key, 0) == generation:
            self._entries[key] = _Entry(value, self._clock())
        return value

    def peek(self, cache_key: str, *dependencies: Hashable) -> Optional[Any]:
        entry = self._entries.get((cache_key, *dependencies))
        return entry.value if entry is not None else None

    def invalidate(self, cache_key: str, *dependencies: Hashable) -> None:
        """Drop exactly ``(cache_key, *dependencies)``."""
        self._drop((cache_key, *dependencies))

    def invalidate_all(self, cache_key: str) -> None:
        """Drop every entry stored under ``cache_key``, whatever its dependencies."""
        keys = {k for k in list(self._entries) + list(self._inflight) if k[0] == cache_key}
        for key in keys:
            self._drop(key)

    def _drop(self, key: CacheKey) -> None:
        self._entries.pop(key, None)
        self._inflight.pop(key, None)
        self._generations[key] = self._generations.get(key, 0) + 1
        logger.debug("Invalidated %r", key)

    def clear(self) -> None:
        for key in list(self._entries) + list(self._inflight):
            self._drop(key)
