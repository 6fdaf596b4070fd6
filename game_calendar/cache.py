"""
Coalescing TTL cache in front of the per-game pipelines.

``CoalescingTtlCache.get_or_set(key, ttl_seconds, producer)``:
  - a live entry is returned without calling ``producer``;
  - if a production for ``key`` is already running, the caller awaits that
    same task instead of starting another one;
  - otherwise ``producer`` runs once; success is stored with
    ``expires_at = now + ttl``, failure is propagated to every waiter and
    nothing is stored (an expired value is never served on error);
  - the in-flight marker is removed once the task settles, win or lose.

Exactly-one-producer relies on the liveness check and the in-flight
registration running without an ``await`` in between, which holds on a
single asyncio event loop. Sharing one instance across threads would need a
lock around that section.

One instance per process, owned by ``CalendarService``; tests build their own.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A stored value and the monotonic instant it stops being fresh."""

    value: T
    expires_at: float


class CoalescingTtlCache:
    """In-process TTL cache with request coalescing.

    Args:
        clock: Monotonic seconds source; injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._store: dict[str, CacheEntry[Any]] = {}
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    async def get_or_set(
        self,
        key: str,
        ttl_seconds: float,
        producer: Callable[[], Awaitable[T]],
    ) -> T:
        entry = self._store.get(key)
        if entry is not None and entry.expires_at > self._clock():
            return entry.value

        task = self._inflight.get(key)
        if task is None:
            logger.debug("Cache miss for %s; starting producer", key)
            task = asyncio.ensure_future(self._produce(key, ttl_seconds, producer))
            self._inflight[key] = task
        else:
            logger.debug("Cache miss for %s; joining in-flight producer", key)

        # shield: one cancelled waiter must not cancel the shared production.
        return await asyncio.shield(task)

    async def _produce(
        self,
        key: str,
        ttl_seconds: float,
        producer: Callable[[], Awaitable[T]],
    ) -> T:
        try:
            value = await producer()
            self._store[key] = CacheEntry(value, self._clock() + ttl_seconds)
            return value
        finally:
            self._inflight.pop(key, None)

    def peek(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` without producing, else ``None``."""
        entry = self._store.get(key)
        if entry is not None and entry.expires_at > self._clock():
            return entry.value
        return None

    def invalidate(self, key: str) -> None:
        """Drop the stored value for ``key``; an in-flight production is left alone."""
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
