"""Admission control for language-model calls."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from types import TracebackType
from typing import Callable, Deque

from leavebot.core.errors import AdmissionRejectedError, RateLimitedError
from leavebot.core.logging import get_logger
from leavebot.qa.conversations import LRUCache

logger = get_logger(__name__)


class AdmissionGate:
    """Caps in-flight answers; excess callers wait in FIFO order.

    At most ``max_waiting`` callers may queue; beyond that new callers are
    rejected with AdmissionRejectedError instead of waiting.
    """

    def __init__(self, capacity: int, max_waiting: int = 32) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.max_waiting = max_waiting
        self._in_flight = 0
        self._waiters: Deque[asyncio.Future[None]] = deque()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    async def acquire(self) -> None:
        if self._in_flight < self.capacity and not self._waiters:
            self._in_flight += 1
            return
        if len(self._waiters) >= self.max_waiting:
            raise AdmissionRejectedError(f"{len(self._waiters)} answers already queued")
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was handed over just before cancellation; pass it on.
                self._release_slot()
            else:
                self._waiters.remove(waiter)
            raise

    def release(self) -> None:
        self._release_slot()

    def _release_slot(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # The slot moves to the waiter; in_flight stays the same.
                waiter.set_result(None)
                return
        self._in_flight -= 1

    async def __aenter__(self) -> "AdmissionGate":
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


class SlidingWindowRateLimiter:
    """At most ``limit`` hits per key in any rolling ``window_seconds``."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        capacity: int = 10_000,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: LRUCache[str, Deque[float]] = LRUCache(capacity)

    def check(self, key: str) -> None:
        """Record a hit for ``key`` or raise RateLimitedError without recording."""
        now = self._clock()
        hits = self._hits.get_or_create(key, deque)
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if len(hits) >= self.limit:
            retry_after = hits[0] + self.window_seconds - now
            logger.warning("Rate limit hit", extra={"ctx_requester": key})
            raise RateLimitedError(key, retry_after=max(0.0, retry_after))
        hits.append(now)

    def remaining(self, key: str) -> int:
        hits = self._hits.get(key)
        if not hits:
            return self.limit
        cutoff = self._clock() - self.window_seconds
        return self.limit - sum(1 for ts in hits if ts > cutoff)


__all__ = ["AdmissionGate", "SlidingWindowRateLimiter"]
