"""In-process publish/subscribe for live message updates."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from leavebot.core.logging import get_logger

logger = get_logger(__name__)


class Subscription:
    """A subscriber's queue of events; iterate it to receive them."""

    def __init__(self, maxsize: int) -> None:
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> dict[str, Any]:
        return await self.queue.get()


class EventBus:
    def __init__(self, default_maxsize: int = 100) -> None:
        self.default_maxsize = default_maxsize
        self._subscribers: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, maxsize: int | None = None) -> Subscription:
        subscription = Subscription(maxsize or self.default_maxsize)
        self._subscribers.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscribers.discard(subscription)

    @asynccontextmanager
    async def listen(self, maxsize: int | None = None) -> AsyncIterator[Subscription]:
        """Subscribe for the duration of the block; always unsubscribes."""
        subscription = self.subscribe(maxsize)
        try:
            yield subscription
        finally:
            self.unsubscribe(subscription)

    def publish(self, event: dict[str, Any]) -> int:
        """Deliver to every subscriber without waiting; returns deliveries made."""
        delivered = 0
        for subscription in list(self._subscribers):
            try:
                subscription.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                subscription.dropped += 1
                logger.warning("Dropping event for slow subscriber (%s dropped)", subscription.dropped)
        return delivered


__all__ = ["EventBus", "Subscription"]
