"""Tests for admission control, rate limiting, conversations and events."""

from __future__ import annotations

import asyncio

import pytest

from leavebot.api.routes_query import event_stream
from leavebot.core.errors import AdmissionRejectedError, RateLimitedError
from leavebot.qa.concurrency import AdmissionGate, SlidingWindowRateLimiter
from leavebot.qa.conversations import Conversation, ConversationStore, LRUCache
from leavebot.qa.events import EventBus


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_gate_caps_in_flight_and_admits_fifo() -> None:
    gate = AdmissionGate(2, max_waiting=10)
    running = 0
    peak = 0
    order: list[int] = []
    release = asyncio.Event()

    async def worker(n: int) -> None:
        nonlocal running, peak
        async with gate:
            order.append(n)
            running += 1
            peak = max(peak, running)
            await release.wait()
            running -= 1

    tasks = [asyncio.create_task(worker(n)) for n in range(6)]
    await asyncio.sleep(0)
    assert gate.in_flight == 2
    assert gate.waiting == 4
    release.set()
    await asyncio.gather(*tasks)

    assert peak == 2
    assert order == list(range(6))
    assert gate.in_flight == 0
    assert gate.waiting == 0


@pytest.mark.asyncio
async def test_gate_rejects_when_queue_full() -> None:
    gate = AdmissionGate(1, max_waiting=1)
    await gate.acquire()
    waiter = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0)

    with pytest.raises(AdmissionRejectedError):
        await gate.acquire()

    gate.release()
    await waiter
    assert gate.in_flight == 1
    gate.release()
    assert gate.in_flight == 0


@pytest.mark.asyncio
async def test_cancelled_waiter_leaves_queue() -> None:
    gate = AdmissionGate(1, max_waiting=5)
    await gate.acquire()
    waiter = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0)
    assert gate.waiting == 1

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert gate.waiting == 0

    gate.release()
    assert gate.in_flight == 0


def test_gate_requires_positive_capacity() -> None:
    with pytest.raises(ValueError):
        AdmissionGate(0)


def test_rate_limiter_sliding_window() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(3, 60.0, clock=clock)

    for _ in range(3):
        limiter.check("alice")
    assert limiter.remaining("alice") == 0
    with pytest.raises(RateLimitedError) as excinfo:
        limiter.check("alice")
    assert excinfo.value.retry_after == pytest.approx(60.0)

    limiter.check("bob")

    clock.now += 60.0
    limiter.check("alice")
    assert limiter.remaining("alice") == 2


def test_rejected_hits_are_not_counted() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(1, 10.0, clock=clock)
    limiter.check("alice")
    clock.now += 5
    with pytest.raises(RateLimitedError):
        limiter.check("alice")
    clock.now += 5
    limiter.check("alice")


def test_lru_cache_evicts_least_recently_used() -> None:
    cache: LRUCache[str, int] = LRUCache(2)
    cache.put("a", 1)
    cache.put("b", 2)
    assert cache.get("a") == 1
    cache.put("c", 3)
    assert "b" not in cache
    assert "a" in cache and "c" in cache
    assert len(cache) == 2


def test_conversation_store_bounded_and_keyed() -> None:
    store = ConversationStore(capacity=2, history=4)
    first = store.get("C1", "U1")
    assert store.get("C1", "U1") is first
    store.get("C1", "U2")
    store.get("C2", "U1")
    assert ("C1", "U1") not in store
    assert len(store) == 2


def test_conversation_keeps_recent_messages() -> None:
    conversation = Conversation(history=4)
    assert conversation.contextualize("hi") == "hi"
    for n in range(3):
        conversation.record(f"q{n}", f"a{n}")
    assert [message.content for message in conversation.messages] == ["q1", "a1", "q2", "a2"]
    assert "user: q1\nassistant: a1\nuser: q2\nassistant: a2" in conversation.contextualize("q3")


@pytest.mark.asyncio
async def test_event_bus_fan_out_and_cleanup() -> None:
    bus = EventBus()
    async with bus.listen() as first, bus.listen() as second:
        assert bus.publish({"answer": "ok"}) == 2
        assert await first.__anext__() == {"answer": "ok"}
        assert second.queue.get_nowait() == {"answer": "ok"}
    assert bus.subscriber_count == 0
    assert bus.publish({"answer": "nobody"}) == 0


def test_slow_subscriber_drops_events() -> None:
    bus = EventBus()
    subscription = bus.subscribe(maxsize=1)
    assert bus.publish({"n": 1}) == 1
    assert bus.publish({"n": 2}) == 0
    assert subscription.dropped == 1
    bus.unsubscribe(subscription)
    assert bus.subscriber_count == 0


@pytest.mark.asyncio
async def test_event_stream_subscribes_only_while_iterated() -> None:
    bus = EventBus()
    stream = event_stream(bus)
    assert bus.subscriber_count == 0

    pending = asyncio.create_task(stream.__anext__())
    await asyncio.sleep(0)
    assert bus.subscriber_count == 1
    bus.publish({"answer": "ok"})

    assert await pending == b'event: message\ndata: {"answer":"ok"}\n\n'
    await stream.aclose()
    assert bus.subscriber_count == 0
