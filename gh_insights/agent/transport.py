"""Minimal publish/subscribe interface and an in-process implementation."""

import asyncio
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

ISSUES_TOPIC = "github-issues"
TAGS_TOPIC = "issue-tags"
REPORTS_TOPIC = "summary-reports"

# Terminal marker delivered to each subscriber when its topic closes
_STREAM_CLOSED = object()


class Subscription(Protocol):
    """Async iterator over a topic's events, ending when the stream closes."""

    topic: str

    def __aiter__(self) -> "Subscription": ...

    async def __anext__(self) -> Any: ...

    def unsubscribe(self) -> None: ...


class EventTransport(Protocol):
    """Named-topic event transport with per-publisher ordering."""

    async def publish(self, topic: str, event: Any) -> None: ...

    def subscribe(self, topic: str) -> Subscription: ...


class QueueSubscription:
    """Subscription backed by an unbounded ``asyncio.Queue``."""

    def __init__(self, transport: "InMemoryTransport", topic: str):
        self.topic = topic
        self._transport = transport
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._finished = False

    def __aiter__(self) -> "QueueSubscription":
        return self

    async def __anext__(self) -> Any:
        if self._finished:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is _STREAM_CLOSED:
            self._finished = True
            raise StopAsyncIteration
        return event

    def deliver(self, event: Any) -> None:
        self._queue.put_nowait(event)

    def close(self) -> None:
        self._queue.put_nowait(_STREAM_CLOSED)

    def unsubscribe(self) -> None:
        """Stop receiving events. Events already delivered are still yielded."""
        self._transport.remove(self)


class InMemoryTransport:
    """Process-local transport: every subscriber gets every event, in order."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[QueueSubscription]] = {}

    async def publish(self, topic: str, event: Any) -> None:
        subscribers = self._subscribers.get(topic, [])
        if not subscribers:
            logger.debug(f"No subscribers on {topic}, event dropped")
        for subscription in subscribers:
            subscription.deliver(event)

    def subscribe(self, topic: str) -> QueueSubscription:
        subscription = QueueSubscription(self, topic)
        self._subscribers.setdefault(topic, []).append(subscription)
        return subscription

    def remove(self, subscription: QueueSubscription) -> None:
        subscribers = self._subscribers.get(subscription.topic, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
            subscription.close()

    def close(self, topic: str) -> None:
        """Send the stream-closed signal to every subscriber of a topic."""
        for subscription in self._subscribers.pop(topic, []):
            subscription.close()

    def close_all(self) -> None:
        for topic in list(self._subscribers):
            self.close(topic)
