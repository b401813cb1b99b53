"""Tests for the in-memory event transport."""

import asyncio

import pytest

from gh_insights.agent.transport import ISSUES_TOPIC, TAGS_TOPIC, InMemoryTransport


async def _drain(subscription) -> list:
    return [event async for event in subscription]


class TestInMemoryTransport:
    """Test publish/subscribe behaviour."""

    @pytest.mark.asyncio
    async def test_delivers_in_publish_order(self) -> None:
        transport = InMemoryTransport()
        subscription = transport.subscribe(ISSUES_TOPIC)

        for i in range(5):
            await transport.publish(ISSUES_TOPIC, i)
        transport.close(ISSUES_TOPIC)

        assert await _drain(subscription) == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_every_subscriber_gets_every_event(self) -> None:
        transport = InMemoryTransport()
        first = transport.subscribe(TAGS_TOPIC)
        second = transport.subscribe(TAGS_TOPIC)

        await transport.publish(TAGS_TOPIC, "a")
        transport.close_all()

        assert await _drain(first) == ["a"]
        assert await _drain(second) == ["a"]

    @pytest.mark.asyncio
    async def test_topics_are_independent(self) -> None:
        transport = InMemoryTransport()
        issues = transport.subscribe(ISSUES_TOPIC)
        tags = transport.subscribe(TAGS_TOPIC)

        await transport.publish(ISSUES_TOPIC, "issue")
        transport.close_all()

        assert await _drain(issues) == ["issue"]
        assert await _drain(tags) == []

    @pytest.mark.asyncio
    async def test_publish_without_subscribers(self) -> None:
        transport = InMemoryTransport()
        await transport.publish(ISSUES_TOPIC, "dropped")

        subscription = transport.subscribe(ISSUES_TOPIC)
        transport.close(ISSUES_TOPIC)
        assert await _drain(subscription) == []

    @pytest.mark.asyncio
    async def test_unsubscribe_ends_stream(self) -> None:
        transport = InMemoryTransport()
        subscription = transport.subscribe(ISSUES_TOPIC)

        await transport.publish(ISSUES_TOPIC, "before")
        subscription.unsubscribe()
        await transport.publish(ISSUES_TOPIC, "after")

        assert await _drain(subscription) == ["before"]

    @pytest.mark.asyncio
    async def test_iteration_waits_for_events(self) -> None:
        """Test that a consumer blocks until events or the close signal arrive."""
        transport = InMemoryTransport()
        subscription = transport.subscribe(ISSUES_TOPIC)
        consumer = asyncio.create_task(_drain(subscription))

        await asyncio.sleep(0)
        assert not consumer.done()

        await transport.publish(ISSUES_TOPIC, "late")
        transport.close(ISSUES_TOPIC)
        assert await asyncio.wait_for(consumer, timeout=1) == ["late"]

    @pytest.mark.asyncio
    async def test_closed_stream_stays_closed(self) -> None:
        transport = InMemoryTransport()
        subscription = transport.subscribe(ISSUES_TOPIC)
        transport.close(ISSUES_TOPIC)

        assert await _drain(subscription) == []
        assert await _drain(subscription) == []
