"""
Tests for the EventQueue and the event sinks.
"""

import asyncio
import json

import httpx
import pytest
from unittest.mock import MagicMock

from conftest import NOW
from hubsync.models.event import OutboundEvent
from hubsync.services.crm_sync import EventQueue
from hubsync.services.sink import HttpGoalSink, LoggingSink, get_event_sink


def make_event(n: int) -> OutboundEvent:
    return OutboundEvent(
        action_name="Contact Updated",
        action_date=NOW,
        properties_key="userProperties",
        properties={"contact_score": n},
        identity=f"user{n}@example.com",
    )


async def settle():
    """Lets the consumer task stage everything pushed so far."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
class TestEventQueue:
    """Tests for ordered staging and size-triggered flushes."""

    async def test_flushes_full_batch_past_threshold(self, sink):
        """2001 pushes produce one flush of 2000 and leave one staged."""
        queue = EventQueue(sink, flush_threshold=2000)

        for n in range(2001):
            await queue.push(make_event(n))
        await settle()

        assert [len(batch) for batch in sink.batches] == [2000]
        assert queue.staged() == 1
        assert queue.length() == 0

        assert await queue.drain() is True
        assert [len(batch) for batch in sink.batches] == [2000, 1]
        assert sink.batches[1][0].properties["contact_score"] == 2000

    async def test_no_flush_at_exact_threshold(self, sink):
        queue = EventQueue(sink, flush_threshold=3)

        for n in range(3):
            await queue.push(make_event(n))
        await settle()

        assert sink.batches == []
        assert queue.staged() == 3

    async def test_preserves_push_order(self, sink):
        queue = EventQueue(sink, flush_threshold=3)

        for n in range(7):
            await queue.push(make_event(n))
        await queue.drain()

        assert [len(batch) for batch in sink.batches] == [3, 3, 1]
        assert [e.properties["contact_score"] for e in sink.events] == list(range(7))
        assert queue.pushed == 7
        assert queue.flushes == 3

    async def test_drain_empty_queue(self, sink):
        queue = EventQueue(sink)

        assert await queue.drain() is True
        assert sink.batches == []

    async def test_drain_twice(self, sink):
        """A second drain only flushes events pushed after the first."""
        queue = EventQueue(sink, flush_threshold=10)

        await queue.push(make_event(1))
        await queue.drain()
        assert await queue.drain() is True
        assert len(sink.batches) == 1

        await queue.push(make_event(2))
        await queue.drain()

        assert [len(batch) for batch in sink.batches] == [1, 1]

    async def test_sink_failure_does_not_stop_queue(self):
        """Sink errors are logged; the queue keeps going."""
        failing_sink = MagicMock()
        failing_sink.send.side_effect = RuntimeError("sink down")
        queue = EventQueue(failing_sink, flush_threshold=1)

        for n in range(3):
            await queue.push(make_event(n))

        assert await queue.drain() is True
        assert failing_sink.send.call_count == 3

    async def test_close_stops_consumer_and_flushes_pending(self, sink):
        """Events still in the channel are flushed in threshold-sized batches."""
        queue = EventQueue(sink, flush_threshold=2)

        for n in range(5):
            await queue.push(make_event(n))
        assert queue.active()

        await queue.close()

        assert not queue.active()
        assert [len(batch) for batch in sink.batches] == [2, 2, 1]
        assert [e.properties["contact_score"] for e in sink.events] == list(range(5))

    async def test_close_after_drain_is_noop(self, sink):
        queue = EventQueue(sink)

        await queue.push(make_event(1))
        await queue.drain()
        await queue.close()

        assert len(sink.batches) == 1


@pytest.mark.asyncio
class TestSinks:
    """Tests for the event sinks."""

    async def test_http_goal_sink_posts_payload(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        goal_sink = HttpGoalSink("https://goal.example.com/actions", api_key="key-1", client=client)

        goal_sink.send([make_event(1), make_event(2)])
        await goal_sink.aclose()

        assert len(requests) == 1
        assert requests[0]["apiKey"] == "key-1"
        assert [a["identity"] for a in requests[0]["actions"]] == ["user1@example.com", "user2@example.com"]

    async def test_http_goal_sink_logs_rejection(self, caplog):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        goal_sink = HttpGoalSink("https://goal.example.com/actions", client=client)

        goal_sink.send([make_event(1)])
        await goal_sink.aclose()

        assert "Goal endpoint rejected 1 actions: 500" in caplog.text


class TestSinkSelection:
    """Tests for choosing the sink from configuration."""

    def test_sink_selection(self, settings):
        assert isinstance(get_event_sink("key", settings), LoggingSink)

        settings.goal_url = "https://goal.example.com/actions"
        assert isinstance(get_event_sink("key", settings), HttpGoalSink)
