"""
Derby Rounds - Broadcast Channel Tests
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.realtime.broadcast import LocalBroadcast, MultiBroadcast, SupabaseBroadcast
from src.realtime.events import EventPayload, RoundEvent


@pytest.fixture
def payload():
    return EventPayload(RoundEvent.ROUND_CREATED, round_id=3, data={"status": "OPEN"})


@pytest.fixture
def mock_channel():
    channel = MagicMock()
    channel.subscribe = AsyncMock()
    channel.send_broadcast = AsyncMock()
    return channel


@pytest.fixture
def mock_async_client(mock_channel):
    client = MagicMock()
    client.channel.return_value = mock_channel
    client.remove_channel = AsyncMock()
    return client


class TestLocalBroadcast:
    def test_sync_and_async_subscribers(self, payload):
        bus = LocalBroadcast()
        received = []

        async def async_sub(p):
            received.append(("async", p.event))

        bus.subscribe(lambda p: received.append(("sync", p.event)))
        bus.subscribe(async_sub)
        asyncio.run(bus.publish(payload))

        assert received == [("sync", RoundEvent.ROUND_CREATED), ("async", RoundEvent.ROUND_CREATED)]

    def test_failing_subscriber_is_isolated(self, payload):
        bus = LocalBroadcast()
        received = []

        def broken(_):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        asyncio.run(bus.publish(payload))

        assert received == [payload]

    def test_unsubscribe(self, payload):
        bus = LocalBroadcast()
        received = []
        unsubscribe = bus.subscribe(received.append)
        assert bus.subscriber_count == 1

        unsubscribe()
        unsubscribe()
        asyncio.run(bus.publish(payload))

        assert bus.subscriber_count == 0
        assert received == []


class TestSupabaseBroadcast:
    def test_joins_once_and_sends(self, mock_async_client, mock_channel, payload):
        bus = SupabaseBroadcast(mock_async_client, "race")

        async def scenario():
            await bus.publish(payload)
            await bus.publish(payload)

        asyncio.run(scenario())

        mock_async_client.channel.assert_called_once_with("race")
        mock_channel.subscribe.assert_awaited_once()
        assert mock_channel.send_broadcast.await_count == 2
        mock_channel.send_broadcast.assert_awaited_with(
            "round:created", {"status": "OPEN", "id": 3}
        )

    def test_send_failure_is_logged_and_channel_rejoined(
        self, mock_async_client, mock_channel, payload
    ):
        mock_channel.send_broadcast.side_effect = [ConnectionError("down"), None]
        bus = SupabaseBroadcast(mock_async_client, "race")

        async def scenario():
            await bus.publish(payload)
            await bus.publish(payload)

        asyncio.run(scenario())

        assert mock_async_client.channel.call_count == 2
        assert mock_channel.send_broadcast.await_count == 2

    def test_join_failure_does_not_raise(self, mock_async_client, mock_channel, payload):
        mock_channel.subscribe.side_effect = TimeoutError()
        bus = SupabaseBroadcast(mock_async_client, "race")

        asyncio.run(bus.publish(payload))

        mock_channel.send_broadcast.assert_not_awaited()

    def test_close(self, mock_async_client, mock_channel, payload):
        bus = SupabaseBroadcast(mock_async_client, "race")

        async def scenario():
            await bus.publish(payload)
            await bus.close()
            await bus.close()

        asyncio.run(scenario())

        mock_async_client.remove_channel.assert_awaited_once_with(mock_channel)


class TestMultiBroadcast:
    def test_fans_out_past_failures(self, payload):
        broken = MagicMock()
        broken.publish = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock()
        healthy.publish = AsyncMock()

        asyncio.run(MultiBroadcast([broken, healthy]).publish(payload))

        broken.publish.assert_awaited_once_with(payload)
        healthy.publish.assert_awaited_once_with(payload)
