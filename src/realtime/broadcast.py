"""
Derby Rounds - Broadcast Channels

Push channels for round events. The orchestrator only sees the
BroadcastChannel protocol; failures inside a channel are logged and never
reach the lifecycle.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Protocol, Sequence

from supabase import AsyncClient

from src.realtime.events import EventPayload

logger = logging.getLogger(__name__)

Subscriber = Callable[[EventPayload], None | Awaitable[None]]


class BroadcastChannel(Protocol):
    """Anything that can push a round event to observers."""

    async def publish(self, payload: EventPayload) -> None: ...


class LocalBroadcast:
    """In-process fan-out to registered subscribers.

    Subscribers may be plain callables or coroutine functions. A failing
    subscriber is logged and skipped; the rest still receive the event.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, on_event: Subscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unregisters it."""
        self._subscribers.append(on_event)

        def unsubscribe() -> None:
            if on_event in self._subscribers:
                self._subscribers.remove(on_event)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, payload: EventPayload) -> None:
        for subscriber in list(self._subscribers):
            try:
                result = subscriber(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Subscriber failed on %s", payload.event.value)


class SupabaseBroadcast:
    """Publishes events as Supabase Realtime broadcast messages.

    The channel is joined lazily on first publish and rejoined after a
    failed send.
    """

    def __init__(self, client: AsyncClient, channel_name: str) -> None:
        self._client = client
        self._channel_name = channel_name
        self._channel: Any = None
        self._lock = asyncio.Lock()

    async def _ensure_channel(self) -> Any:
        async with self._lock:
            if self._channel is None:
                channel = self._client.channel(self._channel_name)
                await channel.subscribe(self._on_subscribe_state)
                self._channel = channel
                logger.info("Joined broadcast channel %s", self._channel_name)
            return self._channel

    def _on_subscribe_state(self, state: Any, error: Exception | None) -> None:
        """Log subscription state changes."""
        if error:
            logger.error("Broadcast channel %s error: %s", self._channel_name, error)
        else:
            logger.debug("Broadcast channel %s state: %s", self._channel_name, state)

    async def publish(self, payload: EventPayload) -> None:
        try:
            channel = await self._ensure_channel()
            await channel.send_broadcast(payload.event.value, payload.to_message())
        except Exception:
            logger.exception(
                "Broadcast of %s on %s failed", payload.event.value, self._channel_name
            )
            self._channel = None

    async def close(self) -> None:
        """Leave the channel."""
        channel, self._channel = self._channel, None
        if channel is None:
            return
        try:
            await self._client.remove_channel(channel)
        except Exception:
            logger.exception("Error leaving broadcast channel %s", self._channel_name)


class MultiBroadcast:
    """Publishes every event to several channels in order."""

    def __init__(self, channels: Sequence[BroadcastChannel]) -> None:
        self._channels = tuple(channels)

    async def publish(self, payload: EventPayload) -> None:
        for channel in self._channels:
            try:
                await channel.publish(payload)
            except Exception:
                logger.exception("Channel %r failed on %s", channel, payload.event.value)
