"""
Derby Rounds - Service Wiring Tests
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

from src.app import attach_observer, build_orchestrator
from src.realtime.broadcast import LocalBroadcast, SupabaseBroadcast
from src.realtime.events import EventPayload, RoundEvent
from tests.conftest import make_settings


class TestBuildOrchestrator:
    def test_nothing_configured(self):
        local = LocalBroadcast()

        with patch("src.app.get_settings", return_value=make_settings()), \
             patch("src.app.get_supabase_client", return_value=None), \
             patch("src.app.create_async_supabase_client", AsyncMock(return_value=None)):
            orchestrator, remote = asyncio.run(build_orchestrator(local))

        assert remote is None
        assert orchestrator.config_view()["ledgerAvailable"] is False

    def test_supabase_configured(self):
        local = LocalBroadcast()

        with patch("src.app.get_settings", return_value=make_settings()), \
             patch("src.app.get_supabase_client", return_value=MagicMock()), \
             patch("src.app.create_async_supabase_client", AsyncMock(return_value=MagicMock())):
            _, remote = asyncio.run(build_orchestrator(local))

        assert isinstance(remote, SupabaseBroadcast)


class TestAttachObserver:
    def test_greets_then_subscribes(self):
        local = LocalBroadcast()
        orchestrator = MagicMock()
        orchestrator.state_event.return_value = EventPayload(
            RoundEvent.ROUND_STATE, data={"status": "WAITING"}
        )
        received = []

        async def scenario():
            unsubscribe = await attach_observer(orchestrator, local, received.append)
            await local.publish(EventPayload(RoundEvent.ROUND_CREATED, round_id=1))
            unsubscribe()
            await local.publish(EventPayload(RoundEvent.ROUND_LOCKED, round_id=1))

        asyncio.run(scenario())

        assert [p.event for p in received] == [RoundEvent.ROUND_STATE, RoundEvent.ROUND_CREATED]
