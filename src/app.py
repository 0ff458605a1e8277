"""
Derby Rounds - Service Entrypoint

Wires settings, logging, the optional ledger and Supabase collaborators,
and runs the round loop until interrupted. Transport layers attach through
``attach_observer`` and call ``RoundOrchestrator.submit_bet``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Callable

from src.config import configure_logging, get_settings
from src.database.client import create_async_supabase_client, get_supabase_client
from src.database.history import RoundHistoryStore
from src.ledger.web3_gateway import Web3LedgerGateway
from src.orchestrator import RoundOrchestrator, capability_of
from src.realtime.broadcast import LocalBroadcast, MultiBroadcast, Subscriber, SupabaseBroadcast

logger = logging.getLogger(__name__)


async def build_orchestrator(local: LocalBroadcast) -> tuple[RoundOrchestrator, SupabaseBroadcast | None]:
    """Assemble the orchestrator from configured collaborators."""
    settings = get_settings()

    ledger = capability_of(
        Web3LedgerGateway.from_settings(settings),
        "ledger contract address or owner key not configured",
    )

    client = get_supabase_client()
    store = capability_of(
        RoundHistoryStore(client, settings.history_size) if client is not None else None,
        "Supabase not configured",
    )

    remote: SupabaseBroadcast | None = None
    async_client = await create_async_supabase_client()
    if async_client is not None:
        remote = SupabaseBroadcast(async_client, settings.broadcast_channel)
    broadcast = MultiBroadcast([local, remote]) if remote else local

    orchestrator = RoundOrchestrator(settings, broadcast, ledger, store)
    return orchestrator, remote


async def attach_observer(
    orchestrator: RoundOrchestrator, local: LocalBroadcast, on_event: Subscriber
) -> Callable[[], None]:
    """Subscribe an observer, greeting it with the current round state first."""
    result = on_event(orchestrator.state_event())
    if inspect.isawaitable(result):
        await result
    return local.subscribe(on_event)


async def serve() -> None:
    """Run the round loop forever."""
    local = LocalBroadcast()
    orchestrator, remote = await build_orchestrator(local)
    try:
        await orchestrator.run()
    finally:
        if remote is not None:
            await remote.close()


def main() -> None:
    """Application entrypoint."""
    settings = get_settings()
    configure_logging(settings)
    logger.info("Derby Rounds starting")
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Derby Rounds stopped")


if __name__ == "__main__":
    main()
