"""
Derby Rounds - Round Lifecycle Orchestrator

Runs rounds back to back:

    CREATING -> OPEN -> LOCKED -> RUNNING -> SETTLED -> COOLDOWN -> CREATING
                  \\-> CANCELLED (no bets) -> CREATING

The seed commitment is broadcast before the bet desk opens, the winner is
resolved only after betting locks, and the seed is revealed only after the
animation wait. Ledger and persistence failures degrade the round; any other
error aborts the cycle, is broadcast as ``round:error`` and the loop starts
over. The loop never exits on its own.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
import time
from collections import deque
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Sequence

from pydantic import ValidationError

from src.config.settings import Settings
from src.database.history import RoundHistoryStore
from src.database.models import RoundRecord
from src.engine.base import Competitor, RoundStatus
from src.engine.probability import ProbabilityModel
from src.engine.resolver import OutcomeResolver
from src.engine.roster import ROSTER
from src.engine.seed import SeedCommitment
from src.engine.trajectory import TrajectorySynthesizer
from src.exceptions import (
    BetRejection,
    CommitmentMismatch,
    LedgerCallFailed,
    LedgerUnavailable,
    PersistenceUnavailable,
)
from src.ledger.gateway import LedgerGateway
from src.orchestrator.bets import BetDesk, BetRequest, BetResult
from src.orchestrator.capability import Available, Capability, Unavailable
from src.orchestrator.round import Round
from src.realtime.broadcast import BroadcastChannel
from src.realtime.events import EventPayload, RoundEvent

logger = logging.getLogger(__name__)

ROUND_ERROR_MESSAGE = "Race encountered an error. Next race starting soon..."
SKIP_MESSAGE = "No bets placed. Starting a new race..."
MISMATCH_MESSAGE = "Revealed seed does not match the published commitment. Settlement halted."

_LEDGER_ERRORS = (LedgerUnavailable, LedgerCallFailed)


class Phase(Enum):
    """What the orchestrator is doing right now."""
    IDLE = "IDLE"
    CREATING = "CREATING"
    OPEN = "OPEN"
    LOCKED = "LOCKED"
    RUNNING = "RUNNING"
    SETTLED = "SETTLED"
    COOLDOWN = "COOLDOWN"
    CANCELLED = "CANCELLED"
    ERROR = "ERROR"


class RoundOrchestrator:
    """Drives one round at a time, forever."""

    def __init__(
        self,
        settings: Settings,
        broadcast: BroadcastChannel,
        ledger: Capability[LedgerGateway],
        store: Capability[RoundHistoryStore],
        roster: Sequence[Competitor] = ROSTER,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._broadcast = broadcast
        self._ledger = ledger
        self._store = store
        self._roster = tuple(roster)
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock

        self._round: Round | None = None
        self._history: deque[RoundRecord] = deque(maxlen=settings.history_size)
        self._quarantined: set[int] = set()
        self._last_local_id = 0
        self._stopping = False
        self.phase = Phase.IDLE

        self._desk = BetDesk(
            min_bet=settings.min_bet,
            max_bet=settings.max_bet,
            num_participants=len(self._roster),
            on_accepted=self._on_bet_accepted,
            clock=clock,
        )

    # -- Loop ------------------------------------------------------------

    async def run(self, max_cycles: int | None = None) -> None:
        """Run cycles until stopped (or ``max_cycles`` have completed)."""
        logger.info(
            "Round loop starting (ledger %s, history store %s)",
            "available" if isinstance(self._ledger, Available) else "unavailable",
            "available" if isinstance(self._store, Available) else "unavailable",
        )
        cycles = 0
        while not self._stopping and (max_cycles is None or cycles < max_cycles):
            await self.run_cycle()
            cycles += 1
        logger.info("Round loop stopped after %d cycles", cycles)

    def stop(self) -> None:
        """Finish the current cycle, then leave ``run``."""
        self._stopping = True

    async def run_cycle(self) -> Round | None:
        """Run one round to a terminal state. Returns None if the cycle failed."""
        try:
            round_, deadline = await self._create_round()
            await self._collect_bets(round_, deadline)

            if round_.bet_count == 0:
                await self._cancel(round_)
                return round_

            await self._lock(round_)
            await self._race(round_)
            await self._settle(round_)
            await self._cooldown()
            return round_
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Round cycle failed")
            self.phase = Phase.ERROR
            await self._publish(RoundEvent.ROUND_ERROR, None, {"message": ROUND_ERROR_MESSAGE})
            await self._sleep_ms(self._settings.error_delay_ms)
            return None

    # -- Stages ----------------------------------------------------------

    async def _create_round(self) -> tuple[Round, float]:
        self.phase = Phase.CREATING
        seed = SeedCommitment.generate_seed()
        commitment = SeedCommitment.commit(seed)
        round_id, on_ledger = await self._obtain_round_id(commitment)

        round_ = Round.create(
            round_id, seed, on_ledger, len(self._roster), commitment=commitment
        )
        self._round = round_
        await self._persist(round_, None)

        # Announced while still CREATING; betting opens once the commitment is out.
        deadline = self._now_ms() + self._settings.bet_window_ms
        await self._publish(RoundEvent.ROUND_CREATED, round_.id, {
            "id": round_.id,
            "status": RoundStatus.OPEN.value,
            "participants": [c.to_dict() for c in self._roster],
            "openDeadline": deadline,
            "commitmentHash": round_.commitment_hex,
        })
        logger.info(
            "Round %s announced - betting for %ss%s",
            round_.id,
            self._settings.bet_window_ms / 1000,
            "" if on_ledger else " (local only)",
        )
        return round_, deadline

    async def _obtain_round_id(self, commitment: bytes) -> tuple[int, bool]:
        if isinstance(self._ledger, Available):
            try:
                round_id = await self._ledger.handle.create_round(commitment)
                logger.info("Round %s created on ledger", round_id)
                return round_id, True
            except _LEDGER_ERRORS as exc:
                logger.error("Ledger createRound failed, running round locally: %s", exc)
        else:
            logger.debug("Ledger unavailable (%s), using local round id", self._ledger.reason)
        return self._next_local_id(), False

    async def _collect_bets(self, round_: Round, deadline: float) -> None:
        round_.open(deadline)
        self._desk.open(round_)
        self.phase = Phase.OPEN
        countdown = asyncio.create_task(self._countdown(round_))
        try:
            await self._sleep_ms(self._settings.bet_window_ms)
        finally:
            countdown.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await countdown
            await self._desk.close()

    async def _countdown(self, round_: Round) -> None:
        while True:
            await self._publish(RoundEvent.ROUND_COUNTDOWN, round_.id, {
                "remaining": max(0.0, round_.open_deadline - self._now_ms()),
                "totalPool": round_.total_pool,
                "betCount": round_.bet_count,
            })
            await self._sleep_ms(self._settings.countdown_interval_ms)

    async def _cancel(self, round_: Round) -> None:
        round_.advance(RoundStatus.CANCELLED)
        self.phase = Phase.CANCELLED
        logger.info("Round %s - no bets, skipping", round_.id)
        await self._persist(round_, None)
        await self._publish(RoundEvent.ROUND_SKIPPED, round_.id, {"message": SKIP_MESSAGE})
        await self._sleep_ms(self._settings.skip_delay_ms)

    async def _lock(self, round_: Round) -> None:
        round_.advance(RoundStatus.LOCKED)
        self.phase = Phase.LOCKED

        if round_.on_ledger and isinstance(self._ledger, Available):
            try:
                await self._ledger.handle.lock_round(round_.id)
                logger.info("Round %s locked on ledger", round_.id)
            except _LEDGER_ERRORS as exc:
                logger.error("Ledger lockRound failed for round %s: %s", round_.id, exc)

        await self._publish(RoundEvent.ROUND_LOCKED, round_.id, {"id": round_.id})
        logger.info("Round %s LOCKED with %d bets", round_.id, round_.bet_count)
        await self._sleep_ms(self._settings.lock_delay_ms)

    async def _race(self, round_: Round) -> None:
        round_.advance(RoundStatus.RUNNING)
        self.phase = Phase.RUNNING

        distribution = await self._bet_distribution(round_)
        probabilities = ProbabilityModel.compute_probabilities(distribution, self._roster)
        outcome = OutcomeResolver.determine_winner(
            round_.revealed_seed, round_.id, probabilities
        )
        trajectory = TrajectorySynthesizer.generate(
            outcome.winner, self._settings.race_duration_ms, self._roster, self._rng
        )
        round_.set_outcome(outcome, trajectory)

        await self._publish(RoundEvent.ROUND_STARTED, round_.id, {
            "trajectory": [t.to_dict() for t in trajectory],
            "duration": self._settings.race_duration_ms,
        })
        await self._sleep_ms(self._settings.race_duration_ms + self._settings.result_buffer_ms)

        winner = self._roster[outcome.winner]
        await self._publish(RoundEvent.ROUND_RESULT, round_.id, {
            "winner": outcome.winner,
            "winnerName": winner.name,
            "winnerColor": winner.color,
            "probabilities": list(outcome.probabilities),
            "derivedValue": outcome.derived_value,
            "seed": SeedCommitment.to_hex(round_.revealed_seed),
            "commitmentHash": round_.commitment_hex,
        })

    async def _bet_distribution(self, round_: Round) -> tuple[float, ...]:
        local = round_.bet_distribution()
        if not round_.on_ledger or isinstance(self._ledger, Unavailable):
            return local

        ledger = self._ledger.handle
        try:
            pools = [
                await ledger.get_round_participant_pool(round_.id, index)
                for index in range(len(self._roster))
            ]
        except _LEDGER_ERRORS as exc:
            logger.warning(
                "Ledger pool unavailable for round %s, using local pool: %s", round_.id, exc
            )
            return local
        return tuple(pools)

    async def _settle(self, round_: Round) -> None:
        round_.advance(RoundStatus.SETTLED)
        self.phase = Phase.SETTLED

        try:
            await self._settle_on_ledger(round_)
        except CommitmentMismatch as exc:
            self._quarantined.add(round_.id)
            round_.settlement_fault = "COMMITMENT_MISMATCH"
            logger.critical("Fairness check failed for round %s: %s", round_.id, exc)
            await self._publish(RoundEvent.ROUND_ERROR, round_.id, {
                "message": MISMATCH_MESSAGE,
                "code": "COMMITMENT_MISMATCH",
            })
            await self._persist(round_, None)
            return

        record = round_.to_record(self._roster)
        self._history.appendleft(record)
        await self._persist(round_, record)
        await self._publish(RoundEvent.ROUND_SETTLED, round_.id, {"id": round_.id})
        logger.info("Round %s SETTLED", round_.id)

    async def _settle_on_ledger(self, round_: Round) -> None:
        if not round_.seed_matches_commitment():
            raise CommitmentMismatch(round_.id)
        if not round_.on_ledger or isinstance(self._ledger, Unavailable):
            return
        try:
            await self._ledger.handle.settle_round(
                round_.id, round_.winner, round_.revealed_seed
            )
            logger.info("Round %s settled on ledger", round_.id)
        except _LEDGER_ERRORS as exc:
            logger.error("Ledger settleRound failed for round %s: %s", round_.id, exc)

    async def _persist(self, round_: Round, record: RoundRecord | None) -> None:
        if isinstance(self._store, Unavailable):
            return
        store = self._store.handle
        try:
            await asyncio.to_thread(store.save_snapshot, round_.to_snapshot())
            if record is not None:
                await asyncio.to_thread(store.append_history, record)
        except PersistenceUnavailable as exc:
            logger.debug("History store unavailable for round %s: %s", round_.id, exc)

    async def _cooldown(self) -> None:
        self.phase = Phase.COOLDOWN
        remaining = self._settings.cooldown_ms
        logger.info("Next round in %ss", remaining / 1000)
        while True:
            await self._publish(RoundEvent.ROUND_COOLDOWN, None, {"nextRoundIn": remaining})
            if remaining <= 0:
                return
            step = min(self._settings.countdown_interval_ms, remaining)
            await self._sleep_ms(step)
            remaining -= step

    # -- Bets ------------------------------------------------------------

    async def submit_bet(self, request: BetRequest | Mapping[str, Any]) -> BetResult:
        """Accept a bet for the open round, or say why not."""
        if not isinstance(request, BetRequest):
            try:
                request = BetRequest.model_validate(request)
            except ValidationError as exc:
                return BetResult.rejected(BetRejection.MALFORMED_REQUEST, str(exc))

        result = await self._desk.submit(request)
        if not result.success:
            logger.info(
                "Bet from %s... rejected: %s",
                request.participant_address[:8],
                result.error_reason.value if result.error_reason else "unknown",
            )
        return result

    async def _on_bet_accepted(self, round_: Round) -> None:
        await self._publish(RoundEvent.BET_UPDATE, round_.id, {
            "totalPool": round_.total_pool,
            "betCount": round_.bet_count,
        })

    # -- Queries ---------------------------------------------------------

    def current_state(self) -> dict[str, Any]:
        """Snapshot of the live round for newly connected observers."""
        if self._round is None:
            return {"status": "WAITING", "message": "No race active"}
        state = self._round.public_state(self._roster)
        state["phase"] = self.phase.value
        return state

    def state_event(self) -> EventPayload:
        """``round:state`` greeting for an observer that just subscribed."""
        round_id = self._round.id if self._round else None
        return EventPayload(event=RoundEvent.ROUND_STATE, round_id=round_id, data=self.current_state())

    async def history(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Recently settled rounds, newest first."""
        limit = limit or self._settings.history_query_limit
        if self._history:
            return [r.to_public() for r in list(self._history)[:limit]]
        if isinstance(self._store, Available):
            try:
                records = await asyncio.to_thread(self._store.handle.recent, limit)
                return [r.to_public() for r in records]
            except PersistenceUnavailable as exc:
                logger.debug("History store unavailable: %s", exc)
        return []

    def roster(self) -> list[dict[str, Any]]:
        return [c.to_dict(include_stats=True) for c in self._roster]

    def config_view(self) -> dict[str, Any]:
        return {
            "numParticipants": len(self._roster),
            "betWindowMs": self._settings.bet_window_ms,
            "raceDurationMs": self._settings.race_duration_ms,
            "minBet": self._settings.min_bet,
            "maxBet": self._settings.max_bet,
            "ledgerAvailable": isinstance(self._ledger, Available),
        }

    @property
    def current_round(self) -> Round | None:
        return self._round

    @property
    def accepting_bets(self) -> bool:
        return self._desk.is_open

    @property
    def quarantined_rounds(self) -> frozenset[int]:
        return frozenset(self._quarantined)

    # -- Helpers ---------------------------------------------------------

    async def _publish(self, event: RoundEvent, round_id: int | None, data: dict[str, Any]) -> None:
        try:
            await self._broadcast.publish(EventPayload(event=event, round_id=round_id, data=data))
        except Exception:
            logger.exception("Broadcast of %s failed", event.value)

    async def _sleep_ms(self, ms: float) -> None:
        await self._sleep(ms / 1000)

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _next_local_id(self) -> int:
        self._last_local_id = max(int(self._now_ms()), self._last_local_id + 1)
        return self._last_local_id
