"""
Derby Rounds - Bet Desk

Single point through which every bet reaches a round. Callers validate
eagerly and hand their bet to one writer task through a queue; only the
writer touches the round's pool, so concurrent submissions cannot lose
updates. Closing the desk drains what was already queued before the writer
stops.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field

from src.engine.validators import validate_bet_amount, validate_participant_id
from src.exceptions import BetRejected, BetRejection
from src.orchestrator.round import Round
from src.realtime.events import EventPayload, RoundEvent

logger = logging.getLogger(__name__)


class BetRequest(BaseModel):
    """Inbound bet notification."""

    participant_address: str = Field(default="", alias="participantAddress")
    participant_id: int = Field(alias="participantId")
    amount: float
    tx_ref: str | None = Field(default=None, alias="txRef")
    round_id: int | None = Field(default=None, alias="roundId")

    model_config = {"populate_by_name": True}


@dataclass(frozen=True)
class BetResult:
    """Outcome of a bet submission."""

    success: bool
    round_id: int | None = None
    error_reason: BetRejection | None = None
    detail: str | None = None
    tx_ref: str | None = None

    @classmethod
    def accepted(cls, round_id: int, tx_ref: str | None = None) -> BetResult:
        return cls(success=True, round_id=round_id, tx_ref=tx_ref)

    @classmethod
    def rejected(cls, reason: BetRejection, detail: str | None = None) -> BetResult:
        return cls(success=False, error_reason=reason, detail=detail)

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            data: dict[str, Any] = {"success": True, "roundId": self.round_id}
            if self.tx_ref:
                data["txRef"] = self.tx_ref
            return data
        return {
            "success": False,
            "error": self.error_reason.value if self.error_reason else "Bet rejected",
        }

    def to_event(self) -> EventPayload:
        """Reply for the submitting caller (bet:confirmed or bet:error)."""
        event = RoundEvent.BET_CONFIRMED if self.success else RoundEvent.BET_ERROR
        return EventPayload(event=event, round_id=self.round_id, data=self.to_dict())


_Pending = tuple[BetRequest, "asyncio.Future[BetResult]"]


class BetDesk:
    """Serializes bet writes into the currently open round."""

    def __init__(
        self,
        min_bet: float,
        max_bet: float,
        num_participants: int,
        on_accepted: Callable[[Round], Awaitable[None]] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._min_bet = min_bet
        self._max_bet = max_bet
        self._num_participants = num_participants
        self._on_accepted = on_accepted
        self._clock = clock
        self._round: Round | None = None
        self._queue: asyncio.Queue[_Pending | None] | None = None
        self._writer: asyncio.Task[None] | None = None
        self._accepting = False

    @property
    def is_open(self) -> bool:
        return self._accepting

    def open(self, round_: Round) -> None:
        """Start accepting bets for ``round_``."""
        if self._writer is not None:
            raise RuntimeError("Bet desk is already open")
        self._round = round_
        self._queue = asyncio.Queue()
        self._writer = asyncio.create_task(self._write_loop(round_, self._queue))
        self._accepting = True
        logger.debug("Bet desk open for round %s", round_.id)

    async def close(self) -> None:
        """Stop accepting, apply everything already queued, stop the writer."""
        if self._writer is None or self._queue is None:
            return
        self._accepting = False
        self._queue.put_nowait(None)
        try:
            await self._writer
        finally:
            round_id = self._round.id if self._round else None
            self._writer = None
            self._queue = None
            self._round = None
            logger.debug("Bet desk closed for round %s", round_id)

    async def submit(self, request: BetRequest) -> BetResult:
        """Validate a bet and hand it to the writer."""
        try:
            self._precheck(request)
        except BetRejected as exc:
            return BetResult.rejected(exc.reason, exc.detail)

        round_ = self._round
        future: asyncio.Future[BetResult] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((request, future))
        result = await future

        if result.success and self._on_accepted is not None:
            await self._on_accepted(round_)
        return result

    def _precheck(self, request: BetRequest) -> None:
        # no awaits here: checking _accepting and enqueueing must not interleave with close()
        round_ = self._round
        if not self._accepting or round_ is None or not round_.is_open:
            raise BetRejected(BetRejection.ROUND_NOT_OPEN)
        if self._clock() * 1000 > round_.open_deadline:
            raise BetRejected(BetRejection.ROUND_NOT_OPEN, "Betting window has closed")
        if request.round_id is not None and request.round_id != round_.id:
            raise BetRejected(
                BetRejection.ROUND_MISMATCH,
                f"Bet for round {request.round_id}, current round is {round_.id}",
            )
        try:
            validate_participant_id(request.participant_id, self._num_participants)
        except ValueError as exc:
            raise BetRejected(BetRejection.INVALID_PARTICIPANT, str(exc)) from exc
        try:
            validate_bet_amount(request.amount, self._min_bet, self._max_bet)
        except ValueError as exc:
            raise BetRejected(BetRejection.AMOUNT_OUT_OF_BOUNDS, str(exc)) from exc

    async def _write_loop(self, round_: Round, queue: asyncio.Queue[_Pending | None]) -> None:
        while True:
            item = await queue.get()
            if item is None:
                return
            request, future = item
            try:
                round_.record_bet(request.participant_id, request.amount)
                result = BetResult.accepted(round_.id, request.tx_ref)
                logger.info(
                    "Bet %s... on participant #%s (%s) in round %s",
                    request.participant_address[:8],
                    request.participant_id,
                    request.amount,
                    round_.id,
                )
            except BetRejected as exc:
                result = BetResult.rejected(exc.reason, exc.detail)
            if not future.done():
                future.set_result(result)
