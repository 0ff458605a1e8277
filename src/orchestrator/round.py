"""
Derby Rounds - Round State

The mutable state of one betting round. A Round is created by the
orchestrator for each cycle, mutated only by the bet desk while OPEN and by
the orchestrator afterwards, and dropped when the next round is created.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from src.database.models import RoundRecord, RoundSnapshot
from src.engine.base import Competitor, Outcome, ParticipantTrajectory, RoundStatus
from src.engine.seed import SeedCommitment
from src.exceptions import BetRejected, BetRejection, InvalidStateTransition, RaceError


_NEXT_STATUS: dict[RoundStatus, frozenset[RoundStatus]] = {
    RoundStatus.CREATING: frozenset({RoundStatus.OPEN}),
    RoundStatus.OPEN: frozenset({RoundStatus.LOCKED, RoundStatus.CANCELLED}),
    RoundStatus.LOCKED: frozenset({RoundStatus.RUNNING}),
    RoundStatus.RUNNING: frozenset({RoundStatus.SETTLED}),
    RoundStatus.SETTLED: frozenset(),
    RoundStatus.CANCELLED: frozenset(),
}

# statuses in which betting has closed and the seed may be revealed
_REVEALABLE = frozenset({RoundStatus.RUNNING, RoundStatus.SETTLED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class Round:
    """
    One betting round.

    Attributes:
        id: Ledger round id, or a local id when running degraded
        commitment: Keccak-256 commitment of the secret seed
        on_ledger: Whether the ledger knows this round
        status: Current lifecycle status
        pools: Locally tracked bet total per participant
        total_pool: Sum of all locally tracked bets
        bet_count: Number of accepted bets
        open_deadline: Epoch milliseconds at which betting closes
        outcome: Resolved winner and probabilities (set once)
        trajectory: Synthesized animation (set once)
        settlement_fault: Code of a fairness-critical settlement failure
    """
    id: int
    commitment: bytes
    on_ledger: bool
    pools: list[float]
    status: RoundStatus = RoundStatus.CREATING
    total_pool: float = 0.0
    bet_count: int = 0
    open_deadline: float = 0.0
    outcome: Outcome | None = None
    trajectory: tuple[ParticipantTrajectory, ...] | None = None
    settlement_fault: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    locked_at: datetime | None = None
    settled_at: datetime | None = None
    _seed: bytes = field(default=b"", repr=False)

    @classmethod
    def create(
        cls,
        round_id: int,
        seed: bytes,
        on_ledger: bool,
        num_participants: int,
        commitment: bytes | None = None,
    ) -> Round:
        """Start a round in CREATING with an empty pool."""
        if commitment is None:
            commitment = SeedCommitment.commit(seed)
        return cls(
            id=round_id,
            commitment=commitment,
            on_ledger=on_ledger,
            pools=[0.0] * num_participants,
            _seed=seed,
        )

    # -- Status ----------------------------------------------------------

    def advance(self, status: RoundStatus) -> None:
        """Move forward to ``status``.

        Raises:
            InvalidStateTransition: If the move is not a forward step
        """
        if status not in _NEXT_STATUS[self.status]:
            raise InvalidStateTransition(
                f"Round {self.id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
        if status is RoundStatus.LOCKED:
            self.locked_at = _utcnow()
        elif status is RoundStatus.SETTLED:
            self.settled_at = _utcnow()

    def open(self, deadline_ms: float) -> None:
        self.advance(RoundStatus.OPEN)
        self.open_deadline = deadline_ms

    @property
    def is_open(self) -> bool:
        return self.status is RoundStatus.OPEN

    # -- Bets ------------------------------------------------------------

    def record_bet(self, participant_id: int, amount: float) -> None:
        """Add a validated bet to the pool.

        Raises:
            BetRejected: If the round is not OPEN or the participant is unknown
        """
        if not self.is_open:
            raise BetRejected(BetRejection.ROUND_NOT_OPEN)
        if not (0 <= participant_id < len(self.pools)):
            raise BetRejected(BetRejection.INVALID_PARTICIPANT)
        self.pools[participant_id] += amount
        self.total_pool += amount
        self.bet_count += 1

    def bet_distribution(self) -> tuple[float, ...]:
        return tuple(self.pools)

    # -- Outcome ---------------------------------------------------------

    @property
    def revealed_seed(self) -> bytes:
        """The secret seed, available only once betting has locked.

        Raises:
            RaceError: While the round is still CREATING, OPEN or LOCKED
        """
        if self.status not in _REVEALABLE:
            raise RaceError(f"Seed of round {self.id} is sealed while {self.status.value}")
        return self._seed

    def set_outcome(self, outcome: Outcome, trajectory: tuple[ParticipantTrajectory, ...]) -> None:
        """Fix the winner and animation. Allowed once, while RUNNING."""
        if self.status is not RoundStatus.RUNNING:
            raise InvalidStateTransition(
                f"Round {self.id} cannot be resolved while {self.status.value}"
            )
        if self.outcome is not None:
            raise RaceError(f"Round {self.id} already has a winner")
        self.outcome = outcome
        self.trajectory = trajectory

    @property
    def winner(self) -> int | None:
        return self.outcome.winner if self.outcome else None

    def seed_matches_commitment(self) -> bool:
        return SeedCommitment.verify(self._seed, self.commitment)

    # -- Views -----------------------------------------------------------

    @property
    def commitment_hex(self) -> str:
        return SeedCommitment.to_hex(self.commitment)

    def public_state(self, roster: Sequence[Competitor]) -> dict[str, Any]:
        """State safe to show any observer at any time."""
        settled = self.status is RoundStatus.SETTLED
        return {
            "id": self.id,
            "status": self.status.value,
            "participants": [c.to_dict() for c in roster],
            "openDeadline": self.open_deadline,
            "commitmentHash": self.commitment_hex,
            "totalPool": self.total_pool,
            "betCount": self.bet_count,
            "winner": self.winner if settled else None,
            "seed": SeedCommitment.to_hex(self._seed) if settled else None,
        }

    def to_record(self, roster: Sequence[Competitor]) -> RoundRecord:
        if self.outcome is None or self.settled_at is None:
            raise RaceError(f"Round {self.id} has not settled")
        return RoundRecord(
            id=self.id,
            winner=self.outcome.winner,
            winner_name=roster[self.outcome.winner].name,
            total_pool=self.total_pool,
            settled_at=self.settled_at,
        )

    def to_snapshot(self) -> RoundSnapshot:
        revealed = self.status in _REVEALABLE
        return RoundSnapshot(
            id=self.id,
            status=self.status.value,
            commitment_hash=self.commitment_hex,
            revealed_seed=SeedCommitment.to_hex(self._seed) if revealed else None,
            winner=self.winner,
            probabilities=list(self.outcome.probabilities) if self.outcome else [],
            pools=list(self.pools),
            total_pool=self.total_pool,
            bet_count=self.bet_count,
            on_ledger=self.on_ledger,
            created_at=self.created_at,
            locked_at=self.locked_at,
            settled_at=self.settled_at,
        )
