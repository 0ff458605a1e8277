"""
Derby Rounds - Ledger Gateway

The operations the round lifecycle needs from the settlement contract.
Amounts are reported in ether units; seeds and commitments are raw bytes.
"""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class LedgerRound:
    """A round as the ledger records it."""
    id: int
    created_at: int
    locked_at: int
    settled_at: int
    status: int
    winning_participant: int
    total_pool: float
    commitment: bytes
    revealed_seed: bytes


class LedgerGateway(Protocol):
    """Async client for the settlement ledger."""

    async def create_round(self, commitment: bytes) -> int: ...

    async def lock_round(self, round_id: int) -> None: ...

    async def settle_round(self, round_id: int, winner_index: int, revealed_seed: bytes) -> None: ...

    async def get_round_participant_pool(self, round_id: int, participant_index: int) -> float: ...

    async def get_current_round_id(self) -> int: ...

    async def get_round(self, round_id: int) -> LedgerRound: ...
