"""
Derby Rounds - Database Models

Pydantic models that mirror the Supabase table schemas.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class RoundRecord(BaseModel):
    """Mirrors the `round_history` table: one row per settled round."""

    id: int
    winner: int = Field(ge=0)
    winner_name: str
    total_pool: float = 0.0
    settled_at: datetime

    model_config = {"from_attributes": True}

    def to_public(self) -> dict:
        """camelCase form used by the history query surface."""
        return {
            "id": self.id,
            "winner": self.winner,
            "winnerName": self.winner_name,
            "totalPool": self.total_pool,
            "settledAt": int(self.settled_at.timestamp() * 1000),
        }


class RoundSnapshot(BaseModel):
    """Mirrors the `round_snapshots` table: the latest known state of a round."""

    id: int
    status: str
    commitment_hash: str
    revealed_seed: str | None = None
    winner: int | None = None
    probabilities: list[float] = Field(default_factory=list)
    pools: list[float] = Field(default_factory=list)
    total_pool: float = 0.0
    bet_count: int = 0
    on_ledger: bool = False
    created_at: datetime
    locked_at: datetime | None = None
    settled_at: datetime | None = None

    model_config = {"from_attributes": True}
