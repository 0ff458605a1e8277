"""
Derby Rounds - Realtime Event Definitions

Event types and payloads pushed to observers during the round lifecycle.
Enum values are the wire names clients subscribe to.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RoundEvent(Enum):
    """Events that can occur during a round."""

    ROUND_STATE = "round:state"
    ROUND_CREATED = "round:created"
    ROUND_COUNTDOWN = "round:countdown"
    ROUND_LOCKED = "round:locked"
    ROUND_STARTED = "round:started"
    ROUND_RESULT = "round:result"
    ROUND_SETTLED = "round:settled"
    ROUND_SKIPPED = "round:skipped"
    ROUND_COOLDOWN = "round:cooldown"
    ROUND_ERROR = "round:error"
    BET_CONFIRMED = "bet:confirmed"
    BET_ERROR = "bet:error"
    BET_UPDATE = "bet:update"


@dataclass
class EventPayload:
    """Wrapper for realtime event data."""

    event: RoundEvent
    round_id: int | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        """Flatten into the JSON object sent on the wire."""
        message = dict(self.data)
        if self.round_id is not None:
            message.setdefault("id", self.round_id)
        return message
