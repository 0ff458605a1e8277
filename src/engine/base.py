"""
Derby Rounds - Engine Base Classes

This module defines the foundational data structures and enums used throughout
the race engine. All classes are immutable (frozen dataclasses) so that a
resolved outcome or a synthesized trajectory can be shared with broadcast and
persistence code without being changed underneath them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


STAT_MIN = 0
STAT_MAX = 100


class RoundStatus(Enum):
    """Status of a betting round. Declaration order is lifecycle order."""
    CREATING = "CREATING"
    OPEN = "OPEN"
    LOCKED = "LOCKED"
    RUNNING = "RUNNING"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (RoundStatus.SETTLED, RoundStatus.CANCELLED)


@dataclass(frozen=True)
class CompetitorStats:
    """
    Static attributes of a competitor, each on a 0-100 scale.

    Attributes:
        speed: Raw pace; drives base speed and carries the largest weight
        stamina: Resistance to late-race fatigue
        consistency: Lower consistency means larger cosmetic jitter
        aggression: Minor weight in win probability
        luck: Minor weight in win probability
    """
    speed: int
    stamina: int
    consistency: int
    aggression: int
    luck: int

    def __post_init__(self) -> None:
        """Validate every attribute is within range."""
        for name in ("speed", "stamina", "consistency", "aggression", "luck"):
            value = getattr(self, name)
            if not (STAT_MIN <= value <= STAT_MAX):
                raise ValueError(
                    f"Stat {name}={value} out of range. "
                    f"Must be between {STAT_MIN} and {STAT_MAX}."
                )

    def to_dict(self) -> dict[str, int]:
        return {
            "speed": self.speed,
            "stamina": self.stamina,
            "consistency": self.consistency,
            "aggression": self.aggression,
            "luck": self.luck,
        }


@dataclass(frozen=True)
class Competitor:
    """
    A participant in every race. The roster is fixed at import time.

    Attributes:
        id: Roster index, also the on-ledger participant id
        name: Display name
        color: Display color (hex)
        image: Relative image path for clients
        bio: Short description
        stats: Static attributes
    """
    id: int
    name: str
    color: str
    image: str
    bio: str
    stats: CompetitorStats

    def to_dict(self, include_stats: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "image": self.image,
            "bio": self.bio,
        }
        if include_stats:
            data["stats"] = self.stats.to_dict()
        return data


@dataclass(frozen=True)
class TrajectorySample:
    """
    One animation keyframe.

    Attributes:
        frame: Frame index (0-60)
        time: Elapsed time in milliseconds
        position: Normalized track position in [0, 1]
        speed: Instantaneous (cosmetic) speed
    """
    frame: int
    time: float
    position: float
    speed: float

    def to_dict(self) -> dict[str, float]:
        return {
            "frame": self.frame,
            "time": self.time,
            "position": self.position,
            "speed": self.speed,
        }


@dataclass(frozen=True)
class ParticipantTrajectory:
    """Ordered samples for one competitor."""
    participant_id: int
    name: str
    color: str
    samples: tuple[TrajectorySample, ...]

    @property
    def final_position(self) -> float:
        return self.samples[-1].position

    def to_dict(self) -> dict[str, Any]:
        return {
            "participantId": self.participant_id,
            "name": self.name,
            "color": self.color,
            "samples": [s.to_dict() for s in self.samples],
        }


@dataclass(frozen=True)
class Outcome:
    """
    Result of resolving a round.

    Attributes:
        winner: Roster index of the winner
        probabilities: Probability vector the winner was drawn from
        derived_value: Value in [0, 1] derived from seed and round id
    """
    winner: int
    probabilities: tuple[float, ...]
    derived_value: float
