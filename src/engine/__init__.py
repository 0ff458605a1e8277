"""
Derby Rounds Race Engine.

Pure Python race logic with zero transport/database dependencies.
Handles seed commitment, win probabilities, winner resolution and
trajectory synthesis.
"""

from src.engine.base import (
    Competitor,
    CompetitorStats,
    Outcome,
    ParticipantTrajectory,
    RoundStatus,
    TrajectorySample,
)
from src.engine.probability import ProbabilityModel
from src.engine.resolver import OutcomeResolver
from src.engine.roster import NUM_PARTICIPANTS, get_competitor, get_roster
from src.engine.seed import SeedCommitment
from src.engine.trajectory import TrajectorySynthesizer

__all__ = [
    # Data Classes
    "Competitor",
    "CompetitorStats",
    "Outcome",
    "ParticipantTrajectory",
    "TrajectorySample",
    # Enums
    "RoundStatus",
    # Roster
    "NUM_PARTICIPANTS",
    "get_competitor",
    "get_roster",
    # Engines
    "OutcomeResolver",
    "ProbabilityModel",
    "SeedCommitment",
    "TrajectorySynthesizer",
]
