"""
Derby Rounds Orchestrator.

Round state, the single-writer bet desk and the lifecycle loop.
"""

from src.orchestrator.bets import BetDesk, BetRequest, BetResult
from src.orchestrator.capability import Available, Capability, Unavailable, capability_of
from src.orchestrator.lifecycle import Phase, RoundOrchestrator
from src.orchestrator.round import Round

__all__ = [
    "Available",
    "BetDesk",
    "BetRequest",
    "BetResult",
    "Capability",
    "Phase",
    "Round",
    "RoundOrchestrator",
    "Unavailable",
    "capability_of",
]
