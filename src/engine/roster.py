"""
Derby Rounds - Competitor Roster

The six horses that run every race. Roster order is significant: it is the
participant id used on the ledger and the walk order of the outcome resolver.
"""

from src.engine.base import Competitor, CompetitorStats


ROSTER: tuple[Competitor, ...] = (
    Competitor(
        id=0,
        name="Alexa",
        color="#e74c3c",
        image="/alexa.png",
        bio="A blazing fast sprinter with explosive acceleration. Struggles on longer races.",
        stats=CompetitorStats(speed=92, stamina=55, consistency=60, aggression=85, luck=50),
    ),
    Competitor(
        id=1,
        name="Dan",
        color="#2c3e50",
        image="/dan.png",
        bio="The dark horse. Quiet and calculating, often surprises with late surges.",
        stats=CompetitorStats(speed=70, stamina=85, consistency=75, aggression=40, luck=80),
    ),
    Competitor(
        id=2,
        name="Peter",
        color="#f39c12",
        image="/peter.png",
        bio="The crowd favorite. Consistent performer with a winning mentality.",
        stats=CompetitorStats(speed=78, stamina=78, consistency=90, aggression=65, luck=60),
    ),
    Competitor(
        id=3,
        name="Robert",
        color="#27ae60",
        image="/robert.png",
        bio="Volatile as the market. Can either moon or crash spectacularly.",
        stats=CompetitorStats(speed=85, stamina=60, consistency=30, aggression=90, luck=75),
    ),
    Competitor(
        id=4,
        name="Robin",
        color="#8e44ad",
        image="/robin.png",
        bio="The tank. Slow start but builds unstoppable momentum.",
        stats=CompetitorStats(speed=60, stamina=95, consistency=85, aggression=50, luck=45),
    ),
    Competitor(
        id=5,
        name="Tommy",
        color="#3498db",
        image="/tommy.png",
        bio="Unpredictable but beloved. Runs on pure vibes and energy.",
        stats=CompetitorStats(speed=72, stamina=65, consistency=40, aggression=70, luck=95),
    ),
)

NUM_PARTICIPANTS = len(ROSTER)


def get_roster() -> tuple[Competitor, ...]:
    """Return the full roster in participant-id order."""
    return ROSTER


def get_competitor(participant_id: int) -> Competitor:
    """Look up a competitor by id.

    Raises:
        ValueError: If the id is out of range
    """
    if not (0 <= participant_id < NUM_PARTICIPANTS):
        raise ValueError(
            f"Participant id {participant_id} is out of range. "
            f"Must be between 0 and {NUM_PARTICIPANTS - 1}."
        )
    return ROSTER[participant_id]
