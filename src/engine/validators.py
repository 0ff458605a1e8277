"""
Derby Rounds - Input Validation Utilities

Provides validation functions for bet inputs. All validators either return
validated data or raise descriptive ValueError exceptions.
"""

import math

from src.engine.roster import NUM_PARTICIPANTS


def validate_participant_id(participant_id: int, num_participants: int = NUM_PARTICIPANTS) -> int:
    """
    Validate a participant id against the roster size.

    Args:
        participant_id: Roster index chosen by the bettor
        num_participants: Number of competitors on the roster

    Returns:
        Validated participant id

    Raises:
        ValueError: If the id is not an integer or is out of range
    """
    if isinstance(participant_id, bool) or not isinstance(participant_id, int):
        raise ValueError(
            f"Participant id must be an integer, got {type(participant_id).__name__}."
        )

    if not (0 <= participant_id < num_participants):
        raise ValueError(
            f"Participant id {participant_id} is out of range. "
            f"Must be between 0 and {num_participants - 1}."
        )

    return participant_id


def validate_bet_amount(amount: float, min_bet: float, max_bet: float) -> float:
    """
    Validate a bet amount.

    Args:
        amount: Amount wagered
        min_bet: Smallest accepted bet
        max_bet: Largest accepted bet

    Returns:
        Validated amount as a float

    Raises:
        ValueError: If the amount is not a finite number within bounds
    """
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValueError(f"Bet amount must be a number, got {type(amount).__name__}.")

    amount = float(amount)
    if not math.isfinite(amount):
        raise ValueError(f"Bet amount must be finite, got {amount}.")

    if not (min_bet <= amount <= max_bet):
        raise ValueError(f"Bet amount must be between {min_bet} and {max_bet}, got {amount}.")

    return amount
