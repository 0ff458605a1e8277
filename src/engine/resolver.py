"""
Derby Rounds - Outcome Resolver

Picks the winner from the committed seed, the round id and the probability
vector. Anyone holding the revealed seed can repeat the computation:

    digest = sha256((seed_hex + str(round_id)).encode("utf-8")).hexdigest()
    value  = int(digest[:8], 16) / 0xFFFFFFFF

then walk the roster accumulating probability and take the first index whose
cumulative sum reaches ``value``.
"""

import hashlib
import math
from typing import Sequence

from src.engine.base import Outcome
from src.engine.seed import SeedCommitment


PREFIX_HEX_DIGITS = 8
PREFIX_MAX = 0xFFFFFFFF
PROBABILITY_TOLERANCE = 1e-9


class OutcomeResolver:
    """
    Deterministic winner selection.

    Uses only hashing; it never touches a random number generator.
    """

    @classmethod
    def derive_value(cls, seed: bytes, round_id: int) -> float:
        """Map (seed, round id) to a value in [0, 1]."""
        message = (bytes(seed).hex() + str(round_id)).encode("utf-8")
        digest = hashlib.sha256(message).hexdigest()
        return int(digest[:PREFIX_HEX_DIGITS], 16) / PREFIX_MAX

    @classmethod
    def determine_winner(
        cls,
        seed: bytes,
        round_id: int,
        probabilities: Sequence[float],
    ) -> Outcome:
        """Resolve the winner of a round.

        Args:
            seed: The round's 32-byte secret seed
            round_id: Ledger (or local) round id
            probabilities: Win probabilities in roster order

        Returns:
            Outcome with winner index, the probabilities used and the
            derived value

        Raises:
            ValueError: If the seed is malformed or the probabilities are
                empty, negative or do not sum to 1
        """
        SeedCommitment.check_seed(seed)
        probs = cls._check_probabilities(probabilities)
        value = cls.derive_value(seed, round_id)

        cumulative = 0.0
        winner = len(probs) - 1
        for index, p in enumerate(probs):
            cumulative += p
            if cumulative >= value:
                winner = index
                break

        return Outcome(winner=winner, probabilities=probs, derived_value=value)

    @staticmethod
    def _check_probabilities(probabilities: Sequence[float]) -> tuple[float, ...]:
        probs = tuple(float(p) for p in probabilities)
        if not probs:
            raise ValueError("Probability vector is empty.")
        if any(p < 0 or math.isnan(p) for p in probs):
            raise ValueError(f"Probabilities must be non-negative, got {probs}.")
        total = sum(probs)
        if abs(total - 1.0) > PROBABILITY_TOLERANCE:
            raise ValueError(f"Probabilities must sum to 1, got {total}.")
        return probs
