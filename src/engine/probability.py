"""
Derby Rounds - Probability Model

Win probabilities from static competitor attributes, with a house edge that
shaves probability off competitors in proportion to how heavily they are
backed.
"""

from typing import Mapping, Sequence

from src.engine.base import Competitor, CompetitorStats
from src.engine.roster import ROSTER


STAT_WEIGHTS: dict[str, float] = {
    "speed": 0.30,
    "stamina": 0.25,
    "consistency": 0.20,
    "aggression": 0.10,
    "luck": 0.15,
}

HOUSE_EDGE_FACTOR = 0.15


class ProbabilityModel:
    """
    Stateless probability model.

    Probability vectors are tuples in roster order and always sum to 1.
    """

    HOUSE_EDGE_FACTOR = HOUSE_EDGE_FACTOR

    @classmethod
    def base_score(cls, stats: CompetitorStats) -> float:
        """Weighted attribute score, before normalization."""
        return (
            stats.speed * STAT_WEIGHTS["speed"]
            + stats.stamina * STAT_WEIGHTS["stamina"]
            + stats.consistency * STAT_WEIGHTS["consistency"]
            + stats.aggression * STAT_WEIGHTS["aggression"]
            + stats.luck * STAT_WEIGHTS["luck"]
        )

    @classmethod
    def base_probabilities(
        cls, roster: Sequence[Competitor] = ROSTER
    ) -> tuple[float, ...]:
        """Normalized base scores for the roster."""
        scores = [cls.base_score(c.stats) for c in roster]
        total = sum(scores)
        if total <= 0:
            raise ValueError("Roster has no positive base score; cannot normalize.")
        return tuple(score / total for score in scores)

    @classmethod
    def compute_probabilities(
        cls,
        bet_totals: Mapping[int, float] | Sequence[float] | None = None,
        roster: Sequence[Competitor] = ROSTER,
        edge_factor: float = HOUSE_EDGE_FACTOR,
    ) -> tuple[float, ...]:
        """Compute the win probability of each competitor.

        Args:
            bet_totals: Amount wagered per participant id, either as a mapping
                (missing ids count as 0) or a sequence in roster order
            roster: Competitors in roster order
            edge_factor: House edge strength in [0, 1]

        Returns:
            Probabilities in roster order, summing to 1

        Raises:
            ValueError: On negative amounts, unknown participant ids, or an
                edge factor outside [0, 1]
        """
        if not (0.0 <= edge_factor <= 1.0):
            raise ValueError(f"Edge factor must be between 0 and 1, got {edge_factor}.")

        base = cls.base_probabilities(roster)
        totals = cls._bet_vector(bet_totals, len(roster))
        total_bets = sum(totals)

        if total_bets <= 0:
            return base

        adjusted = [
            p * (1 - (bet / total_bets) * edge_factor)
            for p, bet in zip(base, totals)
        ]
        adj_total = sum(adjusted)
        return tuple(p / adj_total for p in adjusted)

    @staticmethod
    def _bet_vector(
        bet_totals: Mapping[int, float] | Sequence[float] | None,
        size: int,
    ) -> list[float]:
        if bet_totals is None:
            return [0.0] * size

        if isinstance(bet_totals, Mapping):
            by_id = {int(key): amount for key, amount in bet_totals.items()}
            for key in by_id:
                if not (0 <= key < size):
                    raise ValueError(f"Unknown participant id {key} in bet totals.")
            values = [float(by_id.get(i, 0.0)) for i in range(size)]
        else:
            if len(bet_totals) != size:
                raise ValueError(
                    f"Expected {size} bet totals, got {len(bet_totals)}."
                )
            values = [float(v) for v in bet_totals]

        for i, value in enumerate(values):
            if value < 0:
                raise ValueError(f"Bet total for participant {i} is negative: {value}.")
        return values
