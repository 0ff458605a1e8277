"""
Derby Rounds - Probability Model Tests
"""

import pytest

from src.engine.base import Competitor, CompetitorStats
from src.engine.probability import HOUSE_EDGE_FACTOR, ProbabilityModel
from src.engine.roster import ROSTER


EPSILON = 1e-9


def _competitor(idx: int, **stats: int) -> Competitor:
    values = {"speed": 50, "stamina": 50, "consistency": 50, "aggression": 50, "luck": 50}
    values.update(stats)
    return Competitor(
        id=idx, name=f"C{idx}", color="#000000", image="", bio="",
        stats=CompetitorStats(**values),
    )


class TestBaseScore:
    """Tests for the weight table."""

    def test_speed_only_scores_thirty(self):
        stats = CompetitorStats(speed=100, stamina=0, consistency=0, aggression=0, luck=0)
        assert ProbabilityModel.base_score(stats) == pytest.approx(30.0)

    def test_all_max_scores_hundred(self):
        stats = CompetitorStats(speed=100, stamina=100, consistency=100, aggression=100, luck=100)
        assert ProbabilityModel.base_score(stats) == pytest.approx(100.0)

    @pytest.mark.parametrize("stat,weight", [
        ("stamina", 25.0), ("consistency", 20.0), ("aggression", 10.0), ("luck", 15.0),
    ])
    def test_individual_weights(self, stat, weight):
        values = {"speed": 0, "stamina": 0, "consistency": 0, "aggression": 0, "luck": 0}
        values[stat] = 100
        assert ProbabilityModel.base_score(CompetitorStats(**values)) == pytest.approx(weight)

    def test_speed_specialist_normalized_against_baseline(self):
        roster = [
            _competitor(0, speed=100, stamina=0, consistency=0, aggression=0, luck=0),
            _competitor(1),
            _competitor(2),
        ]
        probs = ProbabilityModel.base_probabilities(roster)
        # baseline competitors score 50 each
        assert probs[0] == pytest.approx(30 / 130)
        assert probs[1] == pytest.approx(50 / 130)


class TestComputeProbabilities:
    """Tests for ProbabilityModel.compute_probabilities()."""

    def test_no_bets_returns_base_vector(self):
        base = ProbabilityModel.base_probabilities()
        assert ProbabilityModel.compute_probabilities({}) == base
        assert ProbabilityModel.compute_probabilities(None) == base
        assert ProbabilityModel.compute_probabilities([0.0] * len(ROSTER)) == base

    def test_length_matches_roster(self):
        assert len(ProbabilityModel.compute_probabilities({0: 1.0})) == len(ROSTER)

    @pytest.mark.parametrize("bets", [
        {},
        {0: 1.0},
        {0: 9.0, 1: 1.0},
        {i: float(i + 1) for i in range(6)},
        {5: 0.001},
        {2: 1000.0, 3: 0.5},
    ])
    def test_sums_to_one_and_all_positive(self, bets):
        probs = ProbabilityModel.compute_probabilities(bets)
        assert abs(sum(probs) - 1.0) < EPSILON
        assert all(p > 0 for p in probs)

    def test_concentrated_bets_lower_the_favourite(self):
        base = ProbabilityModel.base_probabilities()
        probs = ProbabilityModel.compute_probabilities({0: 9.0, 1: 1.0})
        assert probs[0] < base[0]
        assert abs(sum(probs) - 1.0) < EPSILON

    def test_unbacked_competitors_gain(self):
        base = ProbabilityModel.base_probabilities()
        probs = ProbabilityModel.compute_probabilities({0: 9.0, 1: 1.0})
        for i in range(2, len(ROSTER)):
            assert probs[i] > base[i]

    def test_all_bets_on_one_keeps_it_positive(self):
        probs = ProbabilityModel.compute_probabilities({3: 5.0})
        assert probs[3] > 0

    def test_full_edge_factor_can_zero_a_competitor(self):
        probs = ProbabilityModel.compute_probabilities({3: 5.0}, edge_factor=1.0)
        assert probs[3] == 0
        assert abs(sum(probs) - 1.0) < EPSILON

    def test_adjustment_formula(self):
        base = ProbabilityModel.base_probabilities()
        bets = [4.0, 1.0, 0.0, 0.0, 0.0, 0.0]
        adjusted = [
            p * (1 - (b / 5.0) * HOUSE_EDGE_FACTOR) for p, b in zip(base, bets)
        ]
        total = sum(adjusted)
        expected = [p / total for p in adjusted]
        assert ProbabilityModel.compute_probabilities(bets) == pytest.approx(expected)

    def test_mapping_with_string_keys(self):
        assert ProbabilityModel.compute_probabilities({"0": 2.0}) == pytest.approx(
            ProbabilityModel.compute_probabilities({0: 2.0})
        )

    def test_rejects_negative_bets(self):
        with pytest.raises(ValueError, match="negative"):
            ProbabilityModel.compute_probabilities({0: -1.0})

    def test_rejects_unknown_participant(self):
        with pytest.raises(ValueError, match="Unknown participant"):
            ProbabilityModel.compute_probabilities({6: 1.0})

    def test_rejects_wrong_length_sequence(self):
        with pytest.raises(ValueError, match="Expected 6"):
            ProbabilityModel.compute_probabilities([1.0, 2.0])

    def test_rejects_bad_edge_factor(self):
        with pytest.raises(ValueError, match="Edge factor"):
            ProbabilityModel.compute_probabilities({0: 1.0}, edge_factor=1.5)
