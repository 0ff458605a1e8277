"""
Derby Rounds - Trajectory Synthesizer

Builds the cosmetic race animation for an outcome that is already fixed.
Each competitor gets 61 keyframes (60 intervals) whose shape follows its
attributes; the winner always finishes at exactly 1.0 and everyone else
finishes at or below NON_WINNER_FINAL_MAX.

Jitter comes from its own ``random.Random`` so that animation noise never
shares state with outcome resolution, which is hash-based.
"""

import random
from typing import Sequence

from src.engine.base import Competitor, ParticipantTrajectory, TrajectorySample
from src.engine.roster import ROSTER


NUM_FRAMES = 60

MIN_BASE_SPEED = 0.2
MAX_BASE_SPEED = 1.0
JITTER_SCALE = 0.3

FATIGUE_START = 0.6
FATIGUE_SCALE = 0.3

WINNER_SURGE_START = 0.7
WINNER_SURGE_RATE = 2.5
WINNER_MIN_SPEED = 0.6

NON_WINNER_SLOWDOWN_START = 0.85
NON_WINNER_SLOWDOWN = 0.85
NON_WINNER_CEILING = 0.97
NON_WINNER_FINAL_MIN = 0.90
NON_WINNER_FINAL_MAX = 0.96


class TrajectorySynthesizer:
    """
    Stateless trajectory generator.

    All methods are class methods; the jitter source is passed in.
    """

    NUM_FRAMES = NUM_FRAMES

    @classmethod
    def generate(
        cls,
        winner_index: int,
        duration_ms: float,
        roster: Sequence[Competitor] = ROSTER,
        rng: random.Random | None = None,
    ) -> tuple[ParticipantTrajectory, ...]:
        """Generate per-competitor keyframes consistent with the winner.

        Args:
            winner_index: Roster index of the resolved winner
            duration_ms: Total animation length
            roster: Competitors in roster order
            rng: Cosmetic randomness source (fresh ``random.Random`` if None)

        Returns:
            One ParticipantTrajectory per competitor, in roster order

        Raises:
            ValueError: If the winner is off the roster or the duration is
                not positive
        """
        if not (0 <= winner_index < len(roster)):
            raise ValueError(
                f"Winner index {winner_index} out of range for {len(roster)} competitors."
            )
        if duration_ms <= 0:
            raise ValueError(f"Duration must be positive, got {duration_ms}.")

        rng = rng or random.Random()
        return tuple(
            cls._generate_one(competitor, competitor_index == winner_index, duration_ms, rng)
            for competitor_index, competitor in enumerate(roster)
        )

    @classmethod
    def base_speed(cls, competitor: Competitor) -> float:
        """Speed attribute scaled into [MIN_BASE_SPEED, MAX_BASE_SPEED]."""
        span = MAX_BASE_SPEED - MIN_BASE_SPEED
        return competitor.stats.speed / 100 * span + MIN_BASE_SPEED

    @classmethod
    def _generate_one(
        cls,
        competitor: Competitor,
        is_winner: bool,
        duration_ms: float,
        rng: random.Random,
    ) -> ParticipantTrajectory:
        stats = competitor.stats
        frame_interval = duration_ms / NUM_FRAMES
        base_speed = cls.base_speed(competitor)
        jitter_amplitude = JITTER_SCALE * (1 - stats.consistency / 100)
        ceiling = 1.0 if is_winner else NON_WINNER_CEILING

        positions: list[float] = []
        speeds: list[float] = []
        position = 0.0

        for frame in range(NUM_FRAMES + 1):
            progress = frame / NUM_FRAMES

            speed = base_speed + (rng.random() - 0.5) * jitter_amplitude

            if progress > FATIGUE_START:
                speed -= (1 - stats.stamina / 100) * progress * FATIGUE_SCALE

            if is_winner:
                if progress > WINNER_SURGE_START:
                    speed += (progress - WINNER_SURGE_START) * WINNER_SURGE_RATE
                speed = max(speed, WINNER_MIN_SPEED)
            elif progress > NON_WINNER_SLOWDOWN_START:
                speed *= NON_WINNER_SLOWDOWN

            if frame > 0:
                position = min(max(position + speed / NUM_FRAMES, 0.0), ceiling)

            positions.append(position)
            speeds.append(speed)

        if is_winner:
            positions[-1] = 1.0
        elif positions[-1] > NON_WINNER_FINAL_MAX:
            target = rng.uniform(NON_WINNER_FINAL_MIN, NON_WINNER_FINAL_MAX)
            scale = target / positions[-1]
            positions = [p * scale for p in positions]
            # pin the endpoint so float error cannot push it past the max
            positions[-1] = min(target, NON_WINNER_FINAL_MAX)

        samples = tuple(
            TrajectorySample(
                frame=frame,
                time=frame * frame_interval,
                position=positions[frame],
                speed=speeds[frame],
            )
            for frame in range(NUM_FRAMES + 1)
        )
        return ParticipantTrajectory(
            participant_id=competitor.id,
            name=competitor.name,
            color=competitor.color,
            samples=samples,
        )
