from __future__ import annotations

from dataclasses import dataclass

# Score bands: every 100 points is one "level"; the spawn interval tightens every 50.
LEVEL_SCORE_STEP = 100
SPAWN_SCORE_STEP = 50

BASE_OPERAND_CEILING = 10
OPERAND_CEILING_STEP = 2
MAX_OPERAND_CEILING = 20

BASE_SPAWN_INTERVAL_MS = 4000
SPAWN_INTERVAL_STEP_MS = 200
MIN_SPAWN_INTERVAL_MS = 1500

BASE_TRAJECTORY_MS = 20000
TRAJECTORY_STEP_MS = 1000
MIN_TRAJECTORY_MS = 10000

RARE_OPERATOR_MIN_LEVEL = 3
RARE_OPERATOR_PROBABILITY = 0.2

FAST_DURATION_SCALE = 0.8
BOSS_DURATION_SCALE = 1.5


@dataclass(frozen=True, slots=True)
class DifficultyPolicy:
    """Difficulty parameters for a given score. Derived, never stored."""

    level: int
    operand_ceiling: int
    spawn_interval_ms: int
    base_trajectory_ms: int
    rare_operator_unlocked: bool

    @property
    def rare_operator_probability(self) -> float:
        return RARE_OPERATOR_PROBABILITY if self.rare_operator_unlocked else 0.0

    @property
    def trajectory_range_ms(self) -> tuple[int, int]:
        """Shortest (fast) and longest (boss) trajectory at this level."""
        return (
            scaled_duration_ms(self.base_trajectory_ms, FAST_DURATION_SCALE),
            scaled_duration_ms(self.base_trajectory_ms, BOSS_DURATION_SCALE),
        )


def policy_for_score(score: int) -> DifficultyPolicy:
    if score < 0:
        raise ValueError("score must be >= 0")

    level = score // LEVEL_SCORE_STEP
    return DifficultyPolicy(
        level=level,
        operand_ceiling=min(MAX_OPERAND_CEILING, BASE_OPERAND_CEILING + OPERAND_CEILING_STEP * level),
        spawn_interval_ms=max(
            MIN_SPAWN_INTERVAL_MS,
            BASE_SPAWN_INTERVAL_MS - SPAWN_INTERVAL_STEP_MS * (score // SPAWN_SCORE_STEP),
        ),
        base_trajectory_ms=max(MIN_TRAJECTORY_MS, BASE_TRAJECTORY_MS - TRAJECTORY_STEP_MS * level),
        rare_operator_unlocked=level >= RARE_OPERATOR_MIN_LEVEL,
    )


def scaled_duration_ms(base_ms: int, scale: float) -> int:
    return int(round(base_ms * scale))
