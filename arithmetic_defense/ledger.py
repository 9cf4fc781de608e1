"""Combo, score and lives bookkeeping for one session."""

from __future__ import annotations

from .entities import EntityType

COMBO_BONUS = 5
MAX_LIVES = 3

_BASE_VALUES: dict[EntityType, int] = {
    EntityType.NORMAL: 10,
    EntityType.FAST: 10,
    EntityType.BOSS: 50,
}


def base_value(entity_type: EntityType) -> int:
    return _BASE_VALUES[entity_type]


def hit_points(entity_type: EntityType, combo_before: int) -> int:
    return base_value(entity_type) + combo_before * COMBO_BONUS


class ComboTracker:
    """Consecutive hits since the last miss. Only a miss resets it."""

    def __init__(self) -> None:
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def hit(self) -> int:
        """Increment and return the combo as it was before this hit."""
        before = self._value
        self._value += 1
        return before

    def miss(self) -> None:
        self._value = 0


class ScoreLedger:
    def __init__(self) -> None:
        self._total = 0

    @property
    def total(self) -> int:
        return self._total

    def award(self, entity_type: EntityType, combo_before: int) -> int:
        if combo_before < 0:
            raise ValueError("combo_before must be >= 0")
        points = hit_points(entity_type, combo_before)
        self._total += points
        return points


class LivesLedger:
    def __init__(self, starting: int = MAX_LIVES) -> None:
        if not 1 <= starting <= MAX_LIVES:
            raise ValueError(f"starting lives must be in 1..{MAX_LIVES}")
        self._starting = int(starting)
        self._remaining = int(starting)

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def starting(self) -> int:
        return self._starting

    @property
    def depleted(self) -> bool:
        return self._remaining <= 0

    def lose(self) -> int:
        if self._remaining > 0:
            self._remaining -= 1
        return self._remaining
