"""Falling arithmetic problems and the factory that deals them.

The factory owns a seeded ``random.Random`` stream so a given seed always
produces the same sequence of entities, which is what the tests lean on.
"""

from __future__ import annotations

import itertools
import operator
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .difficulty import BOSS_DURATION_SCALE, FAST_DURATION_SCALE, DifficultyPolicy, scaled_duration_ms

MULTIPLY_OPERAND_MIN = 2
MULTIPLY_OPERAND_MAX = 6

BOSS_PROBABILITY = 0.1
FAST_PROBABILITY = 0.3


class Operator(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]

    def apply(self, a: int, b: int) -> int:
        return _FUNCS[self](a, b)


_SYMBOLS: dict[Operator, str] = {
    Operator.ADD: "+",
    Operator.SUBTRACT: "-",
    Operator.MULTIPLY: "×",
}

_FUNCS: dict[Operator, Callable[[int, int], int]] = {
    Operator.ADD: operator.add,
    Operator.SUBTRACT: operator.sub,
    Operator.MULTIPLY: operator.mul,
}


class EntityType(str, Enum):
    NORMAL = "normal"
    FAST = "fast"
    BOSS = "boss"

    @property
    def duration_scale(self) -> float:
        if self is EntityType.FAST:
            return FAST_DURATION_SCALE
        if self is EntityType.BOSS:
            return BOSS_DURATION_SCALE
        return 1.0


@dataclass(frozen=True, slots=True)
class Entity:
    id: int
    operand_a: int
    operand_b: int
    operator: Operator
    answer: int
    type: EntityType
    spawn_time: int  # logical creation order, FIFO tie-break
    horizontal_position: float  # cosmetic, 0.0 (left) .. 1.0 (right)
    spawned_at_ms: int
    duration_ms: int

    @property
    def text(self) -> str:
        return f"{self.operand_a} {self.operator.symbol} {self.operand_b}"

    @property
    def deadline_ms(self) -> int:
        return self.spawned_at_ms + self.duration_ms

    def progress(self, now_ms: int) -> float:
        """Fraction of the trajectory covered at ``now_ms``, clamped to [0, 1]."""
        if self.duration_ms <= 0:
            return 1.0
        t = (now_ms - self.spawned_at_ms) / self.duration_ms
        return 0.0 if t <= 0.0 else 1.0 if t >= 1.0 else float(t)


def make_entity(
    *,
    entity_id: int,
    a: int,
    b: int,
    op: Operator,
    entity_type: EntityType = EntityType.NORMAL,
    spawn_time: int | None = None,
    horizontal_position: float = 0.5,
    spawned_at_ms: int = 0,
    duration_ms: int = 20000,
) -> Entity:
    """Build an entity with its answer computed from the operands."""

    return Entity(
        id=entity_id,
        operand_a=a,
        operand_b=b,
        operator=op,
        answer=op.apply(a, b),
        type=entity_type,
        spawn_time=entity_id if spawn_time is None else spawn_time,
        horizontal_position=horizontal_position,
        spawned_at_ms=spawned_at_ms,
        duration_ms=duration_ms,
    )


class EntityFactory:
    """Synthesizes one problem entity per call from the current policy.

    Ids and spawn order come from counters that live as long as the factory,
    so they are never reused, not even across restarted sessions.
    """

    def __init__(self, rng: random.Random | None = None, *, seed: int | None = None) -> None:
        self._rng = rng if rng is not None else random.Random(seed)
        self._ids = itertools.count()
        self._order = itertools.count()

    def create(self, policy: DifficultyPolicy, *, now_ms: int) -> Entity:
        op = self._pick_operator(policy)

        a = self._rng.randint(1, policy.operand_ceiling)
        b = self._rng.randint(1, policy.operand_ceiling)
        if op is Operator.SUBTRACT and a < b:
            a, b = b, a
        elif op is Operator.MULTIPLY:
            a = self._rng.randint(MULTIPLY_OPERAND_MIN, MULTIPLY_OPERAND_MAX)
            b = self._rng.randint(MULTIPLY_OPERAND_MIN, MULTIPLY_OPERAND_MAX)

        entity_type = self._pick_type()
        return make_entity(
            entity_id=next(self._ids),
            a=a,
            b=b,
            op=op,
            entity_type=entity_type,
            spawn_time=next(self._order),
            horizontal_position=self._rng.random(),
            spawned_at_ms=int(now_ms),
            duration_ms=scaled_duration_ms(policy.base_trajectory_ms, entity_type.duration_scale),
        )

    def _pick_operator(self, policy: DifficultyPolicy) -> Operator:
        if policy.rare_operator_unlocked and self._rng.random() < policy.rare_operator_probability:
            return Operator.MULTIPLY
        return self._rng.choice([Operator.ADD, Operator.SUBTRACT])

    def _pick_type(self) -> EntityType:
        if self._rng.random() < BOSS_PROBABILITY:
            return EntityType.BOSS
        if self._rng.random() < FAST_PROBABILITY:
            return EntityType.FAST
        return EntityType.NORMAL
