"""Transient effect descriptors.

State transitions never play sounds, buzz the device or spawn particles
themselves. They push inert descriptors onto an ``EffectQueue``; the
presentation layer drains the queue once per frame and performs them.
"""

from __future__ import annotations

from dataclasses import dataclass

from .entities import EntityType

Color = tuple[int, int, int]

TYPE_COLORS: dict[EntityType, Color] = {
    EntityType.NORMAL: (0, 240, 255),
    EntityType.FAST: (251, 191, 36),
    EntityType.BOSS: (255, 0, 85),
}


@dataclass(frozen=True, slots=True)
class HitEffect:
    entity_id: int
    entity_type: EntityType
    x: float  # horizontal position, 0..1
    progress: float  # fall progress at the moment of the hit, 0..1
    color: Color
    points: int


@dataclass(frozen=True, slots=True)
class MissEffect:
    """Screen shake plus an error haptic pulse."""

    entity_id: int
    lives_left: int


@dataclass(frozen=True, slots=True)
class ComboPulse:
    combo: int


@dataclass(frozen=True, slots=True)
class KeyTick:
    """Selection haptic for an accepted key press."""

    key: str


@dataclass(frozen=True, slots=True)
class GameOverEffect:
    final_score: int
    best_score: int


Effect = HitEffect | MissEffect | ComboPulse | KeyTick | GameOverEffect


def color_for(entity_type: EntityType) -> Color:
    return TYPE_COLORS[entity_type]


class EffectQueue:
    def __init__(self) -> None:
        self._pending: list[Effect] = []

    def push(self, effect: Effect) -> None:
        self._pending.append(effect)

    def drain(self) -> list[Effect]:
        out = self._pending
        self._pending = []
        return out
