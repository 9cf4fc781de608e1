from __future__ import annotations

from collections.abc import Iterable

from .entities import Entity


def find_target(entities: Iterable[Entity], value: int | None) -> Entity | None:
    """Pick the entity a typed value shoots down.

    Among entities whose answer equals ``value`` the earliest spawned wins,
    then the lower id. Deterministic, never random.
    """

    if value is None:
        return None
    matches = [e for e in entities if e.answer == value]
    if not matches:
        return None
    return min(matches, key=lambda e: (e.spawn_time, e.id))
