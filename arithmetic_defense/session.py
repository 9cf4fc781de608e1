from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum

from .entities import Entity
from .input_buffer import DEFAULT_MAX_LENGTH, InputBuffer
from .ledger import ComboTracker, LivesLedger, ScoreLedger

_session_ids = itertools.count(1)


class SessionState(str, Enum):
    MENU = "menu"
    PLAYING = "playing"
    GAMEOVER = "gameover"


@dataclass(frozen=True, slots=True)
class DefenseSnapshot:
    """View model for the UI (pure data)."""

    state: SessionState
    score: int
    lives: int
    starting_lives: int
    combo: int
    input_buffer: str
    live_entities: tuple[Entity, ...]
    best_score: int
    level: int
    now_ms: int


class Session:
    """Mutable aggregate for one game.

    A new ``Session`` is built for every start and restart; an old one is only
    kept around, frozen, so the game-over screen can show its final numbers.
    """

    def __init__(
        self,
        *,
        state: SessionState = SessionState.MENU,
        starting_lives: int = 3,
        max_input_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self.session_id = next(_session_ids)
        self.state = state
        self.score = ScoreLedger()
        self.lives = LivesLedger(starting_lives)
        self.combo = ComboTracker()
        self.buffer = InputBuffer(max_length=max_input_length)
        # dict preserves insertion order, which doubles as spawn order.
        self._live: dict[int, Entity] = {}

    @property
    def playing(self) -> bool:
        return self.state is SessionState.PLAYING

    @property
    def live_entities(self) -> tuple[Entity, ...]:
        return tuple(self._live.values())

    def has_entity(self, entity_id: int) -> bool:
        return entity_id in self._live

    def add_entity(self, entity: Entity) -> None:
        if entity.id in self._live:
            raise ValueError(f"duplicate entity id {entity.id}")
        self._live[entity.id] = entity

    def remove_entity(self, entity_id: int) -> Entity | None:
        return self._live.pop(entity_id, None)
