"""Deterministic core of the arithmetic defense game.

``DefenseGame`` is the only object the presentation layer talks to. It is a
small state machine::

    MENU -> PLAYING -> GAMEOVER -> PLAYING -> ...

and every mutation (a spawn, a hit, a miss, a transition) happens inside one
call on it, never interleaved with another. Time comes from an injected
``Clock``; before any action is applied the engine first catches its
scheduler up to the clock, so spawns and misses that were due earlier are
resolved in order before the key press that arrived after them.

Side effects (explosions, shakes, haptics) are queued as descriptors and
handed out by :meth:`DefenseGame.drain_effects`.
"""

from __future__ import annotations

import logging
import random

from .clock import Clock, to_ms
from .config import DefenseConfig
from .difficulty import policy_for_score
from .effects import ComboPulse, Effect, EffectQueue, GameOverEffect, HitEffect, KeyTick, MissEffect, color_for
from .entities import Entity, EntityFactory
from .matcher import find_target
from .scheduler import Scheduler
from .session import DefenseSnapshot, Session, SessionState
from .spawner import Spawner
from .trajectory import TrajectoryClock

logger = logging.getLogger(__name__)

COMBO_PULSE_MIN = 2


class DefenseGame:
    def __init__(
        self,
        *,
        clock: Clock,
        config: DefenseConfig,
    ) -> None:
        self._clock = clock
        self._config = config
        self._seed = int(config.seed)

        self._scheduler = Scheduler(start_ms=to_ms(clock.now()))
        self._factory = EntityFactory(random.Random(self._seed))
        self._trajectories = TrajectoryClock(scheduler=self._scheduler, on_complete=self._on_deadline)
        self._spawner = Spawner(
            scheduler=self._scheduler,
            factory=self._factory,
            on_spawn=self._trajectories.track,
        )
        self._effects = EffectQueue()

        self._session = self._new_session(SessionState.MENU)
        self._best_score = 0

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def session(self) -> Session:
        return self._session

    @property
    def best_score(self) -> int:
        return self._best_score

    @property
    def spawner(self) -> Spawner:
        return self._spawner

    @property
    def trajectories(self) -> TrajectoryClock:
        return self._trajectories

    @property
    def now_ms(self) -> int:
        return self._scheduler.now_ms

    # -- Transitions ---------------------------------------------------------
    def start(self) -> bool:
        self._sync()
        if self._session.state is not SessionState.MENU:
            return False
        self._begin_session()
        return True

    def restart(self) -> bool:
        self._sync()
        if self._session.state is not SessionState.GAMEOVER:
            return False
        self._begin_session()
        return True

    def update(self) -> None:
        """Advance logical time to the clock, firing due spawns and misses."""
        self._sync()

    # -- Input ---------------------------------------------------------------
    def submit_digit(self, digit: str) -> bool:
        self._sync()
        session = self._session
        if not session.playing:
            return False
        if not session.buffer.push_digit(str(digit)):
            return False
        self._effects.push(KeyTick(key=str(digit)))
        self._match_buffer()
        return True

    def clear(self) -> bool:
        self._sync()
        if not self._session.playing:
            return False
        self._session.buffer.clear()
        self._effects.push(KeyTick(key="clear"))
        return True

    def backspace(self) -> bool:
        self._sync()
        if not self._session.playing:
            return False
        self._session.buffer.backspace()
        self._effects.push(KeyTick(key="delete"))
        self._match_buffer()
        return True

    # -- Miss notification ---------------------------------------------------
    def on_trajectory_complete(self, entity_id: int) -> bool:
        """Presentation-side completion hook. Idempotent per entity id."""

        self._sync()
        return self._resolve_miss(entity_id)

    # -- Views ---------------------------------------------------------------
    def snapshot(self) -> DefenseSnapshot:
        session = self._session
        score = session.score.total
        return DefenseSnapshot(
            state=session.state,
            score=score,
            lives=session.lives.remaining,
            starting_lives=session.lives.starting,
            combo=session.combo.value,
            input_buffer=session.buffer.text,
            live_entities=session.live_entities,
            best_score=self._best_score,
            level=policy_for_score(score).level,
            now_ms=self._scheduler.now_ms,
        )

    def drain_effects(self) -> list[Effect]:
        return self._effects.drain()

    # -- Internals -----------------------------------------------------------
    def _sync(self) -> None:
        self._scheduler.advance_to(to_ms(self._clock.now()))

    def _new_session(self, state: SessionState) -> Session:
        return Session(
            state=state,
            starting_lives=self._config.starting_lives,
            max_input_length=self._config.max_input_length,
        )

    def _begin_session(self) -> None:
        self._halt_schedules()
        self._session = self._new_session(SessionState.PLAYING)
        logger.info(f"session {self._session.session_id} started (seed={self._seed})")
        self._spawner.start(self._session)

    def _halt_schedules(self) -> None:
        self._spawner.stop()
        cancelled = self._trajectories.cancel_all()
        if cancelled:
            logger.debug(f"cancelled {cancelled} pending trajectory deadlines")

    def _on_deadline(self, entity_id: int) -> None:
        self._resolve_miss(entity_id)

    def _match_buffer(self) -> None:
        session = self._session
        target = find_target(session.live_entities, session.buffer.value())
        if target is not None:
            self._resolve_hit(target)

    def _resolve_hit(self, entity: Entity) -> None:
        session = self._session
        if session.remove_entity(entity.id) is None:
            return
        self._trajectories.release(entity.id)
        session.buffer.clear()

        combo_before = session.combo.hit()
        points = session.score.award(entity.type, combo_before)
        now_ms = self._scheduler.now_ms
        self._effects.push(
            HitEffect(
                entity_id=entity.id,
                entity_type=entity.type,
                x=entity.horizontal_position,
                progress=entity.progress(now_ms),
                color=color_for(entity.type),
                points=points,
            )
        )
        if session.combo.value >= COMBO_PULSE_MIN:
            self._effects.push(ComboPulse(combo=session.combo.value))
        logger.debug(
            f"hit entity {entity.id} '{entity.text}' +{points} (combo {session.combo.value}, score {session.score.total})"
        )
        self._spawner.on_score_changed()

    def _resolve_miss(self, entity_id: int) -> bool:
        session = self._session
        if not session.playing:
            return False
        entity = session.remove_entity(entity_id)
        if entity is None:
            return False
        self._trajectories.release(entity_id)

        session.combo.miss()
        remaining = session.lives.lose()
        self._effects.push(MissEffect(entity_id=entity_id, lives_left=remaining))
        logger.debug(f"missed entity {entity_id} '{entity.text}', {remaining} lives left")

        if session.lives.depleted:
            self._end_session()
        return True

    def _end_session(self) -> None:
        self._halt_schedules()
        session = self._session
        session.state = SessionState.GAMEOVER
        final = session.score.total
        self._best_score = max(self._best_score, final)
        self._effects.push(GameOverEffect(final_score=final, best_score=self._best_score))
        logger.info(f"session {session.session_id} over with score {final}")
