from __future__ import annotations

import logging
from collections.abc import Callable

from .difficulty import policy_for_score
from .entities import Entity, EntityFactory
from .scheduler import Scheduler, TimerHandle
from .session import Session

logger = logging.getLogger(__name__)


class Spawner:
    """Owns the repeating spawn schedule of one playing session.

    The firing interval is always the one the difficulty policy gives for the
    current score. When a score change moves the interval, the pending repeat
    is cancelled and a new one is scheduled from that moment; there is never
    more than one repeat outstanding.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        factory: EntityFactory,
        on_spawn: Callable[[Entity], None] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._factory = factory
        self._on_spawn = on_spawn
        self._session: Session | None = None
        self._handle: TimerHandle | None = None
        self._interval_ms: int | None = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def interval_ms(self) -> int | None:
        return self._interval_ms

    def start(self, session: Session) -> Entity | None:
        """Spawn one entity right away, then repeat at the policy interval."""

        self.stop()
        self._session = session
        first = self._spawn_one()
        if session.playing:
            self._schedule(policy_for_score(session.score.total).spawn_interval_ms)
        return first

    def on_score_changed(self) -> bool:
        """Re-evaluate the policy. Returns True if the schedule was replaced."""

        if self._session is None or not self.active:
            return False
        interval = policy_for_score(self._session.score.total).spawn_interval_ms
        if interval == self._interval_ms:
            return False
        logger.debug(f"spawn interval {self._interval_ms}ms -> {interval}ms at score {self._session.score.total}")
        self._scheduler.cancel(self._handle)
        self._schedule(interval)
        return True

    def stop(self) -> None:
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
        self._handle = None
        self._interval_ms = None
        self._session = None

    def _schedule(self, interval_ms: int) -> None:
        self._interval_ms = interval_ms
        self._handle = self._scheduler.call_every(interval_ms, self._tick)

    def _tick(self) -> None:
        self._spawn_one()

    def _spawn_one(self) -> Entity | None:
        session = self._session
        if session is None or not session.playing:
            return None
        policy = policy_for_score(session.score.total)
        entity = self._factory.create(policy, now_ms=self._scheduler.now_ms)
        session.add_entity(entity)
        logger.debug(f"spawned entity {entity.id} '{entity.text}' ({entity.type.value}, {entity.duration_ms}ms)")
        if self._on_spawn is not None:
            self._on_spawn(entity)
        return entity
