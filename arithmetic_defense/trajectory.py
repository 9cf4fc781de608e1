from __future__ import annotations

from collections.abc import Callable

from .entities import Entity
from .scheduler import Scheduler, TimerHandle


class TrajectoryClock:
    """One-shot completion deadline per live entity.

    The engine never reads animation positions. Each entity gets a single
    scheduled callback at ``spawned_at_ms + duration_ms``; a hit releases it
    early and leaving play cancels whatever is still outstanding.
    """

    def __init__(self, *, scheduler: Scheduler, on_complete: Callable[[int], None]) -> None:
        self._scheduler = scheduler
        self._on_complete = on_complete
        self._pending: dict[int, TimerHandle] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_tracking(self, entity_id: int) -> bool:
        return entity_id in self._pending

    def track(self, entity: Entity) -> None:
        if entity.id in self._pending:
            return
        delay = max(0, entity.deadline_ms - self._scheduler.now_ms)
        entity_id = entity.id
        self._pending[entity_id] = self._scheduler.call_later(delay, lambda: self._fire(entity_id))

    def release(self, entity_id: int) -> bool:
        handle = self._pending.pop(entity_id, None)
        if handle is None:
            return False
        self._scheduler.cancel(handle)
        return True

    def cancel_all(self) -> int:
        count = 0
        for entity_id in list(self._pending):
            if self.release(entity_id):
                count += 1
        return count

    def _fire(self, entity_id: int) -> None:
        if self._pending.pop(entity_id, None) is None:
            return
        self._on_complete(entity_id)
