"""Logical-time callback scheduler.

All asynchronous re-entry into the game (spawn repeats, trajectory deadlines)
goes through a ``Scheduler``. Nothing here reads a real clock: the owner
advances logical time explicitly with :meth:`Scheduler.advance_to`, and every
due callback runs to completion before the next one starts. Tests drive it
with a fake clock and never wait in real time.
"""

from __future__ import annotations

import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass(slots=True, eq=False)
class TimerHandle:
    timer_id: int
    due_ms: int
    callback: Callable[[], None] = field(repr=False)
    interval_ms: int | None = None
    cancelled: bool = False

    @property
    def repeating(self) -> bool:
        return self.interval_ms is not None


class Scheduler:
    """Min-heap of pending callbacks ordered by (due time, scheduling order).

    A callback fired by :meth:`advance_to` observes ``now_ms`` equal to its own
    due time, so work it schedules is anchored to the logical moment it ran
    rather than to whenever the owner happened to poll.
    """

    def __init__(self, *, start_ms: int = 0) -> None:
        self._now_ms = int(start_ms)
        self._queue: list[tuple[int, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._ids = itertools.count(1)
        self._live: dict[int, TimerHandle] = {}

    @property
    def now_ms(self) -> int:
        return self._now_ms

    @property
    def pending_count(self) -> int:
        return len(self._live)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        handle = TimerHandle(timer_id=next(self._ids), due_ms=self._now_ms + int(delay_ms), callback=callback)
        self._push(handle)
        return handle

    def call_every(
        self,
        interval_ms: int,
        callback: Callable[[], None],
        *,
        first_delay_ms: int | None = None,
    ) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        delay = interval_ms if first_delay_ms is None else first_delay_ms
        if delay < 0:
            raise ValueError("first_delay_ms must be >= 0")
        handle = TimerHandle(
            timer_id=next(self._ids),
            due_ms=self._now_ms + int(delay),
            callback=callback,
            interval_ms=int(interval_ms),
        )
        self._push(handle)
        return handle

    def cancel(self, handle: TimerHandle | None) -> bool:
        """Cancel a pending timer. Returns False if it was already done or cancelled."""

        if handle is None or handle.cancelled:
            return False
        handle.cancelled = True
        return self._live.pop(handle.timer_id, None) is not None

    def advance_to(self, now_ms: int) -> int:
        """Fire every callback due at or before ``now_ms``. Returns how many ran.

        Time never moves backwards; an earlier ``now_ms`` is a no-op.
        """

        target = int(now_ms)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due_ms, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now_ms = max(self._now_ms, due_ms)
            if handle.repeating:
                assert handle.interval_ms is not None
                handle.due_ms = due_ms + handle.interval_ms
                heapq.heappush(self._queue, (handle.due_ms, next(self._seq), handle))
            else:
                self._live.pop(handle.timer_id, None)
            handle.callback()
            fired += 1
        self._now_ms = max(self._now_ms, target)
        return fired

    def _push(self, handle: TimerHandle) -> None:
        self._live[handle.timer_id] = handle
        heapq.heappush(self._queue, (handle.due_ms, next(self._seq), handle))
