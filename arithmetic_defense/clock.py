from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def __init__(self) -> None:
        self._origin = time.monotonic()

    def now(self) -> float:
        # Relative to construction so logical milliseconds start near zero.
        return time.monotonic() - self._origin


def to_ms(seconds: float) -> int:
    return int(round(float(seconds) * 1000.0))
