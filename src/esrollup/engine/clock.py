# src/esrollup/engine/clock.py
"""Clock abstraction for elapsed-time and tick scheduling.

The coordinator and benchmark harness read time through a Clock so tests
can pin elapsed values. Production code uses SystemClock.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of monotonic time in seconds."""

    def monotonic(self) -> float:
        """Return monotonic time in seconds (never goes backwards)."""
        ...


class SystemClock:
    """Production clock backed by time.monotonic()."""

    def monotonic(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to.

    Example:
        clock = ManualClock(start=10.0)
        clock.advance(2.5)
        assert clock.monotonic() == 12.5
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"Cannot advance clock by negative amount: {seconds}")
        self._current += seconds


DEFAULT_CLOCK: Clock = SystemClock()
