"""
Clock sources for the cache, registry and scheduler.

Every component takes a ``clock`` callable returning seconds as a float.
Production code uses the process monotonic clock; tests drive time by hand
with ManualClock.
"""
import time
from typing import Callable

Clock = Callable[[], float]


def monotonic_clock() -> float:
    """Seconds from the process monotonic clock."""
    return time.monotonic()


class ManualClock:
    """
    Hand-driven clock.

    Usage:
        clock = ManualClock()
        cache = ValueCache(refresh, ttl=5.0, clock=clock)
        clock.advance(6.0)
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def __call__(self) -> float:
        return self._now

    @property
    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Move time forward and return the new time."""
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, now: float) -> None:
        """Jump to an absolute time (never backwards)."""
        if now < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = float(now)
