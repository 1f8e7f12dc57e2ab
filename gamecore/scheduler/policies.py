"""
Interval policies for adaptive polling.

Loop bodies decide *what* to do; these decide *how often*. Keeping them
apart lets cadence be tested without running a loop.
"""
from typing import Any, Callable, Optional

from .core import STOP, NextAction, RunAgainAfter, TickFn


# Distance-based cadence
DISTANCE_SCHEDULE = [
    # (min_distance, max_distance, interval_seconds)
    (0.0, 5.0, 0.0),              # Touching distance: as fast as the floor allows
    (5.0, 20.0, 0.25),            # Interaction range
    (20.0, 50.0, 1.0),            # Nearby
    (50.0, 150.0, 2.5),           # Same area
    (150.0, float("inf"), 5.0),   # Far away: idle poll
]


def interval_for_distance(distance: Optional[float]) -> float:
    """
    Pick a polling interval from DISTANCE_SCHEDULE.

    Args:
        distance: Distance to the nearest point of interest (None = unknown)

    Returns:
        Interval in seconds (unknown distance polls at the slowest rate)
    """
    if distance is None or distance < 0:
        return DISTANCE_SCHEDULE[-1][2]

    for min_d, max_d, interval in DISTANCE_SCHEDULE:
        if min_d <= distance < max_d:
            return interval

    return DISTANCE_SCHEDULE[-1][2]


def proximity_interval(
    distance: float,
    near: float,
    far: float,
    min_interval: float,
    max_interval: float,
) -> float:
    """
    Interpolate linearly between ``min_interval`` at ``near`` and
    ``max_interval`` at ``far``.
    """
    if far <= near:
        raise ValueError("far must be greater than near")
    if distance <= near:
        return min_interval
    if distance >= far:
        return max_interval
    ratio = (distance - near) / (far - near)
    return min_interval + ratio * (max_interval - min_interval)


class IdleBackoff:
    """
    Fast while something is happening, slower each idle tick.

    Usage:
        backoff = IdleBackoff(fast=0.1, slow=2.0)

        def tick(elapsed):
            active = check_weapon_drop()
            return RunAgainAfter(backoff.next(active))
    """

    def __init__(self, fast: float, slow: float, factor: float = 2.0):
        if fast <= 0 or slow < fast:
            raise ValueError("need 0 < fast <= slow")
        if factor <= 1.0:
            raise ValueError("factor must be > 1")
        self.fast = fast
        self.slow = slow
        self.factor = factor
        self.current = fast

    def next(self, active: bool) -> float:
        """Interval to use after a tick that was (or was not) active."""
        if active:
            self.current = self.fast
        else:
            self.current = min(self.current * self.factor, self.slow)
        return self.current

    def reset(self) -> None:
        self.current = self.fast


def every(interval: float, fn: Callable[[], Any]) -> TickFn:
    """
    Wrap a plain callable as a fixed-cadence tick.

    If ``fn`` returns False the task stops; any other return keeps it going.
    """

    def _tick(elapsed: float) -> NextAction:
        if fn() is False:
            return STOP
        return RunAgainAfter(interval)

    return _tick
