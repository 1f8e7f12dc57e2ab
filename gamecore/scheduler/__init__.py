"""
Cooperative scheduling of adaptive polling loops.
"""
from .core import (
    STOP,
    DuplicateTaskError,
    NextAction,
    PollTask,
    RunAgainAfter,
    Stop,
    TaskState,
    TickFn,
    UnknownTaskError,
)
from .policies import (
    DISTANCE_SCHEDULE,
    IdleBackoff,
    every,
    interval_for_distance,
    proximity_interval,
)
from .scheduler import AdaptiveLoopScheduler

__all__ = [
    # Core types
    "STOP",
    "DuplicateTaskError",
    "NextAction",
    "PollTask",
    "RunAgainAfter",
    "Stop",
    "TaskState",
    "TickFn",
    "UnknownTaskError",
    # Policies
    "DISTANCE_SCHEDULE",
    "IdleBackoff",
    "every",
    "interval_for_distance",
    "proximity_interval",
    # Scheduler
    "AdaptiveLoopScheduler",
]
