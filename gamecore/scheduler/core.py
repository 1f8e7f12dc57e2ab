"""
Core scheduler data structures.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union


class TaskState(Enum):
    """Lifecycle of a polling task."""
    REGISTERED = "registered"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    STOPPED = "stopped"      # Returned Stop or was unregistered; removed
    DISABLED = "disabled"    # Too many consecutive failures, or disabled by hand


class DuplicateTaskError(ValueError):
    """A task with this name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"Task already registered: {name}")
        self.name = name


class UnknownTaskError(KeyError):
    """No task with this name is registered."""


@dataclass(frozen=True)
class RunAgainAfter:
    """Run the task again ``interval`` seconds from now."""
    interval: float


@dataclass(frozen=True)
class Stop:
    """Stop the task and remove it from the scheduler."""


STOP = Stop()

# What a tick may return. A bare number is read as RunAgainAfter(number)
# and None as Stop.
NextAction = Union[RunAgainAfter, Stop, float, int, None]

# (elapsed_since_last_run) -> NextAction
TickFn = Callable[[float], NextAction]


def interval_from_action(action: Any) -> Optional[float]:
    """
    Turn a tick's return value into the next interval.

    Returns:
        Seconds until the next run, or None to stop

    Raises:
        TypeError: The return value is not a NextAction
    """
    if action is None or isinstance(action, Stop):
        return None
    if isinstance(action, RunAgainAfter):
        return float(action.interval)
    if isinstance(action, (int, float)) and not isinstance(action, bool):
        return float(action)
    raise TypeError(f"Tick must return RunAgainAfter, Stop, a number or None, got {action!r}")


@dataclass
class PollTask:
    """
    A registered polling loop.

    Owned by one scheduler. ``elapsed`` passed to the tick is measured from
    the previous run (or from registration for the first run).
    """
    name: str
    tick_fn: TickFn
    interval: float
    next_run_at: float
    registered_at: float
    enabled: bool = True
    state: TaskState = TaskState.REGISTERED
    last_run_at: Optional[float] = None
    run_count: int = 0
    consecutive_failures: int = 0
    failure_count: int = 0
    last_error: Optional[str] = field(default=None)

    def is_due(self, now: float) -> bool:
        return self.enabled and self.next_run_at <= now

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "name": self.name,
            "state": self.state.value,
            "enabled": self.enabled,
            "interval": self.interval,
            "next_run_at": self.next_run_at,
            "last_run_at": self.last_run_at,
            "run_count": self.run_count,
            "consecutive_failures": self.consecutive_failures,
            "failure_count": self.failure_count,
            "last_error": self.last_error,
        }
