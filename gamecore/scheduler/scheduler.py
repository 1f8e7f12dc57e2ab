"""
Cooperative scheduler for many adaptive polling loops.

Each loop is a registered task whose tick returns its own next interval.
Ticks run one at a time on whichever thread drives run_cycle()/run(); a
tick occupies that thread until it returns, so ticks must stay short.
"""
import threading
import logging
from typing import Any, Callable, Dict, List, Optional

from config.settings import settings
from gamecore.utils.clock import Clock, monotonic_clock

from .core import (
    DuplicateTaskError,
    PollTask,
    TaskState,
    TickFn,
    UnknownTaskError,
    interval_from_action,
)

logger = logging.getLogger("scheduler.loop")


class AdaptiveLoopScheduler:
    """
    Runs registered polling tasks when they come due.

    - A task is due when ``next_run_at <= now``; it runs at most once per
      cycle and its next run is measured from the cycle time
    - Every interval is clamped to [min_interval, max_interval], so a task
      never runs twice within less than min_interval
    - A tick that raises is retried with exponential backoff and disabled
      after max_consecutive_failures in a row; other tasks are unaffected
    - unregister() takes effect immediately, including for tasks still
      pending in the current cycle

    Usage:
        scheduler = AdaptiveLoopScheduler()
        scheduler.register("seatbelt", 0.5, seatbelt_tick)
        scheduler.run()
    """

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        min_interval: Optional[float] = None,
        max_interval: Optional[float] = None,
        max_consecutive_failures: Optional[int] = None,
        failure_backoff: Optional[float] = None,
        idle_sleep: Optional[float] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            clock: Time source in seconds (monotonic clock if None)
            min_interval: Floor for every interval
            max_interval: Ceiling for every interval
            max_consecutive_failures: Failures in a row before a task is disabled
            failure_backoff: Retry delay after the first failure (doubles after each)
            idle_sleep: Longest the run() loop sleeps between cycles
        """
        self._clock = clock or monotonic_clock
        self.min_interval = (
            min_interval if min_interval is not None
            else settings.scheduler_min_interval_seconds
        )
        self.max_interval = (
            max_interval if max_interval is not None
            else settings.scheduler_max_interval_seconds
        )
        self.max_consecutive_failures = (
            max_consecutive_failures if max_consecutive_failures is not None
            else settings.scheduler_max_consecutive_failures
        )
        self.failure_backoff = (
            failure_backoff if failure_backoff is not None
            else settings.scheduler_failure_backoff_seconds
        )
        self.idle_sleep = (
            idle_sleep if idle_sleep is not None
            else settings.scheduler_idle_sleep_seconds
        )

        if self.min_interval <= 0:
            raise ValueError(f"min_interval must be positive, got {self.min_interval}")
        if self.max_interval < self.min_interval:
            raise ValueError("max_interval must be >= min_interval")
        if self.max_consecutive_failures < 1:
            raise ValueError("max_consecutive_failures must be >= 1")

        # Insertion order is registration order, which is also run order
        self._tasks: Dict[str, PollTask] = {}
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._started = threading.Event()
        self._running = False

        self._stats = {
            "cycles": 0,
            "ticks": 0,
            "tick_failures": 0,
            "tasks_stopped": 0,
            "tasks_disabled": 0,
        }

    def clamp(self, interval: float) -> float:
        """Clamp an interval to the scheduler's floor and ceiling."""
        return min(max(interval, self.min_interval), self.max_interval)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, name: str, initial_interval: float, tick_fn: TickFn) -> PollTask:
        """
        Register a polling task; its first run is ``initial_interval`` from now.

        Raises:
            DuplicateTaskError: A task with this name already exists
        """
        with self._lock:
            if name in self._tasks:
                raise DuplicateTaskError(name)
            now = self._clock()
            interval = self.clamp(initial_interval)
            task = PollTask(
                name=name,
                tick_fn=tick_fn,
                interval=interval,
                next_run_at=now + interval,
                registered_at=now,
            )
            self._tasks[name] = task
            task.state = TaskState.SCHEDULED
        logger.info(f"Registered task: {name} [interval={interval}s]")
        return task

    def unregister(self, name: str) -> bool:
        """
        Stop and remove a task.

        Once this returns the task's tick is never called again. Safe to call
        from inside any tick, including the task's own.

        Returns:
            True if the task existed
        """
        with self._lock:
            task = self._tasks.pop(name, None)
            if task is None:
                return False
            task.enabled = False
            task.state = TaskState.STOPPED
            self._stats["tasks_stopped"] += 1
        logger.info(f"Unregistered task: {name}")
        return True

    def enable(self, name: str) -> None:
        """Re-enable a disabled task; it next runs one interval from now."""
        with self._lock:
            task = self._require(name)
            if task.enabled:
                return
            task.enabled = True
            task.consecutive_failures = 0
            task.next_run_at = self._clock() + task.interval
            task.state = TaskState.SCHEDULED
        logger.info(f"Enabled task: {name}")

    def disable(self, name: str) -> None:
        """Keep a task registered but skip it until enable()."""
        with self._lock:
            task = self._require(name)
            task.enabled = False
            task.state = TaskState.DISABLED
        logger.info(f"Disabled task: {name}")

    def shutdown(self) -> int:
        """
        Stop the run() loop and unregister every task.

        Returns:
            Number of tasks removed
        """
        self.stop()
        with self._lock:
            names = list(self._tasks)
            for name in names:
                self.unregister(name)
        return len(names)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def run_cycle(self, now: Optional[float] = None) -> int:
        """
        Run every enabled task that is due.

        Args:
            now: Cycle time (the clock's current time if None)

        Returns:
            Number of ticks run
        """
        with self._lock:
            if now is None:
                now = self._clock()
            due = [t for t in self._tasks.values() if t.is_due(now)]
            ran = 0
            for task in due:
                # An earlier tick in this cycle may have removed or disabled it
                if self._tasks.get(task.name) is not task or not task.enabled:
                    continue
                self._run_task(task, now)
                ran += 1
            self._stats["cycles"] += 1
            return ran

    def _run_task(self, task: PollTask, now: float) -> None:
        since = task.last_run_at if task.last_run_at is not None else task.registered_at
        elapsed = now - since

        task.state = TaskState.RUNNING
        task.last_run_at = now
        task.run_count += 1
        self._stats["ticks"] += 1

        try:
            interval = interval_from_action(task.tick_fn(elapsed))
        except Exception as e:
            self._handle_failure(task, now, e)
            return

        task.consecutive_failures = 0
        task.last_error = None

        if self._tasks.get(task.name) is not task:
            # Unregistered itself during the tick
            task.state = TaskState.STOPPED
            return

        if interval is None:
            del self._tasks[task.name]
            task.enabled = False
            task.state = TaskState.STOPPED
            self._stats["tasks_stopped"] += 1
            logger.info(f"Task stopped: {task.name} [runs={task.run_count}]")
            return

        task.interval = self.clamp(interval)
        task.next_run_at = now + task.interval
        task.state = TaskState.SCHEDULED if task.enabled else TaskState.DISABLED
        logger.debug(f"Tick {task.name}: next in {task.interval:.3f}s")

    def _handle_failure(self, task: PollTask, now: float, error: Exception) -> None:
        task.consecutive_failures += 1
        task.failure_count += 1
        task.last_error = f"{type(error).__name__}: {error}"
        self._stats["tick_failures"] += 1

        if self._tasks.get(task.name) is not task:
            task.state = TaskState.STOPPED
            logger.warning(f"Task {task.name} failed after unregistering itself: {error}")
            return

        if task.consecutive_failures >= self.max_consecutive_failures:
            task.enabled = False
            task.state = TaskState.DISABLED
            self._stats["tasks_disabled"] += 1
            logger.error(
                f"Task {task.name} disabled after {task.consecutive_failures} "
                f"consecutive failures: {task.last_error}",
                exc_info=error,
            )
            return

        backoff = self.clamp(self.failure_backoff * 2 ** (task.consecutive_failures - 1))
        task.next_run_at = now + backoff
        task.state = TaskState.SCHEDULED if task.enabled else TaskState.DISABLED
        logger.warning(
            f"Task {task.name} failed "
            f"({task.consecutive_failures}/{self.max_consecutive_failures}), "
            f"retrying in {backoff:.2f}s: {task.last_error}",
            exc_info=error,
        )

    def next_wake_at(self) -> Optional[float]:
        """Earliest next_run_at among enabled tasks, or None if none."""
        with self._lock:
            times = [t.next_run_at for t in self._tasks.values() if t.enabled]
        return min(times) if times else None

    def run(
        self,
        until: Optional[float] = None,
        sleep: Optional[Callable[[float], Any]] = None,
    ) -> None:
        """
        Drive cycles until stop() is called (or the clock reaches ``until``).

        Between cycles the loop sleeps until the next task is due, capped at
        ``idle_sleep``. Only a stop() issued while this loop is running ends
        it; a stop() or shutdown() from an earlier, idle period is discarded.

        Args:
            until: Clock time at which to return
            sleep: Sleep function (waits on the stop event if None, so stop()
                wakes the loop immediately)
        """
        sleep = sleep or self._stop_event.wait
        with self._lock:
            self._stop_event.clear()
            self._running = True
            self._started.set()
        logger.info("Scheduler loop started")
        try:
            while not self._stop_event.is_set():
                now = self._clock()
                if until is not None and now >= until:
                    break
                self.run_cycle(now)

                delay = self.idle_sleep
                wake = self.next_wake_at()
                current = self._clock()
                if wake is not None:
                    delay = min(delay, max(wake - current, 0.0))
                if until is not None:
                    delay = min(delay, max(until - current, 0.0))
                if delay > 0 and not self._stop_event.is_set():
                    sleep(delay)
        finally:
            self._running = False
            self._started.clear()
            self._stop_event.clear()
            logger.info("Scheduler loop stopped")

    def stop(self) -> None:
        """Ask the run() loop to return before its next cycle."""
        self._stop_event.set()

    @property
    def running(self) -> bool:
        return self._running

    def wait_started(self, timeout: Optional[float] = None) -> bool:
        """Block until a run() loop has started; False on timeout."""
        return self._started.wait(timeout)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def _require(self, name: str) -> PollTask:
        task = self._tasks.get(name)
        if task is None:
            raise UnknownTaskError(name)
        return task

    def get_task(self, name: str) -> Optional[PollTask]:
        with self._lock:
            return self._tasks.get(name)

    def tasks(self) -> List[PollTask]:
        with self._lock:
            return list(self._tasks.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def get_stats(self) -> Dict[str, Any]:
        """Get scheduler statistics."""
        with self._lock:
            tasks = list(self._tasks.values())
            return {
                "running": self._running,
                "tasks": len(tasks),
                "enabled": sum(1 for t in tasks if t.enabled),
                "next_wake_at": self.next_wake_at(),
                **self._stats,
            }
