"""
Unit tests for AdaptiveLoopScheduler.

Time is driven by a ManualClock; cycles are run explicitly or through
run() with the clock's advance() as the sleep function.
"""
import pytest

from gamecore.scheduler import (
    STOP,
    AdaptiveLoopScheduler,
    DuplicateTaskError,
    RunAgainAfter,
    Stop,
    TaskState,
    UnknownTaskError,
)


def make_scheduler(clock, **kwargs):
    options = {
        "min_interval": 0.1,
        "max_interval": 60.0,
        "max_consecutive_failures": 3,
        "failure_backoff": 1.0,
        "idle_sleep": 0.5,
    }
    options.update(kwargs)
    return AdaptiveLoopScheduler(clock=clock, **options)


class Recorder:
    """Tick that records when it ran and returns a fixed action."""

    def __init__(self, clock, action=RunAgainAfter(1.0)):
        self.clock = clock
        self.action = action
        self.runs = []
        self.elapsed = []

    def __call__(self, elapsed):
        self.runs.append(self.clock())
        self.elapsed.append(elapsed)
        return self.action


def boom(elapsed):
    raise RuntimeError("tick exploded")


# =============================================================================
# Registration
# =============================================================================

class TestRegistration:

    def test_register_schedules_first_run(self, clock):
        scheduler = make_scheduler(clock)
        clock.set(2.0)

        task = scheduler.register("seatbelt", 1.5, Recorder(clock))

        assert task.state == TaskState.SCHEDULED
        assert task.next_run_at == pytest.approx(3.5)
        assert "seatbelt" in scheduler

    def test_duplicate_name_rejected(self, clock):
        scheduler = make_scheduler(clock)
        original = Recorder(clock)
        scheduler.register("hud", 1.0, original)

        with pytest.raises(DuplicateTaskError):
            scheduler.register("hud", 2.0, Recorder(clock))

        assert scheduler.get_task("hud").tick_fn is original

    def test_initial_interval_is_clamped(self, clock):
        scheduler = make_scheduler(clock, min_interval=0.5, max_interval=10.0)
        fast = scheduler.register("fast", 0.0, Recorder(clock))
        slow = scheduler.register("slow", 500.0, Recorder(clock))
        assert fast.interval == 0.5
        assert slow.interval == 10.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"min_interval": 0},
            {"min_interval": 2.0, "max_interval": 1.0},
            {"max_consecutive_failures": 0},
        ],
    )
    def test_invalid_configuration(self, clock, kwargs):
        with pytest.raises(ValueError):
            make_scheduler(clock, **kwargs)


# =============================================================================
# Cycles
# =============================================================================

class TestCycles:

    def test_fixed_interval_runs_five_times_in_5500ms(self, clock):
        scheduler = make_scheduler(clock)
        tick = Recorder(clock, RunAgainAfter(1.0))
        scheduler.register("drop-check", 1.0, tick)

        for _ in range(11):
            clock.advance(0.5)
            scheduler.run_cycle()

        assert tick.runs == [1.0, 2.0, 3.0, 4.0, 5.0]

    def test_run_loop_with_manual_clock(self, clock):
        scheduler = make_scheduler(clock)
        tick = Recorder(clock, RunAgainAfter(1.0))
        scheduler.register("drop-check", 1.0, tick)

        scheduler.run(until=5.5, sleep=clock.advance)

        assert len(tick.runs) == 5
        assert scheduler.running is False

    def test_task_runs_once_per_cycle_even_if_overdue(self, clock):
        scheduler = make_scheduler(clock)
        tick = Recorder(clock, RunAgainAfter(1.0))
        scheduler.register("t", 1.0, tick)

        clock.set(10.0)
        assert scheduler.run_cycle() == 1
        assert scheduler.get_task("t").next_run_at == pytest.approx(11.0)

    def test_elapsed_is_time_since_last_run(self, clock):
        scheduler = make_scheduler(clock)
        tick = Recorder(clock, RunAgainAfter(1.0))
        scheduler.register("t", 2.0, tick)

        for now in (2.0, 3.0, 4.5):
            clock.set(now)
            scheduler.run_cycle()

        assert tick.elapsed == pytest.approx([2.0, 1.0, 1.5])

    def test_adaptive_interval(self, clock):
        scheduler = make_scheduler(clock)
        intervals = iter([3.0, 1.0, 0.25])
        scheduler.register("approach", 1.0, lambda elapsed: RunAgainAfter(next(intervals)))

        clock.set(1.0)
        scheduler.run_cycle()
        assert scheduler.get_task("approach").next_run_at == pytest.approx(4.0)

        clock.set(4.0)
        scheduler.run_cycle()
        assert scheduler.get_task("approach").next_run_at == pytest.approx(5.0)

        clock.set(5.0)
        scheduler.run_cycle()
        assert scheduler.get_task("approach").next_run_at == pytest.approx(5.25)

    def test_bare_number_means_run_again_after(self, clock):
        scheduler = make_scheduler(clock)
        scheduler.register("t", 1.0, lambda elapsed: 2)
        clock.set(1.0)
        scheduler.run_cycle()
        assert scheduler.get_task("t").interval == 2.0

    def test_floor_is_respected(self, clock):
        scheduler = make_scheduler(clock, min_interval=0.25)
        tick = Recorder(clock, RunAgainAfter(0.0))
        scheduler.register("eager", 0.0, tick)

        for _ in range(64):
            clock.advance(0.0625)
            scheduler.run_cycle()

        gaps = [b - a for a, b in zip(tick.runs, tick.runs[1:])]
        assert len(tick.runs) == 16
        assert min(gaps) >= 0.25

    def test_ceiling_is_respected(self, clock):
        scheduler = make_scheduler(clock, max_interval=10.0)
        scheduler.register("lazy", 1.0, lambda elapsed: RunAgainAfter(100.0))
        clock.set(1.0)
        scheduler.run_cycle()
        assert scheduler.get_task("lazy").next_run_at == pytest.approx(11.0)

    def test_tasks_run_in_registration_order(self, clock):
        scheduler = make_scheduler(clock)
        order = []
        for name in ("c", "a", "b"):
            scheduler.register(name, 1.0, lambda elapsed, n=name: order.append(n) or 1.0)

        clock.set(1.0)
        scheduler.run_cycle()

        assert order == ["c", "a", "b"]

    def test_next_wake_at(self, clock):
        scheduler = make_scheduler(clock)
        assert scheduler.next_wake_at() is None
        scheduler.register("a", 3.0, Recorder(clock))
        scheduler.register("b", 1.5, Recorder(clock))
        assert scheduler.next_wake_at() == pytest.approx(1.5)


# =============================================================================
# Stopping and cancellation
# =============================================================================

class TestStopping:

    @pytest.mark.parametrize("action", [STOP, Stop(), None])
    def test_stop_removes_task(self, clock, action):
        scheduler = make_scheduler(clock)
        tick = Recorder(clock, action)
        task = scheduler.register("once", 1.0, tick)

        clock.set(1.0)
        scheduler.run_cycle()
        clock.set(5.0)
        scheduler.run_cycle()

        assert len(tick.runs) == 1
        assert task.state == TaskState.STOPPED
        assert "once" not in scheduler

    def test_unregistered_task_never_runs_again(self, clock):
        scheduler = make_scheduler(clock)
        tick = Recorder(clock)
        task = scheduler.register("t", 1.0, tick)
        clock.set(1.0)
        scheduler.run_cycle()

        assert scheduler.unregister("t") is True

        for now in (2.0, 3.0, 10.0):
            clock.set(now)
            scheduler.run_cycle()
        assert len(tick.runs) == 1
        assert task.state == TaskState.STOPPED
        assert scheduler.unregister("t") is False

    def test_unregister_from_earlier_tick_in_same_cycle(self, clock):
        scheduler = make_scheduler(clock)
        victim = Recorder(clock)
        scheduler.register("owner", 1.0, lambda elapsed: scheduler.unregister("victim") and 1.0)
        scheduler.register("victim", 1.0, victim)

        clock.set(1.0)
        scheduler.run_cycle()

        assert victim.runs == []
        assert "victim" not in scheduler

    def test_task_can_unregister_itself(self, clock):
        scheduler = make_scheduler(clock)
        calls = []

        def tick(elapsed):
            calls.append(elapsed)
            scheduler.unregister("self")
            return RunAgainAfter(1.0)

        task = scheduler.register("self", 1.0, tick)
        for now in (1.0, 2.0, 3.0):
            clock.set(now)
            scheduler.run_cycle()

        assert len(calls) == 1
        assert task.state == TaskState.STOPPED

    def test_shutdown_removes_everything(self, clock):
        scheduler = make_scheduler(clock)
        scheduler.register("a", 1.0, Recorder(clock))
        scheduler.register("b", 1.0, Recorder(clock))

        assert scheduler.shutdown() == 2
        assert len(scheduler) == 0

    def test_stop_from_inside_tick_ends_run_loop(self, clock):
        scheduler = make_scheduler(clock)

        def tick(elapsed):
            scheduler.stop()
            return RunAgainAfter(1.0)

        scheduler.register("stopper", 1.0, tick)
        scheduler.run(until=100.0, sleep=clock.advance)

        assert clock.now == pytest.approx(1.0)
        assert scheduler.get_task("stopper").run_count == 1

    def test_run_after_idle_shutdown(self, clock):
        scheduler = make_scheduler(clock)
        scheduler.shutdown()
        recorder = Recorder(clock)
        scheduler.register("t", 1.0, recorder)

        scheduler.run(until=5.5, sleep=clock.advance)

        assert recorder.runs == [1.0, 2.0, 3.0, 4.0, 5.0]

    def test_stop_while_idle_is_discarded(self, clock):
        scheduler = make_scheduler(clock)
        scheduler.stop()
        scheduler.register("t", 1.0, lambda elapsed: STOP)

        scheduler.run(until=2.0, sleep=clock.advance)

        assert "t" not in scheduler
        assert scheduler.running is False


# =============================================================================
# Failure isolation
# =============================================================================

class TestFailures:

    def test_failing_task_backs_off_then_disables(self, clock):
        scheduler = make_scheduler(clock)
        good = Recorder(clock, RunAgainAfter(1.0))
        bad = scheduler.register("bad", 1.0, boom)
        scheduler.register("good", 1.0, good)

        for now in range(1, 11):
            clock.set(float(now))
            scheduler.run_cycle()

        # Failed at t=1 (retry after 1s), t=2 (retry after 2s), t=4 (disabled)
        assert bad.run_count == 3
        assert bad.state == TaskState.DISABLED
        assert bad.enabled is False
        assert "tick exploded" in bad.last_error
        assert len(good.runs) == 10
        assert scheduler.get_stats()["tasks_disabled"] == 1

    def test_success_resets_consecutive_failures(self, clock):
        scheduler = make_scheduler(clock)
        outcomes = iter([RuntimeError("once"), RunAgainAfter(1.0), RunAgainAfter(1.0)])

        def flaky(elapsed):
            outcome = next(outcomes)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        task = scheduler.register("flaky", 1.0, flaky)
        for now in (1.0, 2.0, 3.0):
            clock.set(now)
            scheduler.run_cycle()

        assert task.consecutive_failures == 0
        assert task.failure_count == 1
        assert task.last_error is None
        assert task.state == TaskState.SCHEDULED

    def test_invalid_return_counts_as_failure(self, clock):
        scheduler = make_scheduler(clock, max_consecutive_failures=1)
        task = scheduler.register("confused", 1.0, lambda elapsed: "soon")

        clock.set(1.0)
        scheduler.run_cycle()

        assert task.state == TaskState.DISABLED
        assert "TypeError" in task.last_error

    def test_enable_after_disable(self, clock):
        scheduler = make_scheduler(clock, max_consecutive_failures=1)
        calls = []

        def tick(elapsed):
            calls.append(clock())
            if len(calls) == 1:
                raise RuntimeError("first run fails")
            return RunAgainAfter(1.0)

        task = scheduler.register("t", 1.0, tick)
        clock.set(1.0)
        scheduler.run_cycle()
        assert task.state == TaskState.DISABLED

        clock.set(5.0)
        scheduler.run_cycle()
        assert len(calls) == 1

        scheduler.enable("t")
        assert task.next_run_at == pytest.approx(6.0)
        clock.set(6.0)
        scheduler.run_cycle()
        assert calls == [1.0, 6.0]
        assert task.state == TaskState.SCHEDULED

    def test_disable_skips_task(self, clock):
        scheduler = make_scheduler(clock)
        tick = Recorder(clock)
        scheduler.register("t", 1.0, tick)

        scheduler.disable("t")
        clock.set(3.0)
        scheduler.run_cycle()

        assert tick.runs == []
        assert scheduler.get_task("t").state == TaskState.DISABLED

    def test_unknown_task(self, clock):
        scheduler = make_scheduler(clock)
        with pytest.raises(UnknownTaskError):
            scheduler.enable("missing")
        with pytest.raises(UnknownTaskError):
            scheduler.disable("missing")


class TestStats:

    def test_stats_and_task_dict(self, clock):
        scheduler = make_scheduler(clock)
        scheduler.register("t", 1.0, Recorder(clock))
        clock.set(1.0)
        scheduler.run_cycle()

        stats = scheduler.get_stats()
        assert stats["tasks"] == 1
        assert stats["enabled"] == 1
        assert stats["cycles"] == 1
        assert stats["ticks"] == 1

        view = scheduler.get_task("t").to_dict()
        assert view["state"] == "scheduled"
        assert view["run_count"] == 1
        assert view["last_run_at"] == 1.0
