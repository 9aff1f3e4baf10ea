"""Unit tests for the poll scheduler."""

import pytest

from src.scheduler import Scheduler, first_trigger


class FakeClock:
    """Clock whose sleep advances time instantly."""

    def __init__(self, now):
        self.now = now
        self.sleeps = []

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestFirstTrigger:
    """Unit tests for boundary alignment."""

    def test_rolls_forward_to_next_boundary(self):
        assert first_trigger(1000.0, 300) == 1200.0
        assert first_trigger(1199.9, 300) == 1200.0

    def test_exact_boundary_fires_immediately(self):
        assert first_trigger(1200.0, 300) == 1200.0

    def test_one_minute_boundary(self):
        assert first_trigger(61.5, 60) == 120.0


class TestSchedulerUnit:
    """Unit tests for Scheduler."""

    def run_cycles(self, clock, cycles, interval=300, boundary=300, duration=0.0):
        ticks = []
        scheduler = None

        def task():
            ticks.append(clock.now)
            clock.now += duration
            if len(ticks) == cycles:
                scheduler.stop()

        scheduler = Scheduler(
            task, interval, boundary, clock=clock.time, sleep=clock.sleep
        )
        scheduler.run()
        return ticks

    def test_first_cycle_waits_for_boundary(self):
        clock = FakeClock(1000.0)

        ticks = self.run_cycles(clock, cycles=1)

        assert ticks == [1200.0]
        assert clock.sleeps == [200.0]

    def test_cycles_repeat_on_fixed_period(self):
        clock = FakeClock(1000.0)

        ticks = self.run_cycles(clock, cycles=4, interval=60, duration=5.0)

        assert ticks == [1200.0, 1260.0, 1320.0, 1380.0]

    def test_overrunning_cycle_skips_missed_ticks(self):
        clock = FakeClock(1200.0)

        ticks = self.run_cycles(clock, cycles=2, interval=60, duration=130.0)

        assert ticks == [1200.0, 1380.0]

    def test_failing_task_does_not_stop_scheduler(self):
        clock = FakeClock(0.0)
        calls = []
        scheduler = None

        def task():
            calls.append(clock.now)
            if len(calls) == 3:
                scheduler.stop()
            raise RuntimeError("boom")

        scheduler = Scheduler(task, 10, 10, clock=clock.time, sleep=clock.sleep)
        scheduler.run()

        assert calls == [0.0, 10.0, 20.0]
        assert scheduler.ticks == 3

    def test_stop_before_first_cycle(self):
        calls = []
        scheduler = Scheduler(lambda: calls.append(1), 300, 300)
        scheduler.stop()

        scheduler.run()

        assert calls == []
        assert scheduler.stopped

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            Scheduler(lambda: None, 0, 300)
