"""Boundary-aligned poll scheduling for Reddit IRC Bot."""

import math
import threading
import time
from collections.abc import Callable

from .logging_config import create_execution_logger


def first_trigger(now: float, boundary: float) -> float:
    """Return the first boundary-aligned instant at or after now.

    Args:
        now: Current time as a UNIX timestamp
        boundary: Rounding boundary in seconds (e.g. 300 for 5 minutes)

    Returns:
        UNIX timestamp of the first cycle
    """
    rounded = math.floor(now / boundary) * boundary
    if rounded < now:
        rounded += boundary
    return rounded


class Scheduler:
    """Runs a task on a fixed period, starting on a wall-clock boundary."""

    def __init__(
        self,
        task: Callable[[], object],
        interval: float,
        boundary: float,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the scheduler.

        Args:
            task: Callable run once per tick
            interval: Period between ticks in seconds
            boundary: Rounding boundary for the first tick in seconds
            clock: Returns the current UNIX time
            sleep: Blocks for the given number of seconds; interruptible by
                ``stop()`` when not supplied
            execution_id: Execution ID for logging context
        """
        if interval <= 0 or boundary <= 0:
            raise ValueError("interval and boundary must be positive")

        self.task = task
        self.interval = interval
        self.boundary = boundary
        self.clock = clock
        self._stop = threading.Event()
        self.sleep = sleep or self._stop.wait
        self.logger = create_execution_logger("scheduler", execution_id)
        self.ticks = 0

    def stop(self) -> None:
        """Ask the scheduler to return after the current tick."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _sleep_until(self, instant: float) -> None:
        delay = instant - self.clock()
        if delay > 0:
            self.sleep(delay)

    def _tick(self) -> None:
        self.ticks += 1
        try:
            self.task()
        except Exception as e:
            self.logger.exception(f"Scheduled task failed: {e}", error=str(e))

    def run(self) -> None:
        """Block running the task until stop() is called."""
        start = first_trigger(self.clock(), self.boundary)
        self.logger.info(
            "Waiting for first cycle",
            first_cycle=start,
            delay_seconds=max(start - self.clock(), 0),
        )
        self._sleep_until(start)

        next_tick = start + self.interval
        while not self._stop.is_set():
            self._tick()
            if self._stop.is_set():
                break

            now = self.clock()
            if next_tick <= now:
                missed = math.floor((now - next_tick) / self.interval) + 1
                next_tick += missed * self.interval
                self.logger.warning(
                    f"Cycle overran its interval, skipping {missed} tick(s)",
                    missed_ticks=missed,
                )

            self._sleep_until(next_tick)
            next_tick += self.interval

        self.logger.info("Scheduler stopped", ticks=self.ticks)
