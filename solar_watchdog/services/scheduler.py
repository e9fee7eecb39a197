# solar_watchdog/services/scheduler.py

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable, Optional


class Scheduler:
    """
    Runs ``job`` immediately and then once per ``interval``, measured from
    cycle start. Cycles never overlap: a tick that comes due while a cycle
    is still running is dropped rather than queued.
    """

    def __init__(
        self,
        interval: timedelta,
        job: Callable[[], object],
        log,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.period = interval.total_seconds()
        if self.period <= 0:
            raise ValueError("scheduler interval must be positive")
        self.job = job
        self.log = log
        self._clock = clock
        self._sleep = sleep
        self.cycles_run = 0
        self.ticks_dropped = 0

    # ------------------------------------------------------------------
    def _run_job(self) -> None:
        try:
            self.job()
        except Exception:
            self.log.exception("Monitoring cycle failed; continuing with next tick")
        self.cycles_run += 1

    def _advance(self, next_tick: float, now: float) -> float:
        dropped = 0
        while next_tick < now:
            next_tick += self.period
            dropped += 1
        if dropped:
            self.ticks_dropped += dropped
            self.log.warning(
                "Previous cycle still running when %d tick(s) came due; skipped",
                dropped,
            )
        return next_tick

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        next_tick = self._clock()
        while max_cycles is None or self.cycles_run < max_cycles:
            self._run_job()
            if max_cycles is not None and self.cycles_run >= max_cycles:
                return
            next_tick = self._advance(next_tick + self.period, self._clock())
            delay = next_tick - self._clock()
            if delay > 0:
                self._sleep(delay)
