"""
Periodic price refresh.

``RefreshScheduler`` owns one daemon thread that fires a refresh cycle on a
fixed wall-clock cadence counted from ``start()``. Cycles never overlap: a
tick that falls due while a cycle is still running is dropped, and a manual
``run_once()`` during a cycle returns without doing anything.
"""

from __future__ import annotations

import enum
import logging
import math
import threading
import time
from typing import Any, Callable, Optional

from portfolio_service.errors import StorageError

logger = logging.getLogger(__name__)


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class RefreshScheduler:
    def __init__(
        self,
        cycle: Callable[[], Any],
        interval_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
        name: str = "price-refresh",
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._cycle = cycle
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._name = name

        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state = SchedulerState.IDLE

        self.cycles_run = 0
        self.ticks_skipped = 0
        self.last_result: Any = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_started:
            logger.warning("Scheduler %s already started", self._name)
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()
        logger.info("Scheduler %s started, interval %.0fs", self._name, self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop ticking. A cycle already in progress is allowed to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Scheduler %s still finishing a cycle", self._name)
                return
            self._thread = None
        logger.info("Scheduler %s stopped", self._name)

    def run_once(self) -> bool:
        """Run one cycle now. Returns False when a cycle is already running."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.info("Refresh already running, skipping")
            return False
        try:
            self._state = SchedulerState.RUNNING
            self.last_result = self._cycle()
        except StorageError as e:
            logger.error("Refresh cycle aborted: %s", e)
        except Exception:
            # the next tick must still run
            logger.exception("Refresh cycle failed")
        finally:
            self.cycles_run += 1
            self._state = SchedulerState.IDLE
            self._cycle_lock.release()
        return True

    def _loop(self) -> None:
        started_at = self._clock()
        tick = 1
        while True:
            delay = started_at + tick * self.interval_seconds - self._clock()
            if self._stop_event.wait(max(delay, 0.0)):
                break
            self.run_once()

            # ticks that fell due during the cycle are dropped, not queued
            elapsed = self._clock() - started_at
            next_tick = max(tick + 1, math.floor(elapsed / self.interval_seconds) + 1)
            if next_tick > tick + 1:
                skipped = next_tick - tick - 1
                self.ticks_skipped += skipped
                logger.warning("Refresh overran its interval, skipped %d tick(s)", skipped)
            tick = next_tick
