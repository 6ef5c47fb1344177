import threading
import time

import pytest

from portfolio_service.errors import StorageError
from portfolio_service.scheduler import RefreshScheduler, SchedulerState


def test_run_once_moves_through_running_back_to_idle():
    seen = []
    scheduler = RefreshScheduler(lambda: seen.append(scheduler.state) or "done", interval_seconds=60)

    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.run_once() is True
    assert seen == [SchedulerState.RUNNING]
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.last_result == "done"
    assert scheduler.cycles_run == 1


@pytest.mark.parametrize("exc", [StorageError("load failed"), RuntimeError("boom")])
def test_failed_cycle_returns_to_idle_and_can_run_again(exc):
    calls = []

    def cycle():
        calls.append(1)
        if len(calls) == 1:
            raise exc
        return "ok"

    scheduler = RefreshScheduler(cycle, interval_seconds=60)
    assert scheduler.run_once() is True
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.run_once() is True
    assert scheduler.last_result == "ok"
    assert len(calls) == 2


def test_run_once_is_skipped_while_a_cycle_is_running():
    entered = threading.Event()
    release = threading.Event()

    def cycle():
        entered.set()
        release.wait(5)

    scheduler = RefreshScheduler(cycle, interval_seconds=60)
    worker = threading.Thread(target=scheduler.run_once)
    worker.start()
    try:
        assert entered.wait(5)
        assert scheduler.state is SchedulerState.RUNNING
        assert scheduler.run_once() is False
    finally:
        release.set()
        worker.join(5)
    assert scheduler.cycles_run == 1
    assert scheduler.state is SchedulerState.IDLE


def test_start_ticks_until_stopped():
    ticks = []
    enough = threading.Event()

    def cycle():
        ticks.append(time.monotonic())
        if len(ticks) >= 3:
            enough.set()

    scheduler = RefreshScheduler(cycle, interval_seconds=0.02)
    scheduler.start()
    try:
        assert enough.wait(5)
    finally:
        scheduler.stop(timeout=5)

    assert not scheduler.is_started
    count = len(ticks)
    time.sleep(0.1)
    assert len(ticks) == count


def test_no_cycle_before_the_first_interval():
    calls = []
    scheduler = RefreshScheduler(lambda: calls.append(1), interval_seconds=60)
    scheduler.start()
    scheduler.start()  # second start is a no-op
    scheduler.stop(timeout=5)
    assert calls == []


def test_overrunning_cycle_skips_ticks_instead_of_queueing():
    calls = []
    second = threading.Event()

    def cycle():
        calls.append(1)
        if len(calls) == 1:
            time.sleep(0.2)
        else:
            second.set()

    scheduler = RefreshScheduler(cycle, interval_seconds=0.02)
    scheduler.start()
    try:
        assert second.wait(5)
    finally:
        scheduler.stop(timeout=5)

    assert scheduler.ticks_skipped >= 1


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        RefreshScheduler(lambda: None, interval_seconds=0)


def test_stop_timing_out_mid_cycle_keeps_a_single_loop():
    entered = threading.Event()
    release = threading.Event()
    calls = []

    def cycle():
        calls.append(1)
        entered.set()
        release.wait(5)

    scheduler = RefreshScheduler(cycle, interval_seconds=0.01)
    scheduler.start()
    try:
        assert entered.wait(5)
        scheduler.stop(timeout=0.05)
        # the running loop is still tracked, so start() cannot spawn a second one
        assert scheduler.is_started
        scheduler.start()
    finally:
        release.set()
        scheduler.stop(timeout=5)

    assert not scheduler.is_started
    assert len(calls) == 1
