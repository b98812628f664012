import threading

import pytest

from services.scheduler import SyncScheduler


# 0.001 min = 60 ms por tick
FAST = 0.001


class _Job:
    def __init__(self, fail_first=False):
        self.calls = 0
        self.fail_first = fail_first
        self.ticked = threading.Event()
        self.twice = threading.Event()

    def __call__(self):
        self.calls += 1
        self.ticked.set()
        if self.calls >= 2:
            self.twice.set()
        if self.fail_first and self.calls == 1:
            raise RuntimeError("remote down")
        return self.calls


def test_start_runs_job_periodically():
    job = _Job()
    scheduler = SyncScheduler(job)
    try:
        scheduler.start(FAST)
        assert scheduler.is_running
        assert scheduler.interval_minutes == FAST
        assert job.twice.wait(timeout=5)
    finally:
        scheduler.stop()


def test_stop_is_idempotent():
    scheduler = SyncScheduler(_Job())

    scheduler.stop()
    scheduler.start(FAST)
    scheduler.stop()
    scheduler.stop()

    assert not scheduler.is_running
    assert scheduler.interval_minutes is None


def test_stop_prevents_further_ticks():
    job = _Job()
    scheduler = SyncScheduler(job)
    scheduler.start(FAST)
    assert job.ticked.wait(timeout=5)

    scheduler.stop()
    calls = job.calls
    threading.Event().wait(0.3)

    assert job.calls <= calls + 1


def test_start_replaces_running_timer():
    job = _Job()
    scheduler = SyncScheduler(job, name="sync-test")
    try:
        scheduler.start(60)
        scheduler.start(FAST)

        workers = [t for t in threading.enumerate() if t.name == "sync-test" and t.is_alive()]
        assert len(workers) == 1
        assert scheduler.interval_minutes == FAST
        assert job.ticked.wait(timeout=5)
    finally:
        scheduler.stop()


def test_failing_tick_keeps_timer_alive():
    job = _Job(fail_first=True)
    scheduler = SyncScheduler(job)
    try:
        scheduler.start(FAST)
        assert job.twice.wait(timeout=5)
        assert scheduler.is_running
    finally:
        scheduler.stop()


def test_run_once_logs_and_swallows_errors(caplog):
    scheduler = SyncScheduler(_Job(fail_first=True))

    assert scheduler.run_once() is None
    assert "Error en sync automático" in caplog.text
    assert scheduler.run_once() == 2


@pytest.mark.parametrize("interval", [0, -5])
def test_rejects_non_positive_interval(interval):
    scheduler = SyncScheduler(_Job())

    with pytest.raises(ValueError):
        scheduler.start(interval)
    assert not scheduler.is_running
