from __future__ import annotations

import threading
from datetime import UTC

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from game_ratings.service.loops import LoopStats, add_interval_loop, guarded


@pytest.fixture
def scheduler():
    s = BackgroundScheduler(timezone=UTC)
    yield s
    if s.running:
        s.shutdown(wait=True)


def test_guarded_logs_and_counts_failures() -> None:
    stats = LoopStats(name="sync")

    def boom() -> None:
        raise RuntimeError("provider down")

    run = guarded(stats, boom)
    run()
    run()

    assert stats.ticks == 2
    assert stats.failures == 2


def test_failing_tick_does_not_stop_the_loop(scheduler: BackgroundScheduler) -> None:
    calls = {"n": 0}
    third = threading.Event()

    def fn() -> None:
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("provider down")
        if calls["n"] >= 3:
            third.set()

    stats = add_interval_loop(scheduler, "sync", fn, interval_s=0.05)
    scheduler.start()

    assert third.wait(5.0)
    scheduler.shutdown(wait=True)

    assert stats.failures == 1
    assert stats.ticks >= 3


def test_loop_without_immediate_run_waits_for_its_interval(
    scheduler: BackgroundScheduler,
) -> None:
    ran = threading.Event()

    stats = add_interval_loop(scheduler, "rating", ran.set, interval_s=60.0, run_immediately=False)
    scheduler.start()
    scheduler.shutdown(wait=True)

    assert not ran.is_set()
    assert stats.ticks == 0


def test_job_options(scheduler: BackgroundScheduler) -> None:
    add_interval_loop(scheduler, "details", lambda: None, interval_s=1800.0)

    job = scheduler.get_job("details")
    assert job.max_instances == 1
    assert job.coalesce is True
    assert job.trigger.interval.total_seconds() == 1800.0


def test_interval_must_be_positive(scheduler: BackgroundScheduler) -> None:
    with pytest.raises(ValueError):
        add_interval_loop(scheduler, "bad", lambda: None, interval_s=0)
