from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from fakes import FakeAnalysis, FakeDataSource

import game_ratings.db.models  # noqa: F401
from game_ratings.core.config import Settings
from game_ratings.db import Base, DatabaseConfig, create_db_engine, create_session_factory
from game_ratings.db.enums import PeriodTypeEnum
from game_ratings.domain.entities import Period
from game_ratings.jobs.analysis import analysis_job_for
from game_ratings.jobs.queue import ScheduledJobQueue
from game_ratings.service.runner import ServiceRunner

WEEK_3 = Period("2024", "3", PeriodTypeEnum.REGULAR)


def _runner(
    tmp_path: Path,
    ds: FakeDataSource,
    analysis: FakeAnalysis,
    *,
    job_queue: ScheduledJobQueue | None = None,
) -> ServiceRunner:
    url = f"sqlite+pysqlite:///{tmp_path / 'svc.db'}"
    engine = create_db_engine(DatabaseConfig(database_url=url))
    Base.metadata.create_all(engine)
    settings = Settings(_env_file=None).model_copy(
        update={
            "sport": "nfl",
            "fill_recent_periods": 0,
            "sync_interval_s": 3600.0,
            "rating_interval_s": 3600.0,
            "details_interval_s": 0.0,
        }
    )
    return ServiceRunner(
        settings=settings,
        session_factory=create_session_factory(engine),
        data_source=ds,
        analysis=analysis,
        job_queue=job_queue,
    )


def test_sync_latest_saves_and_rates(tmp_path: Path) -> None:
    ds = FakeDataSource(latest=WEEK_3)
    ds.add("regular", "3", 2)
    analysis = FakeAnalysis()
    runner = _runner(tmp_path, ds, analysis)

    result = runner.sync_latest()

    assert result.added == 2
    assert result.ratings_updated == 2
    assert runner.sync_latest().added == 0
    assert runner.fill_ratings().updated == 0


def test_deferred_analysis_schedules_jobs_instead_of_rating(tmp_path: Path) -> None:
    ds = FakeDataSource(latest=WEEK_3)
    ds.add("regular", "3", 2)
    analysis = FakeAnalysis()
    q = ScheduledJobQueue()
    runner = _runner(tmp_path, ds, analysis, job_queue=q)

    try:
        result = runner.sync_latest()
    finally:
        q.shutdown()

    assert result.jobs_scheduled == 2
    assert result.ratings_updated == 0
    assert analysis.produced == []

    sample = ds.by_period[("regular", "3")][0]
    runner.handle_analysis_job(analysis_job_for(sample, delay=timedelta(0)))

    assert analysis.produced == [sample.id]
    assert runner.fill_ratings().updated == 1


def test_rating_fill_leaves_competitions_with_waiting_jobs_alone(tmp_path: Path) -> None:
    ds = FakeDataSource(latest=WEEK_3)
    ds.add("regular", "3", 2)
    analysis = FakeAnalysis()
    q = ScheduledJobQueue()
    runner = _runner(tmp_path, ds, analysis, job_queue=q)

    try:
        runner.sync_latest()
        assert q.pending_timers == 2
        result = runner.fill_ratings()
    finally:
        q.shutdown()

    assert result.processed == 0
    assert analysis.produced == []

def test_fill_details_uses_data_source(tmp_path: Path) -> None:
    ds = FakeDataSource(latest=WEEK_3, fail_details={"r3-0", "r3-1"})
    ds.add("regular", "3", 2)
    runner = _runner(tmp_path, ds, FakeAnalysis())
    runner.sync_latest()

    ds.fail_details.clear()
    result = runner.fill_details()

    assert result.processed == 2
    assert result.updated == 2


def test_start_and_stop(tmp_path: Path) -> None:
    ds = FakeDataSource(latest=None)
    q = ScheduledJobQueue(poll_interval_s=0.01)
    runner = _runner(tmp_path, ds, FakeAnalysis(), job_queue=q)

    runner.start()
    assert sorted(j.id for j in runner.scheduler.get_jobs()) == ["latest_sync", "rating_fill"]
    runner.stop(timeout=5.0)

    assert runner.stop_event.is_set()
    assert q.closed
    assert not runner.scheduler.running
    assert set(runner.loops) == {"latest_sync", "rating_fill"}
