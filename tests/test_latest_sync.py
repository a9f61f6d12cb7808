from __future__ import annotations

from datetime import timedelta

import pytest
from fakes import FakeAnalysis, FakeDataSource, InMemoryStore, make_competition

from game_ratings.analysis.fill_missing import RatingBackfill
from game_ratings.db.enums import CompetitionStatusEnum, PeriodTypeEnum
from game_ratings.domain.entities import Period
from game_ratings.ingestion.errors import FetchError
from game_ratings.ingestion.fetcher import PeriodFetcher
from game_ratings.ingestion.latest import LatestPeriodSync
from game_ratings.jobs.queue import ScheduledJobQueue

WEEK_5 = Period("2024", "5", PeriodTypeEnum.REGULAR)


def _sync(ds: FakeDataSource, store: InMemoryStore, **kwargs) -> LatestPeriodSync:
    return LatestPeriodSync(
        data_source=ds, store=store, fetcher=PeriodFetcher(ds, store), **kwargs
    )


def test_ingests_new_competitions_then_runs_rating_pass() -> None:
    ds = FakeDataSource(latest=WEEK_5)
    ds.add("regular", "5", 3)
    store = InMemoryStore()
    store.save_competitions([ds.by_period[("regular", "5")][0]])
    ratings = RatingBackfill(store, FakeAnalysis())

    result = _sync(ds, store, ratings=ratings).run_once("nfl")

    assert result.period == WEEK_5
    assert result.added == 2
    assert result.ratings_updated == 3
    assert result.jobs_scheduled == 0
    assert store.count() == 3


def test_no_current_period_is_a_no_op() -> None:
    ds = FakeDataSource(latest=None)

    result = _sync(ds, InMemoryStore()).run_once("nfl")

    assert result.period is None
    assert result.added == 0
    assert ds.fetched == []


def test_latest_lookup_failure_raises_fetch_error() -> None:
    with pytest.raises(FetchError):
        _sync(FakeDataSource(fail_latest=True), InMemoryStore()).run_once("nfl")


def test_schedules_analysis_jobs_for_completed_competitions() -> None:
    ds = FakeDataSource(latest=WEEK_5)
    ds.by_period[("regular", "5")] = [
        make_competition("done", period="5"),
        make_competition("live", period="5", status=CompetitionStatusEnum.IN_PROGRESS),
    ]
    store = InMemoryStore()
    q = ScheduledJobQueue()
    try:
        result = _sync(
            ds, store, job_queue=q, analysis_delay=timedelta(minutes=30)
        ).run_once("nfl")
        # Due half an hour from now, not immediately.
        assert q.pending_timers == 1
        assert q.is_waiting("competition_analysis:comp_nfl_done")
    finally:
        q.shutdown()

    assert result.added == 2
    assert result.jobs_scheduled == 1
    assert result.ratings_updated == 0


def test_full_queue_does_not_fail_the_sync() -> None:
    ds = FakeDataSource(latest=WEEK_5)
    ds.add("regular", "5", 3)
    q = ScheduledJobQueue(buffer_size=1)
    try:
        result = _sync(ds, InMemoryStore(), job_queue=q, analysis_delay=timedelta(0)).run_once(
            "nfl"
        )
    finally:
        q.shutdown()

    assert result.added == 3
    assert result.jobs_scheduled == 1
