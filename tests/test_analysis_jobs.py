from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest
from fakes import FakeAnalysis, InMemoryStore, make_competition

from game_ratings.analysis.fill_missing import RatingBackfill
from game_ratings.db.enums import RatingTypeEnum
from game_ratings.jobs.analysis import (
    ANALYSIS_JOB_TYPE,
    AnalysisJobConsumer,
    AnalysisJobPayload,
    JobPayloadError,
    analysis_job_for,
)
from game_ratings.jobs.queue import Job, JobValidationError, ScheduledJobQueue

NOW = datetime(2024, 10, 6, 20, 0, tzinfo=UTC)


def test_job_is_due_delay_after_the_game_is_seen_completed() -> None:
    # Kickoff four hours ago: the game is over when the sync first stores it.
    c = make_competition("401", start_time=NOW - timedelta(hours=4))

    job = analysis_job_for(c, delay=timedelta(minutes=30), now=NOW)

    assert job.id == "competition_analysis:comp_nfl_401"
    assert job.type == ANALYSIS_JOB_TYPE
    assert job.scheduled_for == NOW + timedelta(minutes=30)
    assert job.created_at == NOW
    assert AnalysisJobPayload.from_bytes(job.payload).competition_id == "comp_nfl_401"


def test_zero_delay_job_is_due_now() -> None:
    untimed = make_competition("2")

    assert analysis_job_for(untimed, delay=timedelta(0), now=NOW).scheduled_for == NOW


@pytest.mark.parametrize("raw", [b"not json", b"[1, 2]", b"{}", b'{"competition_id": ""}'])
def test_bad_payload_is_rejected(raw: bytes) -> None:
    with pytest.raises(JobPayloadError):
        AnalysisJobPayload.from_bytes(raw)


def test_consumer_rejects_bad_payload_as_validation_error() -> None:
    store = InMemoryStore()
    consumer = AnalysisJobConsumer(store=store, ratings=RatingBackfill(store, FakeAnalysis()))
    job = Job(id="competition_analysis:x", type=ANALYSIS_JOB_TYPE, payload=b"not json")

    with pytest.raises(JobValidationError):
        consumer.handle(job)


def test_consumer_rates_competition() -> None:
    store = InMemoryStore()
    c = make_competition("401")
    store.save_competitions([c])
    consumer = AnalysisJobConsumer(store=store, ratings=RatingBackfill(store, FakeAnalysis()))

    consumer.handle(analysis_job_for(c, delay=timedelta(0)))

    assert store.load_rating(c.id, RatingTypeEnum.EXCITEMENT).score == 75


def test_consumer_raises_for_unknown_competition() -> None:
    store = InMemoryStore()
    consumer = AnalysisJobConsumer(store=store, ratings=RatingBackfill(store, FakeAnalysis()))
    job = Job(
        id="competition_analysis:comp_nfl_x",
        type=ANALYSIS_JOB_TYPE,
        payload=AnalysisJobPayload("comp_nfl_x").to_bytes(),
    )

    with pytest.raises(LookupError):
        consumer.handle(job)


def test_consumer_runs_from_queue() -> None:
    store = InMemoryStore()
    c = make_competition("401")
    store.save_competitions([c])
    analysis = FakeAnalysis()
    consumer = AnalysisJobConsumer(store=store, ratings=RatingBackfill(store, analysis))

    q = ScheduledJobQueue(poll_interval_s=0.01)
    done = threading.Event()

    def handler(job: Job) -> None:
        consumer.handle(job)
        done.set()

    worker = threading.Thread(target=q.process, args=(ANALYSIS_JOB_TYPE, handler), daemon=True)
    worker.start()
    q.schedule(analysis_job_for(c, delay=timedelta(0)))

    assert done.wait(2.0)
    q.shutdown(timeout=2.0)
    assert analysis.produced == [c.id]
