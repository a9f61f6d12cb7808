from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from game_ratings.analysis.fill_missing import RatingBackfill
from game_ratings.core.logging import get_logger
from game_ratings.domain.entities import Competition
from game_ratings.domain.interfaces import CompetitionStore
from game_ratings.jobs.queue import Job, JobValidationError

logger = get_logger(component="analysis_jobs")

ANALYSIS_JOB_TYPE = "competition_analysis"


class JobPayloadError(JobValidationError):
    """Job payload could not be decoded into an analysis request."""


@dataclass(frozen=True)
class AnalysisJobPayload:
    competition_id: str

    def to_bytes(self) -> bytes:
        return json.dumps({"competition_id": self.competition_id}).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> AnalysisJobPayload:
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise JobPayloadError(f"invalid analysis job payload: {e}") from e
        if not isinstance(data, dict):
            raise JobPayloadError("analysis job payload must be a JSON object")
        competition_id = data.get("competition_id")
        if not isinstance(competition_id, str) or not competition_id:
            raise JobPayloadError("competition_id is required in job payload")
        return cls(competition_id=competition_id)


def analysis_job_id(competition_id: str) -> str:
    return f"{ANALYSIS_JOB_TYPE}:{competition_id}"


def analysis_job_for(
    competition: Competition,
    *,
    delay: timedelta,
    now: datetime | None = None,
) -> Job:
    """Build an analysis job for `competition`, due `delay` from `now`.

    Jobs are created when a sync first stores a completed game, so `now` stands in
    for the end of the game; the provider reports no final-whistle time.
    """

    now = now or datetime.now(tz=UTC)
    return Job(
        id=analysis_job_id(competition.id),
        type=ANALYSIS_JOB_TYPE,
        payload=AnalysisJobPayload(competition_id=competition.id).to_bytes(),
        scheduled_for=now + delay,
        created_at=now,
    )


@dataclass
class AnalysisJobConsumer:
    """Runs deferred rating generation for `competition_analysis` jobs."""

    store: CompetitionStore
    ratings: RatingBackfill

    def handle(self, job: Job) -> None:
        payload = AnalysisJobPayload.from_bytes(job.payload)

        competition = self.store.get_competition(payload.competition_id)
        if competition is None:
            raise LookupError(f"competition {payload.competition_id} not found")

        rated = self.ratings.rate_one(competition)
        logger.info(
            "analysis_job_processed",
            job_id=job.id,
            competition_id=competition.id,
            rated=rated,
        )
