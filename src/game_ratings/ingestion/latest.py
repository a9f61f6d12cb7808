from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from game_ratings.analysis.fill_missing import RatingBackfill
from game_ratings.core.logging import get_logger
from game_ratings.db.enums import CompetitionStatusEnum
from game_ratings.domain.entities import Period
from game_ratings.domain.interfaces import CompetitionStore, DataSource
from game_ratings.ingestion.errors import FetchError
from game_ratings.ingestion.fetcher import FetchMode, PeriodFetcher
from game_ratings.ingestion.providers.base.errors import ProviderError
from game_ratings.jobs.analysis import analysis_job_for
from game_ratings.jobs.queue import JobQueueError, ScheduledJobQueue

logger = get_logger(component="latest_sync")


@dataclass(frozen=True)
class SyncResult:
    sport: str
    period: Period | None
    added: int = 0
    ratings_updated: int = 0
    jobs_scheduled: int = 0


@dataclass
class LatestPeriodSync:
    """Ingest whatever the provider reports as the current period.

    Same dedup-then-save sequence as one backfill period. On success the rating
    pass runs when `ratings` is set, and with a job queue configured one analysis
    job is scheduled per newly saved completed competition.
    """

    data_source: DataSource
    store: CompetitionStore
    fetcher: PeriodFetcher
    ratings: RatingBackfill | None = None
    job_queue: ScheduledJobQueue | None = None
    analysis_delay: timedelta = timedelta(minutes=30)
    recent_periods: int = 0

    def run_once(self, sport: str) -> SyncResult:
        """Raises `FetchError` or `StoreError` when the period cannot be ingested."""

        try:
            period = self.data_source.get_latest_period(sport)
        except ProviderError as e:
            raise FetchError(f"error resolving latest period for {sport}: {e}") from e

        if period is None:
            logger.info("latest_period_unavailable", sport=sport)
            return SyncResult(sport=sport, period=None)

        competitions = self.fetcher.fetch_period(sport, period, mode=FetchMode.INGEST)
        if competitions:
            self.store.save_competitions(competitions)
        logger.info("latest_period_synced", sport=sport, period=str(period), added=len(competitions))

        jobs_scheduled = 0
        if self.job_queue is not None:
            for c in competitions:
                if c.status != CompetitionStatusEnum.COMPLETED:
                    continue
                try:
                    self.job_queue.schedule(analysis_job_for(c, delay=self.analysis_delay))
                except JobQueueError as e:
                    logger.warning("analysis_job_not_scheduled", competition_id=c.id, error=str(e))
                    continue
                jobs_scheduled += 1

        ratings_updated = 0
        if self.ratings is not None:
            ratings_updated = self.ratings.fill_missing(sport, self.recent_periods).updated

        return SyncResult(
            sport=sport,
            period=period,
            added=len(competitions),
            ratings_updated=ratings_updated,
            jobs_scheduled=jobs_scheduled,
        )
