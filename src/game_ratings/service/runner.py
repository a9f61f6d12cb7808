from __future__ import annotations

import signal
import threading
from dataclasses import dataclass, field
from datetime import UTC, timedelta
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session, sessionmaker

from game_ratings.analysis.fill_missing import DetailsBackfill, FillMissingResult, RatingBackfill
from game_ratings.analysis.openai_rating import build_openai_rating_service
from game_ratings.core.config import Settings
from game_ratings.core.logging import get_logger
from game_ratings.db import DatabaseConfig, create_db_engine, create_session_factory, session_scope
from game_ratings.db.repos.competition_repo import SqlCompetitionStore
from game_ratings.domain.entities import Competition
from game_ratings.domain.interfaces import AnalysisService, DataSource
from game_ratings.ingestion.fetcher import PeriodFetcher
from game_ratings.ingestion.latest import LatestPeriodSync, SyncResult
from game_ratings.ingestion.providers.espn.data_source import build_espn_data_source
from game_ratings.ingestion.retry import RetryingDataSource
from game_ratings.jobs.analysis import ANALYSIS_JOB_TYPE, AnalysisJobConsumer, analysis_job_id
from game_ratings.jobs.queue import Job, ScheduledJobQueue
from game_ratings.service.loops import LoopStats, add_interval_loop

logger = get_logger(component="service")


@dataclass
class ServiceRunner:
    """
    Long-running process: latest-period sync, rating fill and (optionally)
    details fill as APScheduler interval jobs, plus the analysis job processor
    when a job queue is configured.

    With deferred analysis the rating fill still runs, as a safety net for jobs
    lost to a full buffer or a restart, but it leaves alone every competition
    whose job is still waiting on its timer.

    Every tick and every job opens its own session.
    """

    settings: Settings
    session_factory: sessionmaker[Session]
    data_source: DataSource
    analysis: AnalysisService
    job_queue: ScheduledJobQueue | None = None

    stop_event: threading.Event = field(default_factory=threading.Event)
    scheduler: BackgroundScheduler | None = field(default=None, init=False, repr=False)
    loops: dict[str, LoopStats] = field(default_factory=dict, init=False)
    _consumer: threading.Thread | None = field(default=None, init=False, repr=False)

    @property
    def sport(self) -> str:
        return self.settings.sport

    def sync_latest(self) -> SyncResult:
        with session_scope(self.session_factory) as session:
            store = SqlCompetitionStore(session)
            sync = LatestPeriodSync(
                data_source=self.data_source,
                store=store,
                fetcher=PeriodFetcher(data_source=self.data_source, store=store),
                # Deferred jobs replace the immediate rating pass.
                ratings=None if self.job_queue else RatingBackfill(store, self.analysis),
                job_queue=self.job_queue,
                analysis_delay=timedelta(seconds=self.settings.analysis_delay_s),
                recent_periods=self.settings.fill_recent_periods,
            )
            return sync.run_once(self.sport)

    def fill_ratings(self) -> FillMissingResult:
        with session_scope(self.session_factory) as session:
            store = SqlCompetitionStore(session)
            ratings = RatingBackfill(store, self.analysis, skip=self._job_waiting)
            return ratings.fill_missing(self.sport, self.settings.fill_recent_periods)

    def fill_details(self) -> FillMissingResult:
        with session_scope(self.session_factory) as session:
            store = SqlCompetitionStore(session)
            return DetailsBackfill(store, self.data_source).fill_missing(
                self.sport, self.settings.fill_recent_periods
            )

    def handle_analysis_job(self, job: Job) -> None:
        with session_scope(self.session_factory) as session:
            store = SqlCompetitionStore(session)
            consumer = AnalysisJobConsumer(store=store, ratings=RatingBackfill(store, self.analysis))
            consumer.handle(job)

    def _job_waiting(self, competition: Competition) -> bool:
        if self.job_queue is None:
            return False
        return self.job_queue.is_waiting(analysis_job_id(competition.id))

    def start(self) -> None:
        s = self.settings
        scheduler = BackgroundScheduler(timezone=UTC)
        intervals = [
            ("latest_sync", self.sync_latest, s.sync_interval_s),
            ("rating_fill", self.fill_ratings, s.rating_interval_s),
        ]
        if s.details_interval_s > 0:
            intervals.append(("details_fill", self.fill_details, s.details_interval_s))
        self.loops = {
            name: add_interval_loop(scheduler, name, fn, interval_s)
            for name, fn, interval_s in intervals
        }

        if self.job_queue is not None:
            job_queue = self.job_queue
            self._consumer = threading.Thread(
                target=lambda: job_queue.process(
                    ANALYSIS_JOB_TYPE, self.handle_analysis_job, stop=self.stop_event
                ),
                name="analysis_jobs",
                daemon=True,
            )
            self._consumer.start()

        scheduler.start()
        self.scheduler = scheduler

        logger.info(
            "service_started",
            sport=self.sport,
            loops=list(self.loops),
            deferred_analysis=self.job_queue is not None,
        )

    def stop(self, *, timeout: float | None = 30.0) -> None:
        self.stop_event.set()
        if self.job_queue is not None:
            self.job_queue.shutdown(timeout=timeout)
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=True)
        if self._consumer is not None:
            self._consumer.join(timeout)
        logger.info("service_stopped")

    def run_forever(self) -> None:
        """Start everything and block until SIGINT/SIGTERM."""

        def _stop(*_args: Any) -> None:
            logger.info("shutdown_signal_received")
            self.stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, _stop)

        self.start()
        try:
            while not self.stop_event.wait(1.0):
                pass
        finally:
            self.stop()


def build_service(settings: Settings) -> ServiceRunner:
    engine = create_db_engine(
        DatabaseConfig(database_url=settings.database_url, echo=settings.db_echo)
    )
    job_queue = None
    if settings.analysis_delay_s > 0:
        job_queue = ScheduledJobQueue(buffer_size=settings.job_queue_buffer_size)

    return ServiceRunner(
        settings=settings,
        session_factory=create_session_factory(engine),
        data_source=RetryingDataSource(build_espn_data_source(settings)),
        analysis=build_openai_rating_service(settings),
        job_queue=job_queue,
    )
