from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass

from game_ratings.core.logging import get_logger
from game_ratings.db.enums import RatingTypeEnum
from game_ratings.domain.entities import Competition, Period
from game_ratings.domain.interfaces import AnalysisService, CompetitionStore, DataSource
from game_ratings.ingestion.errors import StoreError
from game_ratings.ingestion.providers.base.errors import ProviderError

logger = get_logger(component="fill_missing")


@dataclass(frozen=True)
class FillMissingResult:
    sport: str
    periods_seen: int
    processed: int
    updated: int


def _recent_periods(store: CompetitionStore, sport: str, recent_periods: int) -> list[Period]:
    """Stored periods, newest first, trimmed to the trailing `recent_periods` when > 0."""

    periods = store.get_available_periods(sport)
    if recent_periods > 0:
        periods = periods[-recent_periods:]
    return list(reversed(periods))


def _iter_competitions(
    store: CompetitionStore, sport: str, periods: list[Period]
) -> Iterator[Competition]:
    for p in periods:
        try:
            competitions = store.find_by_period(p.season, p.period, p.period_type, sport)
        except StoreError as e:
            logger.error("fill_missing_period_load_failed", period=str(p), error=str(e))
            continue
        yield from competitions


@dataclass
class RatingBackfill:
    """Generate ratings for stored competitions that do not have one yet.

    `skip` lets the caller leave competitions to someone else, e.g. the ones
    whose deferred analysis job has not fired yet.
    """

    store: CompetitionStore
    analysis: AnalysisService
    rating_type: RatingTypeEnum = RatingTypeEnum.EXCITEMENT
    skip: Callable[[Competition], bool] | None = None

    def fill_missing(self, sport: str, recent_periods: int = 0) -> FillMissingResult:
        periods = _recent_periods(self.store, sport, recent_periods)

        processed = 0
        updated = 0
        for c in _iter_competitions(self.store, sport, periods):
            if self.skip is not None and self.skip(c):
                logger.debug("rating_left_to_job", competition_id=c.id)
                continue
            processed += 1
            if self.rate_one(c):
                updated += 1

        if updated:
            logger.info("ratings_filled", sport=sport, processed=processed, updated=updated)
        else:
            logger.info("no_missing_ratings", sport=sport, processed=processed)

        return FillMissingResult(
            sport=sport, periods_seen=len(periods), processed=processed, updated=updated
        )

    def rate_one(self, competition: Competition) -> bool:
        """Produce and store a rating when none exists. Returns True when one was saved."""

        try:
            if self.store.load_rating(competition.id, self.rating_type) is not None:
                return False
        except StoreError as e:
            # An unreadable rating is treated as missing.
            logger.warning("rating_lookup_failed", competition_id=competition.id, error=str(e))

        try:
            rating = self.analysis.produce(competition)
        except ProviderError as e:
            logger.error("rating_generation_failed", competition_id=competition.id, error=str(e))
            return False
        except Exception:
            logger.exception("rating_generation_crashed", competition_id=competition.id)
            return False

        if rating.is_empty():
            logger.info("rating_empty", competition_id=competition.id)
            return False

        try:
            self.store.save_rating(competition.id, rating)
        except StoreError as e:
            logger.error("rating_save_failed", competition_id=competition.id, error=str(e))
            return False

        logger.info(
            "rating_generated",
            competition_id=competition.id,
            matchup=competition.matchup(),
            score=rating.score,
        )
        return True


@dataclass
class DetailsBackfill:
    """Re-fetch play-by-play for stored competitions that were saved without it."""

    store: CompetitionStore
    data_source: DataSource

    def fill_missing(self, sport: str, recent_periods: int = 0) -> FillMissingResult:
        periods = _recent_periods(self.store, sport, recent_periods)

        processed = 0
        updated = 0
        for c in _iter_competitions(self.store, sport, periods):
            processed += 1
            if c.has_details():
                continue

            try:
                details = self.data_source.get_competition_details(c.external_id)
            except (ProviderError, ValueError, TypeError, KeyError) as e:
                logger.warning("details_fetch_failed", competition_id=c.id, error=str(e))
                continue
            if details is None or details.is_empty():
                continue

            try:
                self.store.save_competition(c.with_details(details))
            except StoreError as e:
                logger.error("details_save_failed", competition_id=c.id, error=str(e))
                continue

            updated += 1
            logger.info("details_filled", competition_id=c.id, period=str(c.period_key))

        return FillMissingResult(
            sport=sport, periods_seen=len(periods), processed=processed, updated=updated
        )
