from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass, field
from typing import Any

from game_ratings.core.logging import get_logger
from game_ratings.domain.entities import Period
from game_ratings.domain.interfaces import CompetitionStore
from game_ratings.ingestion.errors import FetchError, StoreError
from game_ratings.ingestion.fetcher import FetchMode, PeriodFetcher
from game_ratings.ingestion.periods import periods_for_sport

logger = get_logger(component="backfill")

NO_COMPETITIONS_FOUND = "no competitions found"


@dataclass
class PeriodResult:
    period: str
    period_type: str
    existing_count: int = 0
    fetched_count: int = 0
    added_count: int = 0
    skipped: bool = False
    skip_reason: str | None = None
    error: str | None = None


@dataclass
class BackfillError:
    period: str
    period_type: str
    error: str


@dataclass
class BackfillResult:
    """Aggregate report for one backfill run.

    Serialized with snake_case keys; `from_dict(to_dict())` reproduces the report.
    """

    season: str
    limit: int = 0
    limit_reached: bool = False
    periods_processed: int = 0
    competitions_added: int = 0
    errors: list[BackfillError] = field(default_factory=list)
    period_results: list[PeriodResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackfillResult:
        return cls(
            season=str(data["season"]),
            limit=int(data.get("limit") or 0),
            limit_reached=bool(data.get("limit_reached", False)),
            periods_processed=int(data.get("periods_processed") or 0),
            competitions_added=int(data.get("competitions_added") or 0),
            errors=[BackfillError(**e) for e in data.get("errors") or []],
            period_results=[PeriodResult(**p) for p in data.get("period_results") or []],
        )

    @classmethod
    def from_json(cls, raw: str) -> BackfillResult:
        return cls.from_dict(json.loads(raw))


@dataclass
class BackfillOrchestrator:
    """Walk every period of a season, fetching and saving what is missing.

    Periods run strictly one after another in enumeration order. A failing period
    is recorded and the season continues. With `limit > 0` the number of saved
    competitions never exceeds `limit`.
    """

    fetcher: PeriodFetcher
    store: CompetitionStore
    cancel_event: threading.Event | None = None

    def backfill(self, sport: str, season: str, limit: int = 0) -> BackfillResult:
        return self._run(sport, season, periods_for_sport(sport, season), limit, FetchMode.INGEST)

    def backfill_update(self, sport: str, season: str, limit: int = 0) -> BackfillResult:
        return self._run(sport, season, periods_for_sport(sport, season), limit, FetchMode.UPDATE)

    def backfill_period(self, sport: str, period: Period, limit: int = 0) -> BackfillResult:
        return self._run(sport, period.season, [period], limit, FetchMode.INGEST)

    def backfill_period_update(self, sport: str, period: Period, limit: int = 0) -> BackfillResult:
        return self._run(sport, period.season, [period], limit, FetchMode.UPDATE)

    def _run(
        self,
        sport: str,
        season: str,
        periods: list[Period],
        limit: int,
        mode: FetchMode,
    ) -> BackfillResult:
        limit = max(limit, 0)
        log = logger.bind(sport=sport, season=season, mode=mode.value, limit=limit or None)
        log.info("backfill_started", periods=len(periods))

        result = BackfillResult(season=season, limit=limit)

        for period in periods:
            if self.cancel_event is not None and self.cancel_event.is_set():
                log.warning("backfill_cancelled", periods_processed=result.periods_processed)
                break

            remaining = limit - result.competitions_added if limit > 0 else 0

            period_result = self._process_period(sport, period, remaining, mode)
            result.period_results.append(period_result)
            result.periods_processed += 1
            result.competitions_added += period_result.added_count

            if period_result.error is not None:
                result.errors.append(
                    BackfillError(
                        period=period.period,
                        period_type=period.period_type.value,
                        error=period_result.error,
                    )
                )

            if limit > 0 and result.competitions_added >= limit:
                log.info("backfill_limit_reached", after_period=str(period))
                result.limit_reached = True
                break

        log.info(
            "backfill_completed",
            periods_processed=result.periods_processed,
            competitions_added=result.competitions_added,
            errors=len(result.errors),
            limit_reached=result.limit_reached,
        )
        return result

    def _process_period(
        self, sport: str, period: Period, remaining: int, mode: FetchMode
    ) -> PeriodResult:
        result = PeriodResult(period=period.period, period_type=period.period_type.value)

        try:
            existing = self.store.find_by_period(
                period.season, period.period, period.period_type, sport
            )
        except StoreError as e:
            result.error = f"error checking existing competitions: {e}"
            logger.error("backfill_period_failed", period=str(period), error=result.error)
            return result
        result.existing_count = len(existing)

        try:
            competitions = self.fetcher.fetch_period(
                sport, period, limit=remaining, mode=mode, existing=existing
            )
        except FetchError as e:
            result.error = str(e)
            logger.error("backfill_period_failed", period=str(period), error=result.error)
            return result
        result.fetched_count = len(competitions)

        if not competitions:
            result.skipped = True
            result.skip_reason = NO_COMPETITIONS_FOUND
            logger.info("backfill_period_skipped", period=str(period), reason=result.skip_reason)
            return result

        try:
            self.store.save_competitions(competitions)
        except StoreError as e:
            result.error = f"error saving competitions: {e}"
            logger.error("backfill_period_failed", period=str(period), error=result.error)
            return result

        result.added_count = len(competitions)
        logger.info(
            "backfill_period_saved",
            period=str(period),
            existing=result.existing_count,
            added=result.added_count,
        )
        return result
