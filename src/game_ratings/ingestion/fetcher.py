from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from game_ratings.core.logging import get_logger
from game_ratings.domain.entities import Competition, Period
from game_ratings.domain.interfaces import CompetitionStore, DataSource
from game_ratings.ingestion.errors import FetchError, StoreError
from game_ratings.ingestion.providers.base.errors import ProviderError

logger = get_logger(component="fetcher")

# Malformed provider payloads surface as one of these while mapping.
_PARSE_ERRORS = (ValueError, TypeError, KeyError)


class FetchMode(StrEnum):
    INGEST = "ingest"
    UPDATE = "update"


@dataclass
class PeriodFetcher:
    """Fetch one period from the data source without duplicating stored competitions.

    INGEST mode returns only competitions whose `external_id` is not yet stored for
    the period. UPDATE mode returns every remote competition so stored rows can be
    patched (e.g. missing start times or play-by-play).

    Callers that already loaded the period's stored competitions pass them as
    `existing` and the store is not read again.
    """

    data_source: DataSource
    store: CompetitionStore

    def fetch_period(
        self,
        sport: str,
        period: Period,
        *,
        limit: int = 0,
        mode: FetchMode = FetchMode.INGEST,
        existing: Sequence[Competition] | None = None,
    ) -> list[Competition]:
        existing_ids: set[str] = set()
        if mode == FetchMode.INGEST:
            if existing is None:
                try:
                    existing = self.store.find_by_period(
                        period.season, period.period, period.period_type, sport
                    )
                except StoreError as e:
                    raise FetchError(
                        f"error loading existing competitions for {period}: {e}"
                    ) from e
            existing_ids = {c.external_id for c in existing}

        try:
            remote = self.data_source.get_competitions(sport, period)
        except (ProviderError, *_PARSE_ERRORS) as e:
            raise FetchError(f"error fetching competitions for {period}: {e}") from e

        kept: list[Competition] = []
        seen: set[str] = set()
        for c in remote:
            if c.external_id in seen:
                continue
            seen.add(c.external_id)

            if c.external_id in existing_ids:
                logger.debug("competition_already_stored", external_id=c.external_id, period=str(period))
                continue

            if limit > 0 and len(kept) >= limit:
                logger.info(
                    "fetch_limit_reached",
                    limit=limit,
                    period=str(period),
                    remote_count=len(remote),
                )
                break

            kept.append(c)

        competitions = [self._attach_details(c) for c in kept]

        logger.info(
            "period_fetched",
            sport=sport,
            period=str(period),
            mode=mode.value,
            remote_count=len(remote),
            existing_count=len(existing_ids),
            returned_count=len(competitions),
            limit=limit if limit > 0 else None,
        )
        return competitions

    def _attach_details(self, competition: Competition) -> Competition:
        try:
            details = self.data_source.get_competition_details(competition.external_id)
        except (ProviderError, *_PARSE_ERRORS) as e:
            logger.warning(
                "details_fetch_failed",
                external_id=competition.external_id,
                error=str(e),
            )
            return competition

        if details is None or details.is_empty():
            return competition
        return competition.with_details(details)
