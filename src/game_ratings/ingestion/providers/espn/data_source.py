from __future__ import annotations

from dataclasses import dataclass

from game_ratings.core.config import Settings
from game_ratings.core.logging import get_logger
from game_ratings.db.enums import CompetitionStatusEnum, SportEnum
from game_ratings.domain.entities import Competition, CompetitionDetails, Period
from game_ratings.ingestion.providers.base.client import BaseHttpClient
from game_ratings.ingestion.providers.base.errors import (
    ProviderCapabilityError,
    ProviderMappingError,
)
from game_ratings.ingestion.providers.espn.client import EspnClient
from game_ratings.ingestion.providers.espn.parser import (
    PERIOD_TYPE_TO_SEASON_TYPE,
    parse_event,
    parse_latest_period,
    parse_summary_details,
)

logger = get_logger(component="espn")


@dataclass
class EspnDataSource:
    """
    ESPN-backed `DataSource` for the NFL.

    Only completed games are returned: a game still in progress is picked up by a
    later sync once it is final.
    """

    client: EspnClient
    sport: str = SportEnum.NFL.value

    def _check_sport(self, sport: str) -> None:
        if sport != self.sport:
            raise ProviderCapabilityError(f"ESPN source is for sport={self.sport}, got {sport}")

    def get_latest_period(self, sport: str) -> Period | None:
        self._check_sport(sport)
        return parse_latest_period(self.client.scoreboard())

    def get_competitions(self, sport: str, period: Period) -> list[Competition]:
        self._check_sport(sport)

        events = self.client.scoreboard_events(
            season=period.season,
            week=period.period,
            season_type=PERIOD_TYPE_TO_SEASON_TYPE[period.period_type],
        )

        competitions: list[Competition] = []
        skipped = 0
        for event in events:
            try:
                c = parse_event(event, sport=sport, period=period)
            except ProviderMappingError as e:
                logger.warning("espn_event_unmappable", period=str(period), error=str(e))
                continue
            if c.status != CompetitionStatusEnum.COMPLETED:
                skipped += 1
                continue
            competitions.append(c)

        if skipped:
            logger.info("espn_unfinished_events_skipped", period=str(period), skipped=skipped)
        return competitions

    def get_competition_details(self, external_id: str) -> CompetitionDetails | None:
        return parse_summary_details(self.client.summary(external_id))


def build_espn_data_source(settings: Settings) -> EspnDataSource:
    http = BaseHttpClient(base_url=settings.espn_site_base_url)
    return EspnDataSource(client=EspnClient(http=http), sport=settings.sport)
