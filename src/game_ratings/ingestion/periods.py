from __future__ import annotations

from game_ratings.core.logging import get_logger
from game_ratings.db.enums import PeriodTypeEnum, SportEnum
from game_ratings.domain.entities import Period

logger = get_logger(component="periods")

NFL_REGULAR_SEASON_WEEKS = 18
# Wild Card, Divisional, Conference, Super Bowl.
NFL_PLAYOFF_WEEKS = 4


def nfl_periods(season: str) -> list[Period]:
    """All NFL periods for a season: regular weeks 1..18, then playoff weeks 1..4.

    Order matters: backfills consume their limit in this order.
    """

    periods = [
        Period(season=season, period=str(week), period_type=PeriodTypeEnum.REGULAR)
        for week in range(1, NFL_REGULAR_SEASON_WEEKS + 1)
    ]
    periods.extend(
        Period(season=season, period=str(week), period_type=PeriodTypeEnum.PLAYOFF)
        for week in range(1, NFL_PLAYOFF_WEEKS + 1)
    )
    return periods


def periods_for_sport(sport: str, season: str) -> list[Period]:
    if sport != SportEnum.NFL.value:
        logger.warning("unknown_sport_using_nfl_periods", sport=sport, season=season)
    return nfl_periods(season)
