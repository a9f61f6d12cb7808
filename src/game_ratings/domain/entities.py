from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from game_ratings.db.enums import (
    CompetitionStatusEnum,
    HomeAwayEnum,
    PeriodTypeEnum,
    RatingTypeEnum,
)

_PERIOD_TYPE_ORDER = {
    PeriodTypeEnum.PRESEASON: 0,
    PeriodTypeEnum.REGULAR: 1,
    PeriodTypeEnum.PLAYOFF: 2,
}


def _period_number(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


@dataclass(frozen=True)
class Period:
    """A time partition of a season (an NFL week), the unit of ingestion."""

    season: str
    period: str
    period_type: PeriodTypeEnum

    def sort_key(self) -> tuple[int, int, int]:
        return (
            _period_number(self.season),
            _PERIOD_TYPE_ORDER[self.period_type],
            _period_number(self.period),
        )

    def __str__(self) -> str:
        return f"{self.season} {self.period_type.value} {self.period}"


@dataclass(frozen=True)
class CompetitionTeam:
    team_id: str
    name: str
    home_away: HomeAwayEnum
    score: float = 0.0
    logo_url: str | None = None
    record: str | None = None


@dataclass(frozen=True)
class CompetitionDetails:
    play_by_play: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.play_by_play


@dataclass(frozen=True)
class Rating:
    score: int
    explanation: str = ""
    spoiler_free_explanation: str = ""
    rating_type: RatingTypeEnum = RatingTypeEnum.EXCITEMENT
    source: str = ""
    generated_at: datetime | None = None

    def is_empty(self) -> bool:
        return self.score <= 0 and not self.explanation.strip()


def competition_id_for(sport: str, external_id: str) -> str:
    return f"comp_{sport}_{external_id}"


@dataclass(frozen=True)
class Competition:
    """A single game as seen by the ingestion core.

    Identity is `external_id` scoped by `sport`; `id` is derived from it.
    """

    external_id: str
    sport: str
    season: str
    period: str
    period_type: PeriodTypeEnum
    status: CompetitionStatusEnum = CompetitionStatusEnum.COMPLETED
    start_time: datetime | None = None
    teams: tuple[CompetitionTeam, ...] = ()
    details: CompetitionDetails | None = None
    rating: Rating | None = None
    id: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            object.__setattr__(self, "id", competition_id_for(self.sport, self.external_id))

    @property
    def period_key(self) -> Period:
        return Period(season=self.season, period=self.period, period_type=self.period_type)

    def has_details(self) -> bool:
        return self.details is not None and not self.details.is_empty()

    def with_details(self, details: CompetitionDetails | None) -> Competition:
        return replace(self, details=details)

    def team(self, home_away: HomeAwayEnum) -> CompetitionTeam | None:
        for t in self.teams:
            if t.home_away == home_away:
                return t
        return None

    def matchup(self) -> str:
        away = self.team(HomeAwayEnum.AWAY)
        home = self.team(HomeAwayEnum.HOME)
        return f"{away.name if away else '?'} @ {home.name if home else '?'}"
