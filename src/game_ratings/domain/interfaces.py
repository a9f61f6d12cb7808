from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from game_ratings.db.enums import PeriodTypeEnum, RatingTypeEnum
from game_ratings.domain.entities import Competition, CompetitionDetails, Period, Rating


class DataSource(Protocol):
    """
    Remote provider of competitions. Orchestration depends on this, not on any
    HTTP client.

    Implementations raise `ProviderError` subclasses on transport/parse failures.
    """

    def get_latest_period(self, sport: str) -> Period | None: ...

    def get_competitions(self, sport: str, period: Period) -> list[Competition]: ...

    def get_competition_details(self, external_id: str) -> CompetitionDetails | None: ...


class CompetitionStore(Protocol):
    """Local storage for competitions and their ratings."""

    def find_by_period(
        self, season: str, period: str, period_type: PeriodTypeEnum, sport: str
    ) -> list[Competition]: ...

    def get_competition(self, competition_id: str) -> Competition | None: ...

    def save_competition(self, competition: Competition) -> None: ...

    def save_competitions(self, competitions: Sequence[Competition]) -> None:
        """Persist a batch atomically: either every competition is stored or none."""
        ...

    def get_available_periods(self, sport: str) -> list[Period]:
        """Periods that currently have stored competitions, oldest first."""
        ...

    def load_rating(self, competition_id: str, rating_type: RatingTypeEnum) -> Rating | None: ...

    def save_rating(self, competition_id: str, rating: Rating) -> None: ...


class AnalysisService(Protocol):
    def produce(self, competition: Competition) -> Rating: ...
