from __future__ import annotations

from enum import Enum, StrEnum


class ProviderEnum(StrEnum):
    ESPN = "espn"
    OPENAI = "openai"


class SportEnum(str, Enum):
    NFL = "nfl"


class PeriodTypeEnum(str, Enum):
    PRESEASON = "preseason"
    REGULAR = "regular"
    PLAYOFF = "playoff"


class CompetitionStatusEnum(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"


class HomeAwayEnum(str, Enum):
    HOME = "home"
    AWAY = "away"


class RatingTypeEnum(str, Enum):
    EXCITEMENT = "excitement"
