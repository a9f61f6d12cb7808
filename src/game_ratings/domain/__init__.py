from game_ratings.domain.entities import (
    Competition,
    CompetitionDetails,
    CompetitionTeam,
    Period,
    Rating,
    competition_id_for,
)
from game_ratings.domain.interfaces import AnalysisService, CompetitionStore, DataSource

__all__ = [
    "AnalysisService",
    "Competition",
    "CompetitionDetails",
    "CompetitionStore",
    "CompetitionTeam",
    "DataSource",
    "Period",
    "Rating",
    "competition_id_for",
]
