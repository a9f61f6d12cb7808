from game_ratings.db.models.competition import Competition, CompetitionDetails, CompetitionTeam
from game_ratings.db.models.rating import Rating

__all__ = [
    "Competition",
    "CompetitionDetails",
    "CompetitionTeam",
    "Rating",
]
