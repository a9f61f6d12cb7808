from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from game_ratings.ingestion.providers.base.client import BaseHttpClient
from game_ratings.ingestion.providers.base.errors import ProviderResponseError


@dataclass
class EspnClient:
    """Thin wrapper over the public ESPN site API for one league."""

    http: BaseHttpClient

    def scoreboard(
        self,
        *,
        season: str | None = None,
        week: str | None = None,
        season_type: int | None = None,
    ) -> dict[str, Any]:
        params: dict[str, str] = {}
        if week is not None:
            params["week"] = week
        if season is not None:
            params["dates"] = season
        if season_type is not None:
            params["seasontype"] = str(season_type)
        return self.http.get_json("scoreboard", params=params or None)

    def scoreboard_events(
        self, *, season: str, week: str, season_type: int
    ) -> list[dict[str, Any]]:
        payload = self.scoreboard(season=season, week=week, season_type=season_type)
        events = payload.get("events")
        if events is None:
            return []
        if not isinstance(events, list):
            raise ProviderResponseError(f"Expected 'events' list, got: {type(events)}")
        return [e for e in events if isinstance(e, dict)]

    def summary(self, event_id: str) -> dict[str, Any]:
        return self.http.get_json("summary", params={"event": event_id})
