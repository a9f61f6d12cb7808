from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from game_ratings.db.enums import (
    CompetitionStatusEnum,
    HomeAwayEnum,
    PeriodTypeEnum,
    ProviderEnum,
)
from game_ratings.domain.entities import (
    Competition,
    CompetitionDetails,
    CompetitionTeam,
    Period,
)
from game_ratings.ingestion.providers.base.errors import ProviderMappingError

ApiItem = dict[str, Any]

SEASON_TYPE_TO_PERIOD_TYPE: dict[int, PeriodTypeEnum] = {
    1: PeriodTypeEnum.PRESEASON,
    2: PeriodTypeEnum.REGULAR,
    3: PeriodTypeEnum.PLAYOFF,
}
PERIOD_TYPE_TO_SEASON_TYPE = {v: k for k, v in SEASON_TYPE_TO_PERIOD_TYPE.items()}

_CANCELED_STATUS_NAMES = {"STATUS_CANCELED", "STATUS_POSTPONED", "STATUS_FORFEIT"}


def parse_iso_z(value: str) -> datetime:
    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    dt = datetime.fromisoformat(v)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_latest_period(scoreboard: ApiItem) -> Period | None:
    """Current period from an unparameterised scoreboard response.

    Off-season responses (season type 4, or no week) yield None.
    """

    season = scoreboard.get("season")
    week = scoreboard.get("week")
    if not isinstance(season, dict) or not isinstance(week, dict):
        return None

    year = _as_int(season.get("year"))
    number = _as_int(week.get("number"))
    period_type = SEASON_TYPE_TO_PERIOD_TYPE.get(_as_int(season.get("type")) or 0)
    if year is None or number is None or period_type is None:
        return None

    return Period(season=str(year), period=str(number), period_type=period_type)


def parse_status(status: Any) -> CompetitionStatusEnum:
    if not isinstance(status, dict):
        return CompetitionStatusEnum.SCHEDULED
    st = status.get("type")
    if not isinstance(st, dict):
        return CompetitionStatusEnum.SCHEDULED

    if st.get("name") in _CANCELED_STATUS_NAMES:
        return CompetitionStatusEnum.CANCELED
    if st.get("completed") is True or st.get("state") == "post":
        return CompetitionStatusEnum.COMPLETED
    if st.get("state") == "in":
        return CompetitionStatusEnum.IN_PROGRESS
    return CompetitionStatusEnum.SCHEDULED


def _parse_competitor(item: ApiItem) -> CompetitionTeam:
    team = item.get("team")
    if not isinstance(team, dict):
        raise ProviderMappingError("competitor is missing team", {"competitor": item.get("id")})

    try:
        home_away = HomeAwayEnum(item.get("homeAway"))
    except ValueError as e:
        raise ProviderMappingError(
            "competitor has no home/away side", {"team_id": team.get("id")}
        ) from e

    record = None
    records = item.get("records")
    if isinstance(records, list) and records and isinstance(records[0], dict):
        record = records[0].get("summary")

    return CompetitionTeam(
        team_id=str(team.get("id") or item.get("id") or ""),
        name=str(team.get("displayName") or team.get("name") or ""),
        home_away=home_away,
        score=_as_float(item.get("score")),
        logo_url=team.get("logo"),
        record=record,
    )


def parse_event(event: ApiItem, *, sport: str, period: Period) -> Competition:
    """Map one scoreboard event into a `Competition` for `period`."""

    event_id = event.get("id")
    if not isinstance(event_id, str) or not event_id:
        raise ProviderMappingError("event is missing id")

    competitions = event.get("competitions")
    if not isinstance(competitions, list) or not competitions:
        raise ProviderMappingError("event has no competitions", {"event_id": event_id})
    comp = competitions[0]

    competitors = comp.get("competitors") if isinstance(comp, dict) else None
    if not isinstance(competitors, list):
        raise ProviderMappingError("event has no competitors", {"event_id": event_id})

    start_time = None
    raw_date = event.get("date")
    if isinstance(raw_date, str) and raw_date.strip():
        try:
            start_time = parse_iso_z(raw_date)
        except ValueError as e:
            raise ProviderMappingError(
                "event date is not ISO-8601", {"event_id": event_id, "date": raw_date}
            ) from e

    return Competition(
        external_id=event_id,
        sport=sport,
        season=period.season,
        period=period.period,
        period_type=period.period_type,
        status=parse_status(comp.get("status") or event.get("status")),
        start_time=start_time,
        teams=tuple(_parse_competitor(c) for c in competitors if isinstance(c, dict)),
    )


def _parse_play(play: ApiItem) -> dict[str, Any] | None:
    text = play.get("text")
    if not isinstance(text, str) or not text.strip():
        return None

    out: dict[str, Any] = {"text": text.strip()}
    period = play.get("period")
    if isinstance(period, dict) and period.get("number") is not None:
        out["quarter"] = _as_int(period.get("number"))
    clock = play.get("clock")
    if isinstance(clock, dict) and clock.get("displayValue"):
        out["clock"] = clock["displayValue"]
    if play.get("scoringPlay"):
        out["scoring"] = True
    return out


def parse_summary_details(summary: ApiItem) -> CompetitionDetails | None:
    """Play-by-play from a game summary: drive plays, else the flat play list."""

    raw_plays: list[Any] = []
    drives = summary.get("drives")
    if isinstance(drives, dict) and isinstance(drives.get("previous"), list):
        for drive in drives["previous"]:
            if isinstance(drive, dict) and isinstance(drive.get("plays"), list):
                raw_plays.extend(drive["plays"])
    if not raw_plays and isinstance(summary.get("plays"), list):
        raw_plays = summary["plays"]

    plays = [p for p in (_parse_play(r) for r in raw_plays if isinstance(r, dict)) if p]
    if not plays:
        return None

    return CompetitionDetails(
        play_by_play=plays,
        metadata={"source": ProviderEnum.ESPN.value, "plays": len(plays)},
    )
