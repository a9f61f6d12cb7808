from __future__ import annotations

from datetime import UTC, datetime

import sqlalchemy as sa
from fakes import make_competition
from sqlalchemy.orm import Session

import game_ratings.db.models  # noqa: F401
from game_ratings.db.base import Base
from game_ratings.db.enums import (
    CompetitionStatusEnum,
    HomeAwayEnum,
    PeriodTypeEnum,
    RatingTypeEnum,
)
from game_ratings.db.models.competition import Competition as CompetitionRow
from game_ratings.db.models.competition import CompetitionTeam as CompetitionTeamRow
from game_ratings.db.models.rating import Rating as RatingRow
from game_ratings.db.repos.competition_repo import SqlCompetitionStore
from game_ratings.domain.entities import CompetitionDetails, Period, Rating


def _make_session() -> Session:
    engine = sa.create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    return Session(engine)


def _count(session: Session, model: type) -> int:
    return session.execute(sa.select(sa.func.count()).select_from(model)).scalar_one()


def test_save_competitions_is_idempotent() -> None:
    session = _make_session()
    store = SqlCompetitionStore(session)
    batch = [make_competition("401"), make_competition("402")]

    store.save_competitions(batch)
    store.save_competitions(batch)

    assert _count(session, CompetitionRow) == 2
    assert _count(session, CompetitionTeamRow) == 4


def test_find_by_period_maps_rows_to_domain() -> None:
    session = _make_session()
    store = SqlCompetitionStore(session)
    kickoff = datetime(2024, 9, 8, 17, 0, tzinfo=UTC)
    store.save_competitions(
        [
            make_competition(
                "401",
                start_time=kickoff,
                details=CompetitionDetails(
                    play_by_play=[{"text": "Kickoff"}], metadata={"source": "espn"}
                ),
            ),
            make_competition("402", period="2"),
        ]
    )

    found = store.find_by_period("2024", "1", PeriodTypeEnum.REGULAR, "nfl")

    assert [c.external_id for c in found] == ["401"]
    c = found[0]
    assert c.id == "comp_nfl_401"
    assert c.status == CompetitionStatusEnum.COMPLETED
    assert c.team(HomeAwayEnum.HOME).name == "Home Team"
    assert c.team(HomeAwayEnum.AWAY).score == 21
    assert c.details.play_by_play == [{"text": "Kickoff"}]
    assert c.details.metadata == {"source": "espn"}
    assert c.start_time.replace(tzinfo=UTC) == kickoff


def test_update_overwrites_fields_but_keeps_existing_details() -> None:
    session = _make_session()
    store = SqlCompetitionStore(session)
    details = CompetitionDetails(play_by_play=[{"text": "Kickoff"}])
    store.save_competition(make_competition("401", details=details))

    kickoff = datetime(2024, 9, 8, 20, 20)
    store.save_competition(
        make_competition("401", start_time=kickoff, status=CompetitionStatusEnum.CANCELED)
    )

    c = store.get_competition("comp_nfl_401")
    assert c is not None
    assert c.start_time == kickoff
    assert c.status == CompetitionStatusEnum.CANCELED
    assert c.has_details()


def test_available_periods_are_distinct_and_ordered() -> None:
    session = _make_session()
    store = SqlCompetitionStore(session)
    store.save_competitions(
        [
            make_competition("p1", period="1", period_type=PeriodTypeEnum.PLAYOFF),
            make_competition("r10", period="10"),
            make_competition("r2a", period="2"),
            make_competition("r2b", period="2"),
            make_competition("other", period="3", sport="nba"),
        ]
    )

    assert store.get_available_periods("nfl") == [
        Period("2024", "2", PeriodTypeEnum.REGULAR),
        Period("2024", "10", PeriodTypeEnum.REGULAR),
        Period("2024", "1", PeriodTypeEnum.PLAYOFF),
    ]


def test_rating_round_trip_and_upsert() -> None:
    session = _make_session()
    store = SqlCompetitionStore(session)
    store.save_competition(make_competition("401"))

    assert store.load_rating("comp_nfl_401", RatingTypeEnum.EXCITEMENT) is None

    store.save_rating("comp_nfl_401", Rating(score=55, explanation="ok", source="openai"))
    store.save_rating(
        "comp_nfl_401",
        Rating(score=91, explanation="classic", spoiler_free_explanation="watch it"),
    )

    rating = store.load_rating("comp_nfl_401", RatingTypeEnum.EXCITEMENT)
    assert rating is not None
    assert rating.score == 91
    assert rating.explanation == "classic"
    assert rating.spoiler_free_explanation == "watch it"
    assert _count(session, RatingRow) == 1
    assert store.get_competition("comp_nfl_401").rating.score == 91


def test_get_competition_missing_returns_none() -> None:
    store = SqlCompetitionStore(_make_session())

    assert store.get_competition("comp_nfl_nope") is None


def test_same_external_id_in_two_sports_are_separate_rows() -> None:
    session = _make_session()
    store = SqlCompetitionStore(session)

    store.save_competitions([make_competition("401"), make_competition("401", sport="ncaaf")])

    assert _count(session, CompetitionRow) == 2
    assert store.get_competition("comp_nfl_401").sport == "nfl"
    assert store.get_competition("comp_ncaaf_401").sport == "ncaaf"
