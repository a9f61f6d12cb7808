from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from game_ratings.db.enums import HomeAwayEnum, PeriodTypeEnum, RatingTypeEnum
from game_ratings.db.models.competition import Competition as CompetitionRow
from game_ratings.db.models.competition import CompetitionDetails as CompetitionDetailsRow
from game_ratings.db.models.competition import CompetitionTeam as CompetitionTeamRow
from game_ratings.db.models.rating import Rating as RatingRow
from game_ratings.db.repos.base import BaseRepository
from game_ratings.domain.entities import (
    Competition,
    CompetitionDetails,
    CompetitionTeam,
    Period,
    Rating,
)
from game_ratings.ingestion.errors import StoreError


class CompetitionRepository(BaseRepository[CompetitionRow]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=CompetitionRow)


class CompetitionTeamRepository(BaseRepository[CompetitionTeamRow]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=CompetitionTeamRow)


class CompetitionDetailsRepository(BaseRepository[CompetitionDetailsRow]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=CompetitionDetailsRow)


class RatingRepository(BaseRepository[RatingRow]):
    def __init__(self, session: Session) -> None:
        super().__init__(session=session, model=RatingRow)


def _to_domain(row: CompetitionRow, *, rating_type: RatingTypeEnum | None = None) -> Competition:
    details: CompetitionDetails | None = None
    if row.details is not None:
        details = CompetitionDetails(
            play_by_play=list(row.details.play_by_play or []),
            metadata=dict(row.details.metadata_json or {}),
        )

    rating: Rating | None = None
    for r in row.ratings:
        if rating_type is None or r.rating_type == rating_type:
            rating = _rating_to_domain(r)
            break

    teams = tuple(
        CompetitionTeam(
            team_id=t.team_id,
            name=t.name,
            home_away=t.home_away,
            score=t.score,
            logo_url=t.logo_url,
            record=t.record,
        )
        for t in row.teams
    )

    return Competition(
        id=row.id,
        external_id=row.external_id,
        sport=row.sport,
        season=row.season,
        period=row.period,
        period_type=row.period_type,
        status=row.status,
        start_time=row.start_time,
        teams=teams,
        details=details,
        rating=rating,
    )


def _rating_to_domain(row: RatingRow) -> Rating:
    return Rating(
        score=row.score,
        explanation=row.explanation or "",
        spoiler_free_explanation=row.spoiler_free or "",
        rating_type=row.rating_type,
        source=row.source or "",
        generated_at=row.generated_at,
    )


class SqlCompetitionStore:
    """SQLAlchemy implementation of the `CompetitionStore` protocol.

    Writes are idempotent upserts keyed by (sport, external_id), and every write
    call commits its own unit of work so a failed batch never leaves partial rows.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self.competitions = CompetitionRepository(session)
        self.teams = CompetitionTeamRepository(session)
        self.details = CompetitionDetailsRepository(session)
        self.ratings = RatingRepository(session)

    # -----------------------------
    # Reads
    # -----------------------------

    def find_by_period(
        self, season: str, period: str, period_type: PeriodTypeEnum, sport: str
    ) -> list[Competition]:
        stmt = (
            select(CompetitionRow)
            .where(
                CompetitionRow.sport == sport,
                CompetitionRow.season == season,
                CompetitionRow.period == period,
                CompetitionRow.period_type == period_type,
            )
            .options(
                selectinload(CompetitionRow.teams),
                selectinload(CompetitionRow.details),
                selectinload(CompetitionRow.ratings),
            )
            .order_by(CompetitionRow.start_time, CompetitionRow.external_id)
            .execution_options(populate_existing=True)
        )
        try:
            rows = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(
                f"failed loading competitions for {season} {period_type.value} {period}"
            ) from e
        return [_to_domain(r, rating_type=RatingTypeEnum.EXCITEMENT) for r in rows]

    def get_competition(self, competition_id: str) -> Competition | None:
        stmt = (
            select(CompetitionRow)
            .where(CompetitionRow.id == competition_id)
            .options(
                selectinload(CompetitionRow.teams),
                selectinload(CompetitionRow.details),
                selectinload(CompetitionRow.ratings),
            )
            .execution_options(populate_existing=True)
        )
        try:
            row = self.session.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            raise StoreError(f"failed loading competition {competition_id}") from e
        return None if row is None else _to_domain(row, rating_type=RatingTypeEnum.EXCITEMENT)

    def get_available_periods(self, sport: str) -> list[Period]:
        stmt = (
            select(CompetitionRow.season, CompetitionRow.period, CompetitionRow.period_type)
            .where(CompetitionRow.sport == sport)
            .distinct()
        )
        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError(f"failed listing periods for sport={sport}") from e
        periods = {Period(season=s, period=p, period_type=pt) for s, p, pt in rows}
        return sorted(periods, key=Period.sort_key)

    def load_rating(self, competition_id: str, rating_type: RatingTypeEnum) -> Rating | None:
        try:
            row = self.ratings.first_where(
                RatingRow.competition_id == competition_id,
                RatingRow.rating_type == rating_type,
            )
        except SQLAlchemyError as e:
            raise StoreError(f"failed loading rating for {competition_id}") from e
        return None if row is None else _rating_to_domain(row)

    # -----------------------------
    # Writes
    # -----------------------------

    def save_competition(self, competition: Competition) -> None:
        self.save_competitions([competition])

    def save_competitions(self, competitions: Sequence[Competition]) -> None:
        try:
            for c in competitions:
                self._upsert_competition(c)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"failed saving {len(competitions)} competitions") from e

    def save_rating(self, competition_id: str, rating: Rating) -> None:
        try:
            self.ratings.upsert(
                {
                    "competition_id": competition_id,
                    "type": rating.rating_type,
                    "score": rating.score,
                    "explanation": rating.explanation,
                    "spoiler_free": rating.spoiler_free_explanation,
                    "source": rating.source,
                    "generated_at": rating.generated_at or datetime.now(tz=UTC),
                },
                conflict_columns=("competition_id", "type"),
                update_columns=("score", "explanation", "spoiler_free", "source", "generated_at"),
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"failed saving rating for {competition_id}") from e

    def _upsert_competition(self, c: Competition) -> None:
        now = datetime.now(tz=UTC)
        self.competitions.upsert(
            {
                "id": c.id,
                "external_id": c.external_id,
                "sport": c.sport,
                "season": c.season,
                "period": c.period,
                "period_type": c.period_type,
                "start_time": c.start_time,
                "status": c.status,
                "created_at": now,
                "updated_at": now,
            },
            conflict_columns=("sport", "external_id"),
            update_columns=("season", "period", "period_type", "start_time", "status", "updated_at"),
        )

        # The stored row keeps its original id when the upsert hit an existing one.
        competition_id = self.session.execute(
            select(CompetitionRow.id).where(
                CompetitionRow.sport == c.sport,
                CompetitionRow.external_id == c.external_id,
            )
        ).scalar_one()

        if c.teams:
            self.session.execute(
                delete(CompetitionTeamRow).where(CompetitionTeamRow.competition_id == competition_id)
            )
            for t in c.teams:
                self.teams.upsert(
                    {
                        "competition_id": competition_id,
                        "home_away": HomeAwayEnum(t.home_away),
                        "team_id": t.team_id,
                        "name": t.name,
                        "score": t.score,
                        "logo_url": t.logo_url,
                        "record": t.record,
                    },
                    conflict_columns=("competition_id", "home_away"),
                    update_columns=("team_id", "name", "score", "logo_url", "record"),
                )

        # Missing details never erase previously stored play-by-play.
        if c.details is not None and not c.details.is_empty():
            self.details.upsert(
                {
                    "competition_id": competition_id,
                    "play_by_play": c.details.play_by_play,
                    "metadata": c.details.metadata,
                },
                conflict_columns=("competition_id",),
                update_columns=("play_by_play", "metadata"),
            )
