from __future__ import annotations

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import JSON, Float, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from game_ratings.db.base import Base, TimestampMixin
from game_ratings.db.enums import CompetitionStatusEnum, HomeAwayEnum, PeriodTypeEnum


def _enum_values(enum_cls: type) -> list[str]:
    return [e.value for e in enum_cls]


class Competition(Base, TimestampMixin):
    __tablename__ = "competitions"

    id: Mapped[str] = mapped_column(String, primary_key=True)

    external_id: Mapped[str] = mapped_column(String, nullable=False)
    sport: Mapped[str] = mapped_column(String(32), nullable=False)

    season: Mapped[str] = mapped_column(String(16), nullable=False)
    period: Mapped[str] = mapped_column(String(16), nullable=False)
    period_type: Mapped[PeriodTypeEnum] = mapped_column(
        sa.Enum(PeriodTypeEnum, name="periodtypeenum", values_callable=_enum_values),
        nullable=False,
    )

    start_time: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    status: Mapped[CompetitionStatusEnum] = mapped_column(
        sa.Enum(CompetitionStatusEnum, name="competitionstatusenum", values_callable=_enum_values),
        nullable=False,
        default=CompetitionStatusEnum.COMPLETED,
    )

    teams: Mapped[list[CompetitionTeam]] = relationship(
        back_populates="competition",
        cascade="all, delete-orphan",
        order_by="CompetitionTeam.home_away",
    )
    details: Mapped[CompetitionDetails | None] = relationship(
        back_populates="competition",
        cascade="all, delete-orphan",
        uselist=False,
    )
    ratings: Mapped[list[Rating]] = relationship(
        back_populates="competition",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("sport", "external_id", name="uq_competition_sport_external_id"),
        Index("ix_competitions_period", "sport", "season", "period_type", "period"),
    )


class CompetitionTeam(Base):
    __tablename__ = "competition_teams"

    competition_id: Mapped[str] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), primary_key=True
    )
    home_away: Mapped[HomeAwayEnum] = mapped_column(
        sa.Enum(HomeAwayEnum, name="homeawayenum", values_callable=_enum_values),
        primary_key=True,
    )

    team_id: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    logo_url: Mapped[str | None] = mapped_column(String, nullable=True)
    record: Mapped[str | None] = mapped_column(String(32), nullable=True)

    competition: Mapped[Competition] = relationship(back_populates="teams")


class CompetitionDetails(Base):
    __tablename__ = "competition_details"

    competition_id: Mapped[str] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), primary_key=True
    )
    play_by_play: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
    )
    metadata_json: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
    )

    competition: Mapped[Competition] = relationship(back_populates="details")


from game_ratings.db.models.rating import Rating  # noqa: E402
