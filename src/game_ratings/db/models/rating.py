from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from game_ratings.db.base import Base
from game_ratings.db.enums import RatingTypeEnum


class Rating(Base):
    __tablename__ = "ratings"

    id: Mapped[int] = mapped_column(primary_key=True)

    competition_id: Mapped[str] = mapped_column(
        ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False
    )
    rating_type: Mapped[RatingTypeEnum] = mapped_column(
        "type",
        sa.Enum(
            RatingTypeEnum,
            name="ratingtypeenum",
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
        ),
        nullable=False,
    )

    score: Mapped[int] = mapped_column(Integer, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    spoiler_free: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str | None] = mapped_column(String(32), nullable=True)

    generated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    competition: Mapped[Competition] = relationship(back_populates="ratings")

    __table_args__ = (
        UniqueConstraint("competition_id", "type", name="uq_rating_competition_type"),
    )


from game_ratings.db.models.competition import Competition  # noqa: E402
