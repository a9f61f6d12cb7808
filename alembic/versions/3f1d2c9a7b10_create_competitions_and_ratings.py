"""Create competitions, teams, details and ratings

Revision ID: 3f1d2c9a7b10
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1d2c9a7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

period_type_enum = sa.Enum("preseason", "regular", "playoff", name="periodtypeenum")
status_enum = sa.Enum(
    "scheduled", "in_progress", "completed", "canceled", name="competitionstatusenum"
)
home_away_enum = sa.Enum("home", "away", name="homeawayenum")
rating_type_enum = sa.Enum("excitement", name="ratingtypeenum")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "competitions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("external_id", sa.String(), nullable=False),
        sa.Column("sport", sa.String(length=32), nullable=False),
        sa.Column("season", sa.String(length=16), nullable=False),
        sa.Column("period", sa.String(length=16), nullable=False),
        sa.Column("period_type", period_type_enum, nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", status_enum, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sport", "external_id", name="uq_competition_sport_external_id"),
    )
    op.create_index(
        "ix_competitions_period",
        "competitions",
        ["sport", "season", "period_type", "period"],
        unique=False,
    )

    op.create_table(
        "competition_teams",
        sa.Column("competition_id", sa.String(), nullable=False),
        sa.Column("home_away", home_away_enum, nullable=False),
        sa.Column("team_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("logo_url", sa.String(), nullable=True),
        sa.Column("record", sa.String(length=32), nullable=True),
        sa.ForeignKeyConstraint(["competition_id"], ["competitions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("competition_id", "home_away"),
    )

    op.create_table(
        "competition_details",
        sa.Column("competition_id", sa.String(), nullable=False),
        sa.Column("play_by_play", _json, nullable=False),
        sa.Column("metadata", _json, nullable=False),
        sa.ForeignKeyConstraint(["competition_id"], ["competitions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("competition_id"),
    )

    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("competition_id", sa.String(), nullable=False),
        sa.Column("type", rating_type_enum, nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("spoiler_free", sa.Text(), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=True),
        sa.Column(
            "generated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["competition_id"], ["competitions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("competition_id", "type", name="uq_rating_competition_type"),
    )


def downgrade() -> None:
    op.drop_table("ratings")
    op.drop_table("competition_details")
    op.drop_table("competition_teams")
    op.drop_index("ix_competitions_period", table_name="competitions")
    op.drop_table("competitions")

    bind = op.get_bind()
    for enum in (rating_type_enum, home_away_enum, status_enum, period_type_enum):
        enum.drop(bind, checkfirst=True)
