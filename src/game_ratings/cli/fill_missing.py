from __future__ import annotations

import typer

from game_ratings.analysis.fill_missing import DetailsBackfill, FillMissingResult, RatingBackfill
from game_ratings.analysis.openai_rating import build_openai_rating_service
from game_ratings.cli.common import make_data_source, session_scope
from game_ratings.core.config import settings
from game_ratings.db.repos.competition_repo import SqlCompetitionStore

app = typer.Typer(help="Fill in data missing from stored competitions.")


def _echo(label: str, result: FillMissingResult) -> None:
    typer.echo(
        " ".join(
            [
                f"Filled {label} for {result.sport}:",
                f"periods_seen={result.periods_seen}",
                f"processed={result.processed}",
                f"updated={result.updated}",
            ]
        )
    )


@app.command("ratings")
def fill_missing_ratings_cmd(
    sport: str = typer.Option("nfl", "--sport", help="Sport to scan."),
    recent: int = typer.Option(
        0, "--recent", help="Only scan the most recent N stored periods (0 = all)."
    ),
) -> None:
    """Generate excitement ratings for competitions that have none (requires OPENAI_API_KEY)."""

    analysis = build_openai_rating_service(settings)
    with session_scope() as session:
        result = RatingBackfill(SqlCompetitionStore(session), analysis).fill_missing(sport, recent)
    _echo("ratings", result)


@app.command("details")
def fill_missing_details_cmd(
    sport: str = typer.Option("nfl", "--sport", help="Sport to scan."),
    recent: int = typer.Option(
        0, "--recent", help="Only scan the most recent N stored periods (0 = all)."
    ),
) -> None:
    """Re-fetch play-by-play for competitions stored without it."""

    with session_scope() as session:
        result = DetailsBackfill(SqlCompetitionStore(session), make_data_source()).fill_missing(
            sport, recent
        )
    _echo("details", result)
