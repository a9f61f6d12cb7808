from __future__ import annotations

import typer

from game_ratings.core.config import settings
from game_ratings.service.runner import build_service


def sync_latest_cmd(
    sport: str = typer.Option(settings.sport, "--sport", help="Sport to sync."),
) -> None:
    """Ingest the provider's current period once, then run the rating pass."""

    runner = build_service(settings.model_copy(update={"sport": sport, "analysis_delay_s": 0}))
    result = runner.sync_latest()

    period = str(result.period) if result.period else "none"
    typer.echo(
        f"Synced {result.sport} period={period} added={result.added} "
        f"ratings_updated={result.ratings_updated}"
    )


def serve_cmd() -> None:
    """Run the sync, rating and job loops until interrupted."""

    build_service(settings).run_forever()
