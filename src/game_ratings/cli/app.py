from __future__ import annotations

import typer

from game_ratings.cli.backfill import backfill_cmd
from game_ratings.cli.fill_missing import app as fill_missing_app
from game_ratings.cli.service import serve_cmd, sync_latest_cmd
from game_ratings.core.config import settings
from game_ratings.core.logging import setup_logging

app = typer.Typer(no_args_is_help=True)


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Log level."),
    log_json: bool = typer.Option(settings.log_json, "--log-json", help="Emit JSON log lines."),
) -> None:
    setup_logging(level=log_level, json=log_json)


app.command("backfill")(backfill_cmd)
app.command("sync-latest")(sync_latest_cmd)
app.command("serve")(serve_cmd)
app.add_typer(fill_missing_app, name="fill-missing")
