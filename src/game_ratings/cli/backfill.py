from __future__ import annotations

import typer

from game_ratings.cli.common import make_data_source, session_scope
from game_ratings.db.enums import PeriodTypeEnum
from game_ratings.db.repos.competition_repo import SqlCompetitionStore
from game_ratings.domain.entities import Period
from game_ratings.ingestion.backfill import BackfillOrchestrator, BackfillResult
from game_ratings.ingestion.fetcher import PeriodFetcher

_STATUS_OK = "ok"
_STATUS_FAILED = "FAILED"
_STATUS_SKIPPED = "skipped"


def format_summary(result: BackfillResult) -> str:
    lines = [f"=== Backfill Summary for Season {result.season} ==="]
    if result.limit > 0:
        reached = " (REACHED)" if result.limit_reached else ""
        lines.append(f"Competition Limit: {result.limit}{reached}")
    lines += [
        f"Periods Processed: {result.periods_processed}",
        f"Total Competitions Added: {result.competitions_added}",
        f"Errors: {len(result.errors)}",
        "",
    ]

    if result.errors:
        lines.append("=== Errors ===")
        lines += [f"  {e.period_type} {e.period}: {e.error}" for e in result.errors]
        lines.append("")

    lines.append("=== Period Details ===")
    for p in result.period_results:
        status = _STATUS_OK
        if p.error:
            status = _STATUS_FAILED
        elif p.skipped:
            status = _STATUS_SKIPPED
        line = (
            f"  {p.period_type} week {p.period}: {status} "
            f"existing={p.existing_count} added={p.added_count}"
        )
        if p.skip_reason:
            line += f" ({p.skip_reason})"
        lines.append(line)

    return "\n".join(lines)


def backfill_cmd(
    season: str = typer.Option(..., "--season", help="Season to backfill (e.g. 2024)."),
    sport: str = typer.Option("nfl", "--sport", help="Sport to backfill."),
    limit: int = typer.Option(
        0, "--limit", help="Maximum number of competitions to add (0 = no limit)."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    update: bool = typer.Option(
        False,
        "--update",
        help="Re-fetch and overwrite competitions that are already stored.",
    ),
    period: str | None = typer.Option(
        None, "--period", help="Only process this period/week (e.g. 1)."
    ),
    period_type: PeriodTypeEnum = typer.Option(
        PeriodTypeEnum.REGULAR,
        "--period-type",
        help="Period type used with --period.",
    ),
) -> None:
    """Backfill a whole season (or one period) from the data source."""

    with session_scope() as session:
        store = SqlCompetitionStore(session)
        data_source = make_data_source()
        orchestrator = BackfillOrchestrator(
            fetcher=PeriodFetcher(data_source=data_source, store=store),
            store=store,
        )

        if period is not None:
            p = Period(season=season, period=period, period_type=period_type)
            if update:
                result = orchestrator.backfill_period_update(sport, p, limit)
            else:
                result = orchestrator.backfill_period(sport, p, limit)
        elif update:
            result = orchestrator.backfill_update(sport, season, limit)
        else:
            result = orchestrator.backfill(sport, season, limit)

    typer.echo(result.to_json() if json_output else format_summary(result))

    if not result.ok:
        raise typer.Exit(code=1)
