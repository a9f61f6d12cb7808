from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from game_ratings.core.logging import get_logger

logger = get_logger(component="service_loops")


@dataclass
class LoopStats:
    name: str
    ticks: int = 0
    failures: int = 0


def guarded(stats: LoopStats, fn: Callable[[], Any]) -> Callable[[], None]:
    """Wrap `fn` so a failing tick is logged and counted; the next tick still runs."""

    def _run() -> None:
        stats.ticks += 1
        try:
            result = fn()
        except Exception:
            stats.failures += 1
            logger.exception("loop_tick_failed", loop=stats.name, tick=stats.ticks)
            return
        logger.debug("loop_tick", loop=stats.name, tick=stats.ticks, result=repr(result))

    return _run


def add_interval_loop(
    scheduler: BackgroundScheduler,
    name: str,
    fn: Callable[[], Any],
    interval_s: float,
    *,
    run_immediately: bool = True,
) -> LoopStats:
    """Schedule `fn` every `interval_s` seconds, one run at a time."""

    if interval_s <= 0:
        raise ValueError("interval_s must be positive")

    stats = LoopStats(name=name)
    extra: dict[str, Any] = {}
    if run_immediately:
        extra["next_run_time"] = datetime.now(tz=UTC)

    scheduler.add_job(
        guarded(stats, fn),
        trigger=IntervalTrigger(seconds=interval_s, timezone=UTC),
        id=name,
        name=name,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=None,
        **extra,
    )
    logger.info("loop_scheduled", loop=name, interval_s=interval_s, run_immediately=run_immediately)
    return stats
