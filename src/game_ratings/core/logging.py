from __future__ import annotations

import logging
from typing import Any

import structlog


def setup_logging(*, level: str = "INFO", json: bool = False) -> None:
    """Route stdlib logging and structlog through a single console handler.

    Console output is key/value by default; `json=True` switches to JSON lines
    for container deployments.
    """

    lvl = level.upper()

    root = logging.getLogger()
    root.setLevel(lvl)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(lvl)
    console.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console)

    # Silence noisy HTTP client and scheduler logs.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    renderer: Any = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, lvl, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(**kwargs: Any) -> Any:
    # Lazy proxy: resolved on first use, so module-level loggers honour setup_logging.
    return structlog.get_logger(**kwargs)
