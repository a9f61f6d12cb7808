from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker


@dataclass(frozen=True)
class DatabaseConfig:
    database_url: str
    echo: bool = False


def create_db_engine(cfg: DatabaseConfig) -> Engine:
    connect_args: dict[str, Any] = {}
    if cfg.database_url.startswith("sqlite"):
        # Background loops each open their own session from worker threads.
        connect_args["check_same_thread"] = False
    return create_engine(
        cfg.database_url, echo=cfg.echo, pool_pre_ping=True, connect_args=connect_args
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    One unit of work: commit on success, roll back on exception, always close.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
