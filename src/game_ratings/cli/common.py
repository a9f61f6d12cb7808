from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from game_ratings.core.config import settings
from game_ratings.db import DatabaseConfig, create_db_engine, create_session_factory
from game_ratings.db import session_scope as _session_scope
from game_ratings.domain.interfaces import DataSource
from game_ratings.ingestion.providers.espn.data_source import build_espn_data_source
from game_ratings.ingestion.retry import RetryingDataSource


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Context-managed DB session for CLI commands.
    Ensures proper close and rolls back on exception.
    """
    engine = create_db_engine(
        DatabaseConfig(database_url=settings.database_url, echo=settings.db_echo)
    )
    with _session_scope(create_session_factory(engine)) as session:
        yield session


def make_data_source() -> DataSource:
    return RetryingDataSource(build_espn_data_source(settings))
