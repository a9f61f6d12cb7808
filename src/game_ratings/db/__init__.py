from game_ratings.db.base import Base
from game_ratings.db.engine import (
    DatabaseConfig,
    create_db_engine,
    create_session_factory,
    session_scope,
)

__all__ = [
    "Base",
    "DatabaseConfig",
    "create_db_engine",
    "create_session_factory",
    "session_scope",
]
