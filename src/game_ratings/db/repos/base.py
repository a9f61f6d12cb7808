from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from game_ratings.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    def __init__(self, session: Session, model: type[ModelT]) -> None:
        self.session = session
        self.model = model

    def first_where(self, *predicates: ColumnElement[bool]) -> ModelT | None:
        stmt = (
            select(self.model)
            .where(*predicates)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalars().first()

    def upsert(
        self,
        values: Mapping[str, Any],
        *,
        conflict_columns: Sequence[str],
        update_columns: Sequence[str],
    ) -> None:
        """INSERT ... ON CONFLICT DO UPDATE keyed by `conflict_columns`.

        Keys are table column names, which can differ from mapped attribute names.
        Supported on SQLite and PostgreSQL, which share the same upsert syntax.
        """

        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(self.model.__table__).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite.insert(self.model.__table__).values(**values)
        else:
            raise NotImplementedError(f"upsert is not supported for dialect={dialect}")

        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_={c: stmt.excluded[c] for c in update_columns},
        )
        self.session.execute(stmt)
