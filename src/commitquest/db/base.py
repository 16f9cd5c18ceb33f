"""Declarative base and dialect helpers shared by all models."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def insert_for(db: AsyncSession, model: type[Base]) -> Any:  # noqa: ANN401
    """Return a dialect-specific INSERT supporting ON CONFLICT for ``model``.

    PostgreSQL in production, SQLite in tests; both expose
    ``on_conflict_do_nothing`` / ``on_conflict_do_update``.
    """
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)
