"""Dialect-aware INSERT ... ON CONFLICT helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


async def insert_or_ignore(db: AsyncSession, model: Any, **values: Any) -> int:
    """Insert a row unless it collides with a unique constraint.

    Returns the number of rows inserted (0 or 1). Postgres is the production
    target; SQLite backs the local/test store.
    """
    dialect = db.get_bind().dialect.name
    insert = sqlite_insert if dialect == "sqlite" else pg_insert
    stmt = insert(model).values(**values).on_conflict_do_nothing()
    result = await db.execute(stmt)
    return result.rowcount or 0


async def upsert(
    db: AsyncSession,
    model: Any,
    index_elements: list[str],
    values: dict[str, Any],
) -> None:
    """Insert a row, or update its non-key columns if it already exists."""
    dialect = db.get_bind().dialect.name
    insert = sqlite_insert if dialect == "sqlite" else pg_insert
    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_={k: getattr(stmt.excluded, k) for k in values if k not in index_elements},
    )
    await db.execute(stmt)
