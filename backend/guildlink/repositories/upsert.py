"""Dialect-aware INSERT ... ON CONFLICT construction.

Postgres and SQLite both support ``ON CONFLICT DO UPDATE`` but through
separate SQLAlchemy dialect constructs. The session's bound dialect
picks the right one so repositories stay portable between the
deployment database and the SQLite test database.
"""

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def insert_for(db: AsyncSession, model: type[Any]) -> Any:
    """Build an upsert-capable INSERT for ``model``.

    Args:
        db: Async database session (its bind decides the dialect).
        model: ORM model class to insert into.

    Returns:
        Dialect-specific Insert supporting ``on_conflict_do_update``.

    Raises:
        NotImplementedError: If the dialect has no ON CONFLICT support.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    msg = f"Upsert not supported for dialect: {dialect}"
    raise NotImplementedError(msg)
