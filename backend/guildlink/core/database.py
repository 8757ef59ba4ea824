"""Async database engine and session management.

One engine per process, built from ``settings.database_url``. Postgres
(asyncpg) is the deployment target; a SQLite URL in
DATABASE_URL_OVERRIDE is accepted for local runs.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from guildlink.core.config import settings


def engine_options(url: str) -> dict[str, Any]:
    """Engine keyword arguments for a database URL.

    Args:
        url: SQLAlchemy async URL.

    Returns:
        Keyword arguments for ``create_async_engine``.
    """
    if make_url(url).get_backend_name() == "sqlite":
        # aiosqlite runs the connection on its own thread
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.environment == "development",
    **engine_options(settings.database_url),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session for the RPC route.

    Services commit their own write batches and end read transactions
    before calling Discord. Whatever is still pending when the request
    finishes is committed here; an escaping exception rolls it back.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    """Close pooled connections at shutdown."""
    await engine.dispose()
