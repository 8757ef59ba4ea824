"""Delete expired verification flows.

Standalone maintenance script, meant for a periodic scheduler. Expired
flows never resolve, so removing them only reclaims rows and frees
their linking codes.

Usage:
    cd backend && python -m scripts.purge_expired_flows
"""

import sys

from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.core.logging import AppLogger
from guildlink.core.result import Err
from guildlink.services.verification_flow import VerificationFlowManager


async def run_purge(db: AsyncSession, manager: VerificationFlowManager) -> int | None:
    """Purge expired flows.

    Args:
        db: Async database session.
        manager: Flow manager supplying the clock.

    Returns:
        Number of deleted rows, or None if the datastore failed.
    """
    logger = AppLogger.root().child("maintenance")
    result = await manager.purge_expired(db, logger)
    if isinstance(result, Err):
        return None
    return result.value


async def main() -> None:
    """CLI entry point: purge against the configured database."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from guildlink.core.config import settings
    from guildlink.core.database import engine_options
    from guildlink.core.logging import configure_logging

    configure_logging(settings.log_level)

    engine = create_async_engine(
        settings.database_url, echo=False, **engine_options(settings.database_url)
    )
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        deleted = await run_purge(session, VerificationFlowManager.from_settings(settings))

    await engine.dispose()
    sys.exit(0 if deleted is not None else 1)


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
