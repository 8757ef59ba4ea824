"""Repository for Connection operations.

Enforces last-writer-wins for the 1:1 link: writing a connection for a
Minecraft account replaces whatever Discord account it was bound to.
"""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.models.connection import Connection
from guildlink.repositories.upsert import insert_for


class ConnectionRepository:
    """Stateless repository for Connection table operations.

    All methods are static; no instance state.
    """

    @staticmethod
    async def upsert(
        db: AsyncSession,
        *,
        discord_user_id: int,
        minecraft_user_id: int,
        now: datetime,
    ) -> None:
        """Bind a Discord account to a Minecraft account, overwriting prior links.

        Two statements, executed in the caller's transaction:
        1. Release the Discord account from any other Minecraft account
           (discord_user_id is unique).
        2. Insert the link, or on conflict by Minecraft account replace
           the Discord side and refresh created_at.

        Args:
            db: Async database session.
            discord_user_id: Primary key of the Discord account.
            minecraft_user_id: Primary key of the Minecraft account.
            now: Link timestamp.
        """
        release = delete(Connection).where(
            Connection.discord_user_id == discord_user_id,
            Connection.minecraft_user_id != minecraft_user_id,
        )
        await db.execute(release)

        stmt = insert_for(db, Connection).values(
            discord_user_id=discord_user_id,
            minecraft_user_id=minecraft_user_id,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Connection.minecraft_user_id],
            set_={"discord_user_id": discord_user_id, "created_at": now},
        )
        await db.execute(stmt)

    @staticmethod
    async def get_by_minecraft_user_id(
        db: AsyncSession,
        minecraft_user_id: int,
    ) -> Connection | None:
        """Find the connection for a Minecraft account."""
        stmt = select(Connection).where(
            Connection.minecraft_user_id == minecraft_user_id
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete(db: AsyncSession, connection_id: int) -> None:
        """Remove a connection (entitlement lost)."""
        stmt = delete(Connection).where(Connection.id == connection_id)
        await db.execute(stmt)
