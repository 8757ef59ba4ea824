"""Repository for DiscordUser operations."""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.models.discord_user import DiscordUser
from guildlink.repositories.upsert import insert_for


class DiscordUserRepository:
    """Stateless repository for DiscordUser table operations.

    All methods are static; no instance state.
    """

    @staticmethod
    async def upsert(
        db: AsyncSession,
        *,
        discord_id: str,
        username: str,
        refresh_token: str,
        now: datetime,
    ) -> int:
        """Insert a Discord account or refresh its stored token and username.

        Args:
            db: Async database session.
            discord_id: Discord snowflake id (conflict target).
            username: Current Discord username.
            refresh_token: Newly issued refresh token.
            now: Creation timestamp for a fresh row.

        Returns:
            Primary key of the inserted or updated row.
        """
        stmt = insert_for(db, DiscordUser).values(
            discord_id=discord_id,
            username=username,
            refresh_token=refresh_token,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DiscordUser.discord_id],
            set_={"refresh_token": refresh_token, "username": username},
        ).returning(DiscordUser.id)
        result = await db.execute(stmt)
        row_id: int = result.scalar_one()
        return row_id

    @staticmethod
    async def get_by_id(db: AsyncSession, discord_user_id: int) -> DiscordUser | None:
        """Find a Discord account by primary key."""
        stmt = select(DiscordUser).where(DiscordUser.id == discord_user_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def update_refresh_token(
        db: AsyncSession,
        discord_user_id: int,
        refresh_token: str,
    ) -> None:
        """Store a rotated refresh token.

        Args:
            db: Async database session.
            discord_user_id: Primary key of the Discord account.
            refresh_token: Token returned by the latest refresh.
        """
        stmt = (
            update(DiscordUser)
            .where(DiscordUser.id == discord_user_id)
            .values(refresh_token=refresh_token)
        )
        await db.execute(stmt)
