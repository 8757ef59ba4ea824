"""Repository for MinecraftUser operations."""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.models.minecraft_user import MinecraftUser
from guildlink.repositories.upsert import insert_for


class MinecraftUserRepository:
    """Stateless repository for MinecraftUser table operations.

    All methods are static; no instance state.
    """

    @staticmethod
    async def upsert(
        db: AsyncSession,
        *,
        minecraft_uuid: uuid.UUID,
        now: datetime,
    ) -> int:
        """Insert a Minecraft account, or return the existing row's id.

        The conflict branch rewrites the UUID with itself so RETURNING
        yields the existing row (DO NOTHING would return no row).

        Returns:
            Primary key of the inserted or existing row.
        """
        stmt = insert_for(db, MinecraftUser).values(
            minecraft_uuid=minecraft_uuid,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[MinecraftUser.minecraft_uuid],
            set_={"minecraft_uuid": stmt.excluded.minecraft_uuid},
        ).returning(MinecraftUser.id)
        result = await db.execute(stmt)
        row_id: int = result.scalar_one()
        return row_id

    @staticmethod
    async def get_by_uuid(
        db: AsyncSession,
        minecraft_uuid: uuid.UUID,
    ) -> MinecraftUser | None:
        """Find a Minecraft account by UUID."""
        stmt = select(MinecraftUser).where(
            MinecraftUser.minecraft_uuid == minecraft_uuid
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
