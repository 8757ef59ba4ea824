"""Repository for VerificationFlow CRUD operations.

Linking codes are unique across rows and each Minecraft UUID has at most
one flow. Expiry is compared in SQL against a caller-supplied ``now`` so
a single request sees one consistent clock.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.models.verification_flow import VerificationFlow


class VerificationFlowRepository:
    """Stateless repository for VerificationFlow table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        linking_code: str,
        minecraft_uuid: uuid.UUID,
        created_at: datetime,
        expires_at: datetime,
    ) -> VerificationFlow:
        """Store a new verification flow.

        Args:
            db: Async database session.
            linking_code: Generated linking code.
            minecraft_uuid: Minecraft account the code links.
            created_at: Issue timestamp.
            expires_at: Expiry timestamp.

        Returns:
            Created VerificationFlow.

        Raises:
            sqlalchemy.exc.IntegrityError: If the code or UUID already has a row.
        """
        flow = VerificationFlow(
            linking_code=linking_code,
            minecraft_uuid=minecraft_uuid,
            created_at=created_at,
            expires_at=expires_at,
        )
        db.add(flow)
        await db.flush()
        return flow

    @staticmethod
    async def get_active_for_minecraft_uuid(
        db: AsyncSession,
        minecraft_uuid: uuid.UUID,
        now: datetime,
    ) -> VerificationFlow | None:
        """Find the unexpired flow for a Minecraft account, if any."""
        stmt = select(VerificationFlow).where(
            VerificationFlow.minecraft_uuid == minecraft_uuid,
            VerificationFlow.expires_at > now,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_linking_code(
        db: AsyncSession,
        linking_code: str,
    ) -> VerificationFlow | None:
        """Find a flow by linking code regardless of expiry.

        Used for collision checks, where an expired row still occupies
        the code's unique slot.
        """
        stmt = select(VerificationFlow).where(
            VerificationFlow.linking_code == linking_code
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_active_by_linking_code(
        db: AsyncSession,
        linking_code: str,
        now: datetime,
    ) -> VerificationFlow | None:
        """Find an unexpired flow by linking code."""
        stmt = select(VerificationFlow).where(
            VerificationFlow.linking_code == linking_code,
            VerificationFlow.expires_at > now,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def extend(
        db: AsyncSession,
        flow_id: int,
        expires_at: datetime,
    ) -> None:
        """Move a flow's expiry forward.

        Args:
            db: Async database session.
            flow_id: Primary key of the flow.
            expires_at: New expiry timestamp.
        """
        stmt = (
            update(VerificationFlow)
            .where(VerificationFlow.id == flow_id)
            .values(expires_at=expires_at)
        )
        await db.execute(stmt)

    @staticmethod
    async def delete_by_id(db: AsyncSession, flow_id: int) -> bool:
        """Delete a single flow (consumed or stale).

        Returns:
            True if this call removed the row, False if it was already gone.
        """
        stmt = delete(VerificationFlow).where(VerificationFlow.id == flow_id)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count > 0

    @staticmethod
    async def delete_for_minecraft_uuid(
        db: AsyncSession,
        minecraft_uuid: uuid.UUID,
    ) -> None:
        """Delete any flow for a Minecraft account (supplanted by a new one)."""
        stmt = delete(VerificationFlow).where(
            VerificationFlow.minecraft_uuid == minecraft_uuid
        )
        await db.execute(stmt)

    @staticmethod
    async def delete_expired(db: AsyncSession, now: datetime) -> int:
        """Delete all expired flows (periodic cleanup).

        Args:
            db: Async database session.
            now: Reference time; flows expiring at or before it are removed.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(VerificationFlow).where(VerificationFlow.expires_at <= now)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
