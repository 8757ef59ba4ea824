"""Verification flow lifecycle: linking-code issue, reuse, and expiry.

A Minecraft account has at most one active flow. Asking again while it
is active extends it and returns the same code, so a player who runs
the in-game command twice is shown one code. Otherwise a fresh code is
drawn, retrying on collision with a live code; a collision with an
expired row frees that row's code.
"""

import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.core.config import Settings
from guildlink.core.errors import RPCResultError
from guildlink.core.logging import AppLogger
from guildlink.core.result import Err, Ok, Result
from guildlink.models.verification_flow import VerificationFlow
from guildlink.repositories.verification_flow_repository import (
    VerificationFlowRepository,
)

LINKING_CODE_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"

# Largest multiple of the alphabet size that fits in a byte; bytes at or
# above it are redrawn so ``byte % 36`` is uniform.
_REJECTION_LIMIT = 256 - 256 % len(LINKING_CODE_ALPHABET)


def generate_linking_code(
    length: int = 8,
    token_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> str:
    """Generate a linking code by rejection sampling secure random bytes.

    Args:
        length: Number of symbols.
        token_bytes: Byte source (injectable for tests).

    Returns:
        Code of ``length`` symbols from ``[a-z0-9]``.
    """
    symbols: list[str] = []
    while len(symbols) < length:
        for byte in token_bytes(length - len(symbols)):
            if byte < _REJECTION_LIMIT:
                symbols.append(LINKING_CODE_ALPHABET[byte % len(LINKING_CODE_ALPHABET)])
    return "".join(symbols)


@dataclass(frozen=True)
class IssuedLinkingCode:
    """Linking code handed to the game server."""

    linking_code: str
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(UTC)


class VerificationFlowManager:
    """Creates, reuses, resolves and purges verification flows."""

    def __init__(
        self,
        *,
        ttl: timedelta = timedelta(minutes=15),
        code_length: int = 8,
        max_attempts: int = 5,
        code_generator: Callable[[int], str] = generate_linking_code,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = ttl
        self._code_length = code_length
        self._max_attempts = max_attempts
        self._generate = code_generator
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "VerificationFlowManager":
        return cls(
            ttl=timedelta(minutes=settings.verification_flow_ttl_minutes),
            code_length=settings.linking_code_length,
            max_attempts=settings.linking_code_max_attempts,
        )

    async def create_or_reuse(
        self,
        db: AsyncSession,
        minecraft_uuid: uuid.UUID,
        logger: AppLogger,
    ) -> Result[IssuedLinkingCode, RPCResultError]:
        """Issue a linking code for a Minecraft account.

        Args:
            db: Async database session (committed on success).
            minecraft_uuid: Account the code will link.
            logger: Caller's logger.

        Returns:
            Ok(IssuedLinkingCode), or Err with ``DatabaseError`` or
            ``CodeGenerationFailed``.
        """
        logger = logger.child("create_or_reuse_flow")
        now = self._clock()
        expires_at = now + self._ttl

        try:
            existing = await VerificationFlowRepository.get_active_for_minecraft_uuid(
                db, minecraft_uuid, now
            )
            if existing is not None:
                linking_code = existing.linking_code
                await VerificationFlowRepository.extend(db, existing.id, expires_at)
                await db.commit()
                logger.info("verification_flow_extended", minecraft_uuid=str(minecraft_uuid))
                return Ok(IssuedLinkingCode(linking_code=linking_code, expires_at=expires_at))

            await VerificationFlowRepository.delete_for_minecraft_uuid(db, minecraft_uuid)

            for attempt in range(1, self._max_attempts + 1):
                linking_code = self._generate(self._code_length)
                collision = await VerificationFlowRepository.get_by_linking_code(
                    db, linking_code
                )
                if collision is not None:
                    if collision.is_active(now):
                        logger.warning("linking_code_collision", attempt=attempt)
                        continue
                    await VerificationFlowRepository.delete_by_id(db, collision.id)
                    logger.info("linking_code_reclaimed_from_expired_flow", attempt=attempt)

                await VerificationFlowRepository.create(
                    db,
                    linking_code=linking_code,
                    minecraft_uuid=minecraft_uuid,
                    created_at=now,
                    expires_at=expires_at,
                )
                await db.commit()
                logger.info(
                    "verification_flow_created",
                    minecraft_uuid=str(minecraft_uuid),
                    attempt=attempt,
                )
                return Ok(IssuedLinkingCode(linking_code=linking_code, expires_at=expires_at))

            await db.rollback()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("verification_flow_write_failed")
            return Err(RPCResultError.DATABASE_ERROR)

        logger.error("linking_code_generation_failed", attempts=self._max_attempts)
        return Err(RPCResultError.CODE_GENERATION_FAILED)

    async def resolve_active(
        self,
        db: AsyncSession,
        linking_code: str,
        logger: AppLogger,
    ) -> Result[VerificationFlow, RPCResultError]:
        """Look up the unexpired flow for a linking code.

        Returns:
            Ok(VerificationFlow), or Err with ``InvalidLinkingCode`` for an
            unknown or expired code, ``DatabaseError`` on datastore failure.
        """
        try:
            flow = await VerificationFlowRepository.get_active_by_linking_code(
                db, linking_code, self._clock()
            )
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("verification_flow_lookup_failed")
            return Err(RPCResultError.DATABASE_ERROR)

        if flow is None:
            logger.warning("linking_code_not_active")
            return Err(RPCResultError.INVALID_LINKING_CODE)
        return Ok(flow)

    async def purge_expired(
        self,
        db: AsyncSession,
        logger: AppLogger,
    ) -> Result[int, RPCResultError]:
        """Delete every expired flow.

        Returns:
            Ok(number of deleted rows) or Err(DatabaseError).
        """
        logger = logger.child("purge_expired_flows")
        try:
            deleted = await VerificationFlowRepository.delete_expired(db, self._clock())
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("verification_flow_purge_failed")
            return Err(RPCResultError.DATABASE_ERROR)

        logger.info("verification_flows_purged", deleted=deleted)
        return Ok(deleted)
