"""Re-verification of an existing link.

Run by the game server at login and periodically. The stored refresh
token is rotated on every check; losing guild membership removes the
connection.
"""

import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.core.errors import RPCResultError
from guildlink.core.logging import AppLogger
from guildlink.core.result import Err, Ok, Result
from guildlink.models.connection import Connection
from guildlink.models.discord_user import DiscordUser
from guildlink.providers.discord.directory import DiscordDirectory
from guildlink.providers.discord.oauth import DiscordOAuthService
from guildlink.providers.errors import CallError, ProviderError
from guildlink.repositories.connection_repository import ConnectionRepository
from guildlink.repositories.discord_user_repository import DiscordUserRepository
from guildlink.repositories.minecraft_user_repository import MinecraftUserRepository


def _provider_failure(error: CallError) -> RPCResultError:
    if error == ProviderError.INVALID_AUTH:
        return RPCResultError.INVALID_AUTH
    return RPCResultError.DISCORD_ERROR


class ConnectionVerifier:
    """Confirms a linked Discord account still belongs to the guild."""

    def __init__(
        self,
        *,
        oauth: DiscordOAuthService,
        directory: DiscordDirectory,
        guild_id: str,
    ) -> None:
        self._oauth = oauth
        self._directory = directory
        self._guild_id = guild_id

    async def verify(
        self,
        db: AsyncSession,
        minecraft_uuid: uuid.UUID,
        logger: AppLogger,
    ) -> Result[None, RPCResultError]:
        """Re-check the guild membership behind a Minecraft account's link.

        Args:
            db: Async database session.
            minecraft_uuid: Linked Minecraft account.
            logger: Caller's logger.

        Returns:
            Ok(None) if still entitled. Err with ``NotLinked``,
            ``InvalidAuth``, ``AccessDenied`` (connection removed),
            ``DiscordError`` or ``DatabaseError`` otherwise.
        """
        logger = logger.child("verify_connection")

        try:
            linked = await self._load_link(db, minecraft_uuid)
            # No transaction stays open across the Discord round trips
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("connection_lookup_failed")
            return Err(RPCResultError.DATABASE_ERROR)

        if linked is None:
            logger.info("connection_not_found", minecraft_uuid=str(minecraft_uuid))
            return Err(RPCResultError.NOT_LINKED)
        connection, discord_user = linked
        connection_id = connection.id
        discord_user_id = discord_user.id

        if not discord_user.refresh_token:
            logger.warning("refresh_token_missing", discord_id=discord_user.discord_id)
            return Err(RPCResultError.INVALID_AUTH)

        tokens = await self._oauth.refresh_token(discord_user.refresh_token, logger)
        if isinstance(tokens, Err):
            logger.warning("discord_token_refresh_failed", error=str(tokens.error))
            return Err(_provider_failure(tokens.error))

        try:
            await DiscordUserRepository.update_refresh_token(
                db, discord_user_id, tokens.value.refresh_token
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("refresh_token_update_failed")
            return Err(RPCResultError.DATABASE_ERROR)

        memberships = await self._directory.fetch_memberships(
            tokens.value.access_token, logger
        )
        if isinstance(memberships, Err):
            logger.warning("discord_guilds_fetch_failed", error=str(memberships.error))
            return Err(_provider_failure(memberships.error))

        if any(guild.id == self._guild_id for guild in memberships.value):
            logger.info("connection_verified", minecraft_uuid=str(minecraft_uuid))
            return Ok(None)

        try:
            await ConnectionRepository.delete(db, connection_id)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("connection_delete_failed")
            return Err(RPCResultError.DATABASE_ERROR)

        logger.warning("connection_revoked_guild_left", minecraft_uuid=str(minecraft_uuid))
        return Err(RPCResultError.ACCESS_DENIED)

    @staticmethod
    async def _load_link(
        db: AsyncSession,
        minecraft_uuid: uuid.UUID,
    ) -> tuple[Connection, DiscordUser] | None:
        minecraft_user = await MinecraftUserRepository.get_by_uuid(db, minecraft_uuid)
        if minecraft_user is None:
            return None
        connection = await ConnectionRepository.get_by_minecraft_user_id(
            db, minecraft_user.id
        )
        if connection is None:
            return None
        discord_user = await DiscordUserRepository.get_by_id(db, connection.discord_user_id)
        if discord_user is None:
            return None
        return connection, discord_user
