"""Link a Discord account to a Minecraft account.

Single forward pass over the OAuth callback:

1. Decode the round-tripped state.
2. Resolve the active verification flow for its linking code.
3. Exchange the authorization code for tokens.
4. Fetch the Discord profile.
5. Check membership of the configured guild.
6. Upsert both identities, bind them (replacing any previous link of
   either side) and consume the flow, in one transaction.

Nothing is written before step 6, so every earlier failure leaves the
datastore untouched and the flow usable for another attempt.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.core.errors import RPCResultError
from guildlink.core.logging import AppLogger
from guildlink.core.oauth import decode_oauth_state
from guildlink.core.result import Err, Ok, Result
from guildlink.providers.discord.directory import DiscordDirectory
from guildlink.providers.discord.oauth import DiscordOAuthService
from guildlink.providers.errors import ProviderError
from guildlink.repositories.connection_repository import ConnectionRepository
from guildlink.repositories.discord_user_repository import DiscordUserRepository
from guildlink.repositories.minecraft_user_repository import MinecraftUserRepository
from guildlink.repositories.verification_flow_repository import (
    VerificationFlowRepository,
)
from guildlink.services.verification_flow import VerificationFlowManager


@dataclass(frozen=True)
class LinkedAccount:
    """Outcome of a successful link."""

    discord_id: str
    discord_username: str


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LinkingCoordinator:
    """Completes the Discord side of a verification flow."""

    def __init__(
        self,
        *,
        oauth: DiscordOAuthService,
        directory: DiscordDirectory,
        flows: VerificationFlowManager,
        guild_id: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._oauth = oauth
        self._directory = directory
        self._flows = flows
        self._guild_id = guild_id
        self._clock = clock

    async def link(
        self,
        db: AsyncSession,
        *,
        code: str,
        state: str,
        logger: AppLogger,
    ) -> Result[LinkedAccount, RPCResultError]:
        """Run the linking pass for an OAuth callback.

        Args:
            db: Async database session (committed on success).
            code: Authorization code from the redirect.
            state: Raw state from the redirect.
            logger: Caller's logger.

        Returns:
            Ok(LinkedAccount) or Err(RPCResultError).
        """
        logger = logger.child("link_account")

        oauth_state = decode_oauth_state(state)
        if oauth_state is None:
            logger.warning("oauth_state_invalid")
            return Err(RPCResultError.INVALID_STATE)

        flow = await self._flows.resolve_active(db, oauth_state.linking_code, logger)
        if isinstance(flow, Err):
            return flow
        flow_id = flow.value.id
        minecraft_uuid = flow.value.minecraft_uuid

        # No transaction stays open across the Discord round trips
        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("verification_flow_read_failed")
            return Err(RPCResultError.DATABASE_ERROR)

        tokens = await self._oauth.exchange_code(code, logger)
        if isinstance(tokens, Err):
            if tokens.error == ProviderError.INVALID_CODE:
                return Err(RPCResultError.INVALID_CODE)
            logger.error("discord_token_exchange_failed", error=str(tokens.error))
            return Err(RPCResultError.DISCORD_ERROR)

        profile = await self._directory.fetch_profile(tokens.value.access_token, logger)
        if isinstance(profile, Err):
            logger.error("discord_profile_fetch_failed", error=str(profile.error))
            return Err(RPCResultError.DISCORD_ERROR)

        memberships = await self._directory.fetch_memberships(
            tokens.value.access_token, logger
        )
        if isinstance(memberships, Err):
            logger.error("discord_guilds_fetch_failed", error=str(memberships.error))
            return Err(RPCResultError.DISCORD_ERROR)

        if not any(guild.id == self._guild_id for guild in memberships.value):
            logger.warning("discord_user_not_in_guild", discord_id=profile.value.id)
            return Err(RPCResultError.ACCESS_DENIED)

        now = self._clock()
        try:
            consumed = await VerificationFlowRepository.delete_by_id(db, flow_id)
            if not consumed:
                await db.rollback()
                logger.warning("verification_flow_already_consumed")
                return Err(RPCResultError.INVALID_LINKING_CODE)

            discord_user_id = await DiscordUserRepository.upsert(
                db,
                discord_id=profile.value.id,
                username=profile.value.display_name,
                refresh_token=tokens.value.refresh_token,
                now=now,
            )
            minecraft_user_id = await MinecraftUserRepository.upsert(
                db, minecraft_uuid=minecraft_uuid, now=now
            )
            await ConnectionRepository.upsert(
                db,
                discord_user_id=discord_user_id,
                minecraft_user_id=minecraft_user_id,
                now=now,
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("account_link_write_failed")
            return Err(RPCResultError.DATABASE_ERROR)

        logger.info(
            "account_linked",
            discord_id=profile.value.id,
            minecraft_uuid=str(minecraft_uuid),
        )
        return Ok(
            LinkedAccount(
                discord_id=profile.value.id,
                discord_username=profile.value.display_name,
            )
        )
