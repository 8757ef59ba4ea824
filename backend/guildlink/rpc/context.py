"""Per-request context handed to RPC method handlers."""

from dataclasses import dataclass

import httpx
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.core.config import Settings
from guildlink.core.logging import AppLogger
from guildlink.providers.config import FetchPolicy
from guildlink.providers.discord.client import DiscordFetchClient
from guildlink.providers.discord.directory import DiscordDirectory
from guildlink.providers.discord.oauth import AppCredentials, DiscordOAuthService
from guildlink.services.account_linking import LinkingCoordinator
from guildlink.services.connection_verifier import ConnectionVerifier
from guildlink.services.verification_flow import VerificationFlowManager


@dataclass(frozen=True)
class RPCServices:
    """Process-wide collaborators, built once at startup."""

    flows: VerificationFlowManager
    oauth: DiscordOAuthService
    linker: LinkingCoordinator
    verifier: ConnectionVerifier
    shared_secret: SecretStr


@dataclass(frozen=True)
class RPCContext:
    """What a handler may touch while serving one request.

    Attributes:
        db: Request-scoped database session.
        logger: Logger whose trace ends with the method name.
        services: Shared collaborators.
    """

    db: AsyncSession
    logger: AppLogger
    services: RPCServices


def build_rpc_services(http: httpx.AsyncClient, settings: Settings) -> RPCServices:
    """Wire the Discord provider and services from settings.

    Args:
        http: Shared outbound HTTP client (owned by the caller).
        settings: Application settings.

    Returns:
        RPCServices ready for the dispatcher.
    """
    fetch = DiscordFetchClient(
        http,
        base_url=settings.discord_base_url,
        policy=FetchPolicy.from_settings(settings),
    )
    oauth = DiscordOAuthService(
        fetch,
        AppCredentials.from_settings(settings),
        authorize_base_url=settings.discord_base_url,
    )
    directory = DiscordDirectory(fetch)
    flows = VerificationFlowManager.from_settings(settings)
    return RPCServices(
        flows=flows,
        oauth=oauth,
        linker=LinkingCoordinator(
            oauth=oauth,
            directory=directory,
            flows=flows,
            guild_id=settings.discord_guild_id,
        ),
        verifier=ConnectionVerifier(
            oauth=oauth,
            directory=directory,
            guild_id=settings.discord_guild_id,
        ),
        shared_secret=settings.shared_secret,
    )
