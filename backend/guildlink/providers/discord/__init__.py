"""Discord provider: resilient fetch client, OAuth2 tokens, identity directory."""

from guildlink.providers.discord.client import (
    DiscordFetchClient,
    FetchRequest,
    FetchResponse,
)
from guildlink.providers.discord.directory import (
    DiscordDirectory,
    DiscordProfile,
    Membership,
)
from guildlink.providers.discord.oauth import (
    AppCredentials,
    DiscordOAuthService,
    TokenSet,
)

__all__ = [
    "AppCredentials",
    "DiscordDirectory",
    "DiscordFetchClient",
    "DiscordOAuthService",
    "DiscordProfile",
    "FetchRequest",
    "FetchResponse",
    "Membership",
    "TokenSet",
]
