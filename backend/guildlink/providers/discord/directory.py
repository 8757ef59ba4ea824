"""Discord identity directory: the token owner's profile and guilds."""

from dataclasses import dataclass
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from guildlink.core.logging import AppLogger
from guildlink.core.result import Err, Ok, Result
from guildlink.providers.discord.client import DiscordFetchClient, FetchRequest, FetchResponse
from guildlink.providers.discord.schemas import PartialGuildList, UserResponse
from guildlink.providers.errors import CallError, ProviderError

T = TypeVar("T")

PROFILE_PATH = "/api/v10/users/@me"
GUILDS_PATH = "/api/v10/users/@me/guilds"

_USER_ADAPTER = TypeAdapter(UserResponse)

_STATUS_ERRORS = {
    401: ProviderError.INVALID_AUTH,
    403: ProviderError.INSUFFICIENT_PERMISSIONS,
}


@dataclass(frozen=True)
class DiscordProfile:
    """Authenticated Discord account."""

    id: str
    display_name: str


@dataclass(frozen=True)
class Membership:
    """A guild the account belongs to."""

    id: str
    name: str


class DiscordDirectory:
    """Reads the profile and guild list of the access token's owner."""

    def __init__(self, fetch: DiscordFetchClient) -> None:
        self._fetch = fetch

    async def fetch_profile(
        self,
        access_token: str,
        logger: AppLogger,
    ) -> Result[DiscordProfile, CallError]:
        """Fetch the current user's profile.

        Args:
            access_token: OAuth access token with the ``identify`` scope.
            logger: Caller's logger.

        Returns:
            Ok(DiscordProfile) or Err(CallError).
        """
        logger = logger.child("fetch_profile")
        response = await self._fetch.call(PROFILE_PATH, _bearer(access_token), logger)
        if isinstance(response, Err):
            return response
        user = _validate(response.value, _USER_ADAPTER, logger)
        if isinstance(user, Err):
            return user
        return Ok(DiscordProfile(id=user.value.id, display_name=user.value.username))

    async def fetch_memberships(
        self,
        access_token: str,
        logger: AppLogger,
    ) -> Result[list[Membership], CallError]:
        """Fetch the guilds the current user is a member of.

        A single page is enough: Discord caps a user's guild count below
        the endpoint's page size.

        Args:
            access_token: OAuth access token with the ``guilds`` scope.
            logger: Caller's logger.

        Returns:
            Ok(list of Membership) or Err(CallError).
        """
        logger = logger.child("fetch_memberships")
        response = await self._fetch.call(GUILDS_PATH, _bearer(access_token), logger)
        if isinstance(response, Err):
            return response
        guilds = _validate(response.value, PartialGuildList, logger)
        if isinstance(guilds, Err):
            return guilds
        return Ok([Membership(id=guild.id, name=guild.name) for guild in guilds.value])


def _bearer(access_token: str) -> FetchRequest:
    return FetchRequest(headers={"Authorization": f"Bearer {access_token}"})


def _validate(
    response: FetchResponse,
    adapter: TypeAdapter[T],
    logger: AppLogger,
) -> Result[T, CallError]:
    status_error = _STATUS_ERRORS.get(response.status_code)
    if status_error is not None:
        logger.warning("discord_request_rejected", status_code=response.status_code)
        return Err(status_error)

    try:
        value = adapter.validate_python(response.body)
    except ValidationError:
        logger.error("discord_unexpected_response", status_code=response.status_code)
        logger.debug("discord_response_body", body=response.body)
        return Err(ProviderError.UNEXPECTED_RESPONSE)
    return Ok(value)
