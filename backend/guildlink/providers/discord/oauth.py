"""Discord OAuth2 token service.

Authorization-code exchange, refresh and revocation against Discord's
token endpoints, plus the authorize-page URL. Each operation is one
call through ``DiscordFetchClient`` followed by response classification:

- 401: the application credentials were rejected (``invalid-auth``).
- A success payload: a ``TokenSet``.
- An ``invalid_grant`` error payload: the code (exchange) or refresh
  token (refresh) is bad.
- Any other error payload: ``unknown-error``.
- Anything else: ``unexpected-response``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import quote, urlencode

from pydantic import SecretStr, ValidationError

from guildlink.core.config import Settings
from guildlink.core.logging import AppLogger
from guildlink.core.result import Err, Ok, Result
from guildlink.providers.discord.client import DiscordFetchClient, FetchRequest, FetchResponse
from guildlink.providers.discord.schemas import TokenErrorResponse, TokenResponse
from guildlink.providers.errors import CallError, ProviderError

AUTHORIZE_PATH = "/oauth2/authorize"
TOKEN_PATH = "/api/oauth2/token"
REVOKE_PATH = "/api/oauth2/token/revoke"

OAUTH_SCOPES = ("identify", "guilds")

# Subtracted from the declared lifetime to cover clock skew and in-flight use
TOKEN_EXPIRY_MARGIN = timedelta(seconds=30)

_INVALID_GRANT = "invalid_grant"
_HTTP_UNAUTHORIZED = 401
_REVOKE_OK_STATUSES = frozenset({200, 204})
_FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


@dataclass(frozen=True)
class AppCredentials:
    """Discord application credentials."""

    client_id: str
    client_secret: SecretStr
    redirect_uri: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppCredentials":
        return cls(
            client_id=settings.discord_client_id,
            client_secret=settings.discord_client_secret,
            redirect_uri=settings.discord_redirect_uri,
        )


@dataclass(frozen=True)
class TokenSet:
    """Tokens issued by the token endpoint.

    Attributes:
        access_token: Bearer token for API calls.
        refresh_token: Single-use credential for the next refresh.
        scope: Granted scopes.
        expires_at: Effective expiry (declared lifetime minus the margin).
        token_type: Token type, normally "Bearer".
    """

    access_token: str
    refresh_token: str
    scope: tuple[str, ...]
    expires_at: datetime
    token_type: str


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DiscordOAuthService:
    """Token endpoint operations for one Discord application."""

    def __init__(
        self,
        fetch: DiscordFetchClient,
        credentials: AppCredentials,
        *,
        authorize_base_url: str = "https://discord.com",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._fetch = fetch
        self._credentials = credentials
        self._authorize_base_url = authorize_base_url.rstrip("/")
        self._clock = clock

    def build_authorize_url(self, state: str) -> str:
        """Build the authorize-page URL the player is sent to.

        Args:
            state: Encoded OAuth state round-tripped through the redirect.

        Returns:
            Absolute authorize URL.
        """
        query = urlencode(
            {
                "client_id": self._credentials.client_id,
                "redirect_uri": self._credentials.redirect_uri,
                "response_type": "code",
                "scope": " ".join(OAUTH_SCOPES),
                "state": state,
            },
            quote_via=quote,
            safe="",
        )
        return f"{self._authorize_base_url}{AUTHORIZE_PATH}?{query}"

    async def exchange_code(
        self,
        code: str,
        logger: AppLogger,
    ) -> Result[TokenSet, CallError]:
        """Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the redirect.
            logger: Caller's logger.

        Returns:
            Ok(TokenSet), or Err with ``invalid-code`` for a rejected code.
        """
        logger = logger.child("exchange_code")
        response = await self._fetch.call(
            TOKEN_PATH,
            self._token_request(
                grant_type="authorization_code",
                code=code,
                redirect_uri=self._credentials.redirect_uri,
            ),
            logger,
        )
        if isinstance(response, Err):
            return response
        result = self._classify_token_response(
            response.value, logger, invalid_grant=ProviderError.INVALID_CODE
        )
        if isinstance(result, Ok):
            logger.info("discord_code_exchanged")
        return result

    async def refresh_token(
        self,
        refresh_token: str,
        logger: AppLogger,
    ) -> Result[TokenSet, CallError]:
        """Trade a refresh token for a new token set.

        Discord rotates the refresh token on every refresh; the old one
        stops working once this succeeds.

        Args:
            refresh_token: Stored refresh token.
            logger: Caller's logger.

        Returns:
            Ok(TokenSet), or Err with ``invalid-auth`` for a rejected token.
        """
        logger = logger.child("refresh_token")
        response = await self._fetch.call(
            TOKEN_PATH,
            self._token_request(grant_type="refresh_token", refresh_token=refresh_token),
            logger,
        )
        if isinstance(response, Err):
            return response
        result = self._classify_token_response(
            response.value, logger, invalid_grant=ProviderError.INVALID_AUTH
        )
        if isinstance(result, Ok):
            logger.info("discord_token_refreshed")
        return result

    async def revoke(self, token: str, logger: AppLogger) -> Result[None, CallError]:
        """Revoke an access or refresh token. The response body is ignored."""
        logger = logger.child("revoke_token")
        response = await self._fetch.call(
            REVOKE_PATH,
            self._token_request(token=token),
            logger,
        )
        if isinstance(response, Err):
            return response

        status = response.value.status_code
        if status == _HTTP_UNAUTHORIZED:
            logger.warning("discord_client_credentials_rejected")
            return Err(ProviderError.INVALID_AUTH)
        if status not in _REVOKE_OK_STATUSES:
            logger.error("discord_revoke_unexpected_status", status_code=status)
            return Err(ProviderError.UNEXPECTED_RESPONSE)

        logger.info("discord_token_revoked")
        return Ok(None)

    def _token_request(self, **fields: str) -> FetchRequest:
        form = {
            "client_id": self._credentials.client_id,
            "client_secret": self._credentials.client_secret.get_secret_value(),
            **fields,
        }
        return FetchRequest(method="POST", headers=_FORM_HEADERS, form=form)

    def _classify_token_response(
        self,
        response: FetchResponse,
        logger: AppLogger,
        *,
        invalid_grant: ProviderError,
    ) -> Result[TokenSet, CallError]:
        if response.status_code == _HTTP_UNAUTHORIZED:
            logger.warning("discord_client_credentials_rejected")
            return Err(ProviderError.INVALID_AUTH)

        try:
            payload = TokenResponse.model_validate(response.body)
        except ValidationError:
            pass
        else:
            return Ok(self._to_token_set(payload))

        try:
            error = TokenErrorResponse.model_validate(response.body)
        except ValidationError:
            logger.error(
                "discord_token_unexpected_response",
                status_code=response.status_code,
            )
            logger.debug("discord_token_response_body", body=response.body)
            return Err(ProviderError.UNEXPECTED_RESPONSE)

        if error.error == _INVALID_GRANT:
            logger.warning("discord_invalid_grant")
            return Err(invalid_grant)

        logger.warning(
            "discord_token_error",
            error=error.error,
            description=error.error_description or "No description",
        )
        return Err(ProviderError.UNKNOWN_ERROR)

    def _to_token_set(self, payload: TokenResponse) -> TokenSet:
        lifetime = timedelta(seconds=payload.expires_in) - TOKEN_EXPIRY_MARGIN
        return TokenSet(
            access_token=payload.access_token,
            refresh_token=payload.refresh_token,
            scope=tuple(payload.scope.split(" ")),
            expires_at=self._clock() + lifetime,
            token_type=payload.token_type,
        )
