"""Resilient HTTP client for the Discord API.

One ``call`` is one logical request: it owns a single wall-clock
deadline covering every attempt and every backoff sleep. Attempts are
classified as:

- transport failure, 429 or 5xx: retried;
- anything else: final. The body is parsed as JSON but not validated;
  callers validate it against their own schema.
"""

import asyncio
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx

from guildlink.core.logging import AppLogger
from guildlink.core.result import Err, Ok, Result
from guildlink.providers.config import FetchPolicy
from guildlink.providers.errors import FetchError
from guildlink.providers.retry import compute_backoff_delay, parse_retry_after

USER_AGENT = "Mozilla/5.0 (compatible; APIClient/1.0)"

_HTTP_TOO_MANY_REQUESTS = 429
_HTTP_NO_CONTENT = 204
_HTTP_SERVER_ERROR = 500


@dataclass(frozen=True)
class FetchRequest:
    """Outbound request description.

    Attributes:
        method: HTTP method.
        headers: Extra headers (merged over the default User-Agent).
        form: Form fields sent as ``application/x-www-form-urlencoded``.
    """

    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    form: Mapping[str, str] | None = None


@dataclass(frozen=True)
class FetchResponse:
    """Final response of a call.

    ``body`` is untrusted decoded JSON (``None`` for 204 responses).
    """

    status_code: int
    body: object


class DiscordFetchClient:
    """Deadline-bounded, retrying client over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        base_url: str,
        policy: FetchPolicy,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._policy = policy

    async def call(
        self,
        endpoint: str,
        request: FetchRequest,
        logger: AppLogger,
        *,
        max_retries: int | None = None,
        timeout_budget_ms: int | None = None,
    ) -> Result[FetchResponse, FetchError]:
        """Issue one logical request with retries under a single deadline.

        Args:
            endpoint: Path relative to the Discord base URL.
            request: Method, headers and form body.
            logger: Caller's logger; a ``discord_fetch`` child is derived.
            max_retries: Override of the policy's retry count.
            timeout_budget_ms: Override of the policy's time budget.

        Returns:
            Ok(FetchResponse) for a final, JSON-decodable response, or
            Err(FetchError) describing why none was obtained.
        """
        logger = logger.child("discord_fetch")
        if max_retries is None:
            max_retries = self._policy.max_retries
        if timeout_budget_ms is None:
            timeout_budget_ms = self._policy.timeout_budget_ms

        url = f"{self._base_url}{endpoint}"
        headers = {"User-Agent": USER_AGENT, **request.headers}
        deadline = time.monotonic() + timeout_budget_ms / 1000
        total_attempts = max_retries + 1

        for attempt in range(total_attempts):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(
                    "discord_fetch_deadline_exceeded",
                    endpoint=endpoint,
                    attempt=attempt + 1,
                )
                return Err(FetchError.TIMEOUT)

            retry_after: float | None = None
            try:
                async with asyncio.timeout(remaining):
                    response = await self._http.request(
                        request.method,
                        url,
                        headers=headers,
                        data=dict(request.form) if request.form is not None else None,
                    )
            except TimeoutError:
                logger.warning(
                    "discord_fetch_aborted_at_deadline",
                    endpoint=endpoint,
                    attempt=attempt + 1,
                )
                return Err(FetchError.TIMEOUT)
            except httpx.UnsupportedProtocol as exc:
                logger.error("discord_fetch_failed", endpoint=endpoint, error=str(exc))
                return Err(FetchError.NETWORK_ERROR)
            except httpx.TransportError as exc:
                logger.warning(
                    "discord_fetch_transport_error",
                    endpoint=endpoint,
                    attempt=attempt + 1,
                    error=type(exc).__name__,
                )
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.error("discord_fetch_failed", endpoint=endpoint, error=str(exc))
                return Err(FetchError.NETWORK_ERROR)
            else:
                status = response.status_code
                if status == _HTTP_TOO_MANY_REQUESTS:
                    retry_after = parse_retry_after(
                        response.headers.get("Retry-After"), datetime.now(UTC)
                    )
                    logger.warning(
                        "discord_fetch_rate_limited",
                        endpoint=endpoint,
                        attempt=attempt + 1,
                        retry_after=retry_after,
                    )
                elif status >= _HTTP_SERVER_ERROR:
                    logger.warning(
                        "discord_fetch_server_error",
                        endpoint=endpoint,
                        attempt=attempt + 1,
                        status_code=status,
                    )
                else:
                    return self._decode(response, endpoint, logger)

            if attempt + 1 >= total_attempts:
                break

            remaining_ms = (deadline - time.monotonic()) * 1000
            if retry_after is not None:
                if retry_after * 1000 >= remaining_ms:
                    logger.warning(
                        "discord_fetch_retry_after_exceeds_deadline",
                        endpoint=endpoint,
                        retry_after=retry_after,
                    )
                    return Err(FetchError.TIMEOUT)
                delay = retry_after
            else:
                delay = compute_backoff_delay(attempt, remaining_ms, self._policy)
                if delay <= 0:
                    break

            logger.debug("discord_fetch_backoff", endpoint=endpoint, delay=delay)
            await asyncio.sleep(delay)

        logger.error(
            "discord_fetch_retries_exhausted",
            endpoint=endpoint,
            attempts=total_attempts,
        )
        return Err(FetchError.RETRIES_EXHAUSTED)

    @staticmethod
    def _decode(
        response: httpx.Response,
        endpoint: str,
        logger: AppLogger,
    ) -> Result[FetchResponse, FetchError]:
        if response.status_code == _HTTP_NO_CONTENT:
            return Ok(FetchResponse(status_code=response.status_code, body=None))
        try:
            body: object = response.json()
        except ValueError:
            logger.error(
                "discord_fetch_invalid_json",
                endpoint=endpoint,
                status_code=response.status_code,
            )
            return Err(FetchError.INVALID_JSON)
        return Ok(FetchResponse(status_code=response.status_code, body=body))
