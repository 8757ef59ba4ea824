"""Rate limiting configuration using slowapi.

Security: Limits how often a single client address may call the RPC
endpoint. The game server calls from one address, so its limit must sit
above its login-time verification rate.

Usage in routers:
    from guildlink.core.rate_limiting import limiter

    @router.post("/rpc")
    @limiter.limit(lambda: settings.rate_limit_rpc)
    async def rpc_endpoint(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from guildlink.core.config import settings

# In-memory storage (single-instance deployment)
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Return 429 with an error body and a Retry-After header.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status.
    """
    # Detail looks like "60 per 1 minute"; fall back to 60 seconds
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
