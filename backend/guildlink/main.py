"""FastAPI application entry point.

Creates the application: logging, security headers, exception handlers,
rate limiting, the JSON-RPC route and the health check. The outbound
HTTP client and the RPC method table are built once in the lifespan.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from guildlink.api.rpc import router as rpc_router
from guildlink.core.config import settings
from guildlink.core.database import dispose_engine
from guildlink.core.logging import configure_logging
from guildlink.core.rate_limiting import limiter, rate_limit_exceeded_handler
from guildlink.rpc.context import build_rpc_services
from guildlink.rpc.dispatcher import RPCDispatcher
from guildlink.rpc.registry import build_default_method_table

logger = structlog.get_logger()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses.

    Headers added:
    - X-Frame-Options / frame-ancestors: no framing
    - X-Content-Type-Options: no MIME sniffing
    - Referrer-Policy: no referrer leakage
    - Cache-Control: no caching of RPC responses
    - Content-Security-Policy: API returns no HTML
    - Strict-Transport-Security: production only
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Linking codes and tokens pass through here
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"

        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # HSTS only in production (assumes HTTPS via reverse proxy)
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Returns 500 without exposing stack traces; the exception is logged.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse with a generic error message (500).
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            }
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the outbound HTTP client and the database pool; build the dispatcher."""
    async with httpx.AsyncClient() as http:
        app.state.rpc_services = build_rpc_services(http, settings)
        app.state.rpc_dispatcher = RPCDispatcher(build_default_method_table())
        logger.info(
            "Application started",
            environment=settings.environment,
            rpc_methods=sorted(app.state.rpc_dispatcher.methods),
        )
        yield
    await dispose_engine()
    logger.info("Application stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    configure_logging(
        settings.log_level,
        json_output=settings.environment == "production",
    )

    app = FastAPI(
        title="Guildlink API",
        version="1.0.0",
        description="Links Minecraft accounts to Discord guild members",
        lifespan=lifespan,
    )

    app.add_middleware(SecurityHeadersMiddleware)

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.limiter = limiter

    app.include_router(rpc_router, prefix="/api")

    @app.get("/health")
    def health_check() -> dict:
        """Health check endpoint for monitoring.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    return app


# Used by uvicorn: uvicorn guildlink.main:app
app = create_app()
