"""JSON-RPC endpoint.

POST /api/rpc - one JSON-RPC 2.0 request per call. Every outcome,
protocol error included, is answered with HTTP 200 and a JSON-RPC
envelope; only rate limiting and unhandled faults use other statuses.
"""

import uuid

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from guildlink.api.deps import DbSession, Dispatcher, Services
from guildlink.core.config import settings
from guildlink.core.logging import AppLogger
from guildlink.core.rate_limiting import limiter

router = APIRouter()


@router.post("/rpc")
@limiter.limit(lambda: settings.rate_limit_rpc)
async def rpc_endpoint(
    request: Request,
    db: DbSession,
    dispatcher: Dispatcher,
    services: Services,
) -> JSONResponse:
    """Dispatch one JSON-RPC request.

    The body is read raw so malformed JSON reaches the dispatcher and is
    answered with a parse error instead of a framework validation error.
    """
    logger = AppLogger.root().child("request").child(str(uuid.uuid4()))
    body = await request.body()
    response = await dispatcher.dispatch(body, db=db, services=services, logger=logger)
    return JSONResponse(content=response)
