"""JSON-RPC 2.0 dispatcher.

Turns one raw request body into one response envelope. Protocol faults
map to the standard error codes; a handler's own outcome, success or
domain error, is wrapped in ``result`` as ``{success, value|error}``.
Nothing a handler raises escapes ``dispatch``: it is logged with its
traceback and answered with a generic internal error.
"""

import json
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, StrictFloat, StrictInt, StrictStr, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from guildlink.core.errors import RPCResultError
from guildlink.core.logging import AppLogger
from guildlink.core.result import Err, Ok, to_wire
from guildlink.rpc.context import RPCContext, RPCServices
from guildlink.rpc.errors import RPCErrorCode

RequestId = StrictStr | StrictInt | StrictFloat | None

Handler = Callable[[Any, RPCContext], Awaitable[Ok[Any] | Err[RPCResultError]]]


class RPCRequest(BaseModel):
    """JSON-RPC 2.0 request envelope."""

    jsonrpc: Literal["2.0"]
    method: StrictStr
    id: RequestId = None
    params: Any = None


@dataclass(frozen=True)
class RPCMethod:
    """A callable RPC method.

    Attributes:
        name: Method name on the wire.
        params_model: Pydantic model the ``params`` member must satisfy.
        handler: Coroutine taking validated params and the request context.
    """

    name: str
    params_model: type[BaseModel]
    handler: Handler


def build_method_table(methods: Iterable[RPCMethod]) -> Mapping[str, RPCMethod]:
    """Build the read-only routing table.

    Raises:
        ValueError: If two methods share a name.
    """
    table: dict[str, RPCMethod] = {}
    for method in methods:
        if method.name in table:
            msg = f"Duplicate RPC method: {method.name}"
            raise ValueError(msg)
        table[method.name] = method
    return MappingProxyType(table)


def _error(request_id: Any, code: RPCErrorCode) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": int(code), "message": code.message},
    }


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    msg = f"Invalid JSON constant: {name}"
    raise ValueError(msg)


def _envelope_id(payload: object) -> Any:
    """Best-effort id for an envelope that failed validation."""
    if isinstance(payload, dict):
        candidate = payload.get("id")
        if candidate is None or (
            isinstance(candidate, str | int | float)
            and not isinstance(candidate, bool)
        ):
            return candidate
    return None


class RPCDispatcher:
    """Routes JSON-RPC requests through an immutable method table."""

    def __init__(self, methods: Mapping[str, RPCMethod]) -> None:
        self._methods = methods

    @property
    def methods(self) -> Mapping[str, RPCMethod]:
        return self._methods

    async def dispatch(
        self,
        raw_body: bytes,
        *,
        db: AsyncSession,
        services: RPCServices,
        logger: AppLogger,
    ) -> dict[str, Any]:
        """Handle one request body.

        Args:
            raw_body: Undecoded HTTP request body.
            db: Request-scoped AsyncSession.
            services: Shared collaborators for handlers.
            logger: Request logger; the method name is appended for the handler.

        Returns:
            JSON-RPC response envelope.
        """
        try:
            payload = json.loads(raw_body, parse_constant=_reject_constant)
        except (ValueError, RecursionError):
            logger.warning("rpc_parse_error")
            return _error(None, RPCErrorCode.PARSE_ERROR)

        try:
            request = RPCRequest.model_validate(payload)
        except ValidationError:
            logger.warning("rpc_invalid_request")
            return _error(_envelope_id(payload), RPCErrorCode.INVALID_REQUEST)

        method = self._methods.get(request.method)
        if method is None:
            logger.warning("rpc_method_not_found", method=request.method)
            return _error(request.id, RPCErrorCode.METHOD_NOT_FOUND)

        try:
            params = method.params_model.model_validate(request.params)
        except ValidationError as exc:
            logger.warning(
                "rpc_invalid_params",
                method=request.method,
                errors=[".".join(str(part) for part in e["loc"]) for e in exc.errors()],
            )
            return _error(request.id, RPCErrorCode.INVALID_PARAMS)

        method_logger = logger.child(request.method)
        context = RPCContext(db=db, logger=method_logger, services=services)
        try:
            outcome = await method.handler(params, context)
            result = to_wire(outcome)
        except Exception:
            method_logger.exception("rpc_handler_failed")
            await db.rollback()
            return _error(request.id, RPCErrorCode.INTERNAL_ERROR)

        if isinstance(outcome, Err):
            method_logger.info("rpc_completed", error=str(outcome.error))
        else:
            method_logger.info("rpc_completed")
        return {"jsonrpc": "2.0", "id": request.id, "result": result}
