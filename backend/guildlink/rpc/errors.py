"""JSON-RPC 2.0 protocol error codes."""

from enum import IntEnum


class RPCErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    RPCErrorCode.PARSE_ERROR: "Parse error",
    RPCErrorCode.INVALID_REQUEST: "Invalid Request",
    RPCErrorCode.METHOD_NOT_FOUND: "Method not found",
    RPCErrorCode.INVALID_PARAMS: "Invalid params",
    RPCErrorCode.INTERNAL_ERROR: "Internal error",
}
