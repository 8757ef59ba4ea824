"""Domain errors returned to RPC callers.

Values are the exact strings the game-server plugin and the OAuth
redirect page switch on, so they must not change.
"""

from enum import StrEnum


class RPCResultError(StrEnum):
    """Terminal, caller-facing failure of an RPC method."""

    ACCESS_DENIED = "AccessDenied"
    CODE_GENERATION_FAILED = "CodeGenerationFailed"
    DATABASE_ERROR = "DatabaseError"
    DISCORD_ERROR = "DiscordError"
    INVALID_AUTH = "InvalidAuth"
    INVALID_CODE = "InvalidCode"
    INVALID_LINKING_CODE = "InvalidLinkingCode"
    INVALID_SHARED_SECRET = "InvalidSharedSecret"
    INVALID_STATE = "InvalidState"
    NOT_LINKED = "NotLinked"
