"""Provider error taxonomy.

Two layers, both plain string enums whose values are the wire strings:

- ``FetchError``: transport outcomes of a single logical HTTP call.
  Retried inside the fetch client until its budget runs out, then
  surfaced unchanged.
- ``ProviderError``: classification of a response that arrived but is
  not usable. Never retried.

Operations that call Discord fail with either kind, hence ``CallError``.
"""

from enum import StrEnum
from typing import TypeAlias

__all__ = ["CallError", "FetchError", "ProviderError"]


class FetchError(StrEnum):
    """Transport-level failure of a fetch call."""

    NETWORK_ERROR = "network-error"
    INVALID_JSON = "invalid-json"
    TIMEOUT = "timeout"
    RETRIES_EXHAUSTED = "retries-exhausted"


class ProviderError(StrEnum):
    """Provider response that cannot be turned into a domain value."""

    INVALID_AUTH = "invalid-auth"
    INVALID_CODE = "invalid-code"
    INSUFFICIENT_PERMISSIONS = "insufficient-permissions"
    UNEXPECTED_RESPONSE = "unexpected-response"
    UNKNOWN_ERROR = "unknown-error"


CallError: TypeAlias = FetchError | ProviderError
