"""Outbound provider integrations.

Only Discord is supported. The package exposes the fetch policy and the
error enums shared by every provider call.
"""

from guildlink.providers.config import FetchPolicy
from guildlink.providers.errors import CallError, FetchError, ProviderError

__all__ = [
    "CallError",
    "FetchError",
    "FetchPolicy",
    "ProviderError",
]
