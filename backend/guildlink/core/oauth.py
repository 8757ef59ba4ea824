"""OAuth state round-tripped through Discord's authorize redirect.

The state is a form-encoded ``linkingCode=<code>&timestamp=<epoch-ms>``
string. It only correlates the callback with the verification flow that
issued it: it is not signed, and the linking code it carries must be
looked up again server-side before anything is trusted.
"""

from dataclasses import dataclass
from datetime import datetime
from urllib.parse import parse_qs, urlencode

_LINKING_CODE_KEY = "linkingCode"
_TIMESTAMP_KEY = "timestamp"

# Guards against pathological state strings before parsing
_MAX_STATE_LENGTH = 512


@dataclass(frozen=True)
class OAuthState:
    """Decoded OAuth state.

    Attributes:
        linking_code: Linking code of the flow that issued the redirect.
        timestamp: Issue time in milliseconds since the epoch.
    """

    linking_code: str
    timestamp: int


def encode_oauth_state(linking_code: str, issued_at: datetime) -> str:
    """Encode the state parameter for the authorize URL.

    Args:
        linking_code: Linking code of the active flow.
        issued_at: Time the OAuth link was generated (timezone-aware).

    Returns:
        Form-encoded state string.
    """
    timestamp = int(issued_at.timestamp() * 1000)
    return urlencode({_LINKING_CODE_KEY: linking_code, _TIMESTAMP_KEY: str(timestamp)})


def decode_oauth_state(state: str) -> OAuthState | None:
    """Decode a state string returned by the redirect.

    Args:
        state: Raw ``state`` value from the callback.

    Returns:
        OAuthState if both fields are present exactly once and the
        timestamp is a non-negative integer, None otherwise.
    """
    if not state or len(state) > _MAX_STATE_LENGTH:
        return None

    try:
        fields = parse_qs(state, strict_parsing=True, max_num_fields=8)
    except ValueError:
        return None

    codes = fields.get(_LINKING_CODE_KEY, [])
    timestamps = fields.get(_TIMESTAMP_KEY, [])
    if len(codes) != 1 or len(timestamps) != 1:
        return None

    linking_code, raw_timestamp = codes[0], timestamps[0]
    if not linking_code or not raw_timestamp.isascii() or not raw_timestamp.isdigit():
        return None

    return OAuthState(linking_code=linking_code, timestamp=int(raw_timestamp))
