"""Game-server shared secret check."""

import hmac

from pydantic import SecretStr


def compare_shared_secret(provided: str, expected: SecretStr) -> bool:
    """Compare a caller-supplied secret against the configured one.

    Constant-time over the byte contents. An unset expected secret never
    matches, so a misconfigured server rejects every game-server call.

    Args:
        provided: Secret sent by the game server.
        expected: Configured shared secret.

    Returns:
        True if the secrets match.
    """
    expected_bytes = expected.get_secret_value().encode("utf-8")
    if not expected_bytes:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected_bytes)
