"""Retry scheduling for provider calls.

Exponential backoff with multiplicative jitter, capped by what is left
of the call's deadline, plus parsing of the ``Retry-After`` hint sent
with 429 responses.
"""

import math
import random
from collections.abc import Callable
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

from guildlink.providers.config import FetchPolicy

__all__ = ["compute_backoff_delay", "parse_retry_after"]


def parse_retry_after(value: str | None, now: datetime) -> float | None:
    """Parse a ``Retry-After`` header into a delay in seconds.

    The header is either a non-negative number of seconds or an HTTP
    date. Dates in the past yield 0.

    Args:
        value: Raw header value, or None if absent.
        now: Current time (timezone-aware).

    Returns:
        Delay in seconds, or None if the header is absent or unparseable.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if math.isfinite(seconds) and seconds >= 0:
            return seconds
        return None

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - now).total_seconds())


def compute_backoff_delay(
    attempt: int,
    remaining_ms: float,
    policy: FetchPolicy,
    uniform: Callable[[float, float], float] | None = None,
) -> float:
    """Compute the backoff before the next attempt.

    ``base_delay_ms * 2**attempt`` scaled by a jitter factor drawn from
    ``[jitter_min, jitter_max]``, capped at the remaining budget minus the
    safety buffer.

    Args:
        attempt: Zero-based index of the attempt that just failed.
        remaining_ms: Milliseconds left before the call's deadline.
        policy: Fetch policy with backoff settings.
        uniform: Jitter source; defaults to ``random.uniform``.

    Returns:
        Delay in seconds. A value <= 0 means there is no time left to retry.
    """
    draw = uniform or random.uniform
    jitter = draw(policy.jitter_min, policy.jitter_max)
    delay_ms = policy.base_delay_ms * (2**attempt) * jitter
    delay_ms = min(delay_ms, remaining_ms - policy.safety_buffer_ms)
    return delay_ms / 1000
