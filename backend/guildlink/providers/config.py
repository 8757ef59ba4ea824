"""Fetch policy for outbound provider calls."""

from dataclasses import dataclass

from guildlink.core.config import Settings


@dataclass(frozen=True)
class FetchPolicy:
    """Retry and deadline policy for one logical provider call.

    Attributes:
        max_retries: Retries after the first attempt.
        timeout_budget_ms: Wall-clock budget for the whole call, retries included.
        base_delay_ms: First backoff delay; doubles per attempt.
        jitter_min: Lower bound of the multiplicative jitter factor.
        jitter_max: Upper bound of the multiplicative jitter factor.
        safety_buffer_ms: Time kept free before the deadline when backing off.
    """

    max_retries: int = 3
    timeout_budget_ms: int = 5000
    base_delay_ms: int = 500
    jitter_min: float = 0.85
    jitter_max: float = 1.15
    safety_buffer_ms: int = 100

    @classmethod
    def from_settings(cls, settings: Settings) -> "FetchPolicy":
        """Build the policy from application settings.

        Args:
            settings: Loaded application settings.

        Returns:
            FetchPolicy with the configured retry count and budget.
        """
        return cls(
            max_retries=settings.discord_fetch_max_retries,
            timeout_budget_ms=settings.discord_fetch_timeout_ms,
        )
