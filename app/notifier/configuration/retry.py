"""Retry settings."""

from pydantic import Field

from notifier.configuration.base import NotifierSettings


class RetrySettings(NotifierSettings):
    """Retry policy for failed deliveries.

    Exponential Backoff:
        Delay calculation: min(base_delay * 2 ** (attempt - 1), max_delay)

        Example with defaults (base=2s, max=60s):
            Attempt 1: 2s
            Attempt 2: 4s
            Attempt 3: 8s

    Environment Variables:
        RETRY_MAX_ATTEMPTS: Retries allowed per request (default: 3)
        RETRY_BASE_DELAY_SECONDS: Base backoff delay (default: 2s)
        RETRY_MAX_DELAY_SECONDS: Backoff cap (default: 60s)
        RETRY_JITTER: Apply +/-25% jitter to delays (default: False)
    """

    max_attempts: int = Field(
        default=3,
        alias="RETRY_MAX_ATTEMPTS",
        description="Maximum retry attempts per request",
    )
    base_delay_seconds: float = Field(
        default=2.0,
        alias="RETRY_BASE_DELAY_SECONDS",
        description="Base delay for exponential backoff (seconds)",
    )
    max_delay_seconds: float = Field(
        default=60.0,
        alias="RETRY_MAX_DELAY_SECONDS",
        description="Maximum delay for exponential backoff (seconds)",
    )
    jitter: bool = Field(
        default=False,
        alias="RETRY_JITTER",
        description="Randomize backoff delays by +/-25%",
    )
