"""Rate limiter settings."""

from pydantic import Field

from notifier.configuration.base import NotifierSettings


class RateLimitSettings(NotifierSettings):
    """Per-recipient admission control configuration.

    Environment Variables:
        RATE_LIMIT_MAX_REQUESTS: Sends allowed per recipient per window (default: 60)
        RATE_LIMIT_WINDOW_SECONDS: Window length in seconds (default: 60)
        RATE_LIMIT_BULK_DELAY_SECONDS: Pause between bulk items (default: 0.1)
        RATE_LIMIT_MAX_TRACKED_RECIPIENTS: Tracked recipients above which the
            limiter reports itself unhealthy (default: 10000)
    """

    max_requests: int = Field(
        default=60,
        alias="RATE_LIMIT_MAX_REQUESTS",
        description="Maximum sends per recipient within one window",
    )
    window_seconds: float = Field(
        default=60.0,
        alias="RATE_LIMIT_WINDOW_SECONDS",
        description="Length of the rate limit window (seconds)",
    )
    bulk_delay_seconds: float = Field(
        default=0.1,
        alias="RATE_LIMIT_BULK_DELAY_SECONDS",
        description="Delay between sequential sends of a bulk request (seconds)",
    )
    max_tracked_recipients: int = Field(
        default=10000,
        alias="RATE_LIMIT_MAX_TRACKED_RECIPIENTS",
        description="Tracked recipient count above which the limiter is unhealthy",
    )
