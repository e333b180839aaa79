"""Retry policy configuration."""

from dataclasses import dataclass


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of retries scheduled per request
        base_delay_seconds: Delay before the first retry
        max_delay_seconds: Cap for exponential backoff
        jitter: Randomize each delay by +/-25%

    Example:
        config = RetryConfig(max_attempts=5, base_delay_seconds=1)
    """

    max_attempts: int = 3
    base_delay_seconds: float = 2.0
    max_delay_seconds: float = 60.0
    jitter: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 0:
            raise ValueError("max_attempts must not be negative")
        if self.base_delay_seconds <= 0:
            raise ValueError("base_delay_seconds must be positive")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
