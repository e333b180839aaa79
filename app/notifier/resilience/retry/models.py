"""Retry models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class RetryAttempt:
    """A scheduled retry of a failed delivery.

    Fields:
        request_id: Notification request being retried
        attempt_number: 1-based retry number, never above max_attempts
        scheduled_at: When the retry should run
        delay_seconds: Backoff delay that produced scheduled_at
        error_code: Error code of the failure that triggered the retry
        error_message: Human-readable message of that failure
        created_at: When the retry was scheduled
    """

    request_id: str
    attempt_number: int
    scheduled_at: datetime
    delay_seconds: float
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.request_id:
            raise ValueError("request_id is required")
        if self.attempt_number < 1:
            raise ValueError("attempt_number must be at least 1")
