"""Notification error codes and exceptions.

Exceptions are raised only inside the delivery pipeline; the orchestrator
turns them into NotificationResult values carrying the matching error code
and details.
"""

from typing import Any, Dict, Optional


class ErrorCode:
    """Machine error codes reported on failed results."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    GATEWAY_ERROR = "GATEWAY_ERROR"
    SERVICE_ERROR = "SERVICE_ERROR"
    INVALID_TOKEN = "INVALID_TOKEN"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    CHANNEL_NOT_CONFIGURED = "CHANNEL_NOT_CONFIGURED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class NotificationError(Exception):
    """Base class for notification pipeline errors.

    Attributes:
        error_code: Machine error code for the failed result
        details: Extra context copied into the result metadata
    """

    error_code = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}


class NotificationValidationError(NotificationError):
    """Malformed recipient, message, options or scheduled time."""

    error_code = ErrorCode.VALIDATION_ERROR


class RateLimitExceededError(NotificationError):
    """Recipient exceeded its send allowance for the current window."""

    error_code = ErrorCode.RATE_LIMIT_EXCEEDED


class ProcessingError(NotificationError):
    """A message processing step rejected the content."""

    error_code = ErrorCode.PROCESSING_ERROR

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message, details={"failed_step": step} if step else None)
        self.step = step


class DeliveryError(NotificationError):
    """Permanent gateway failure; error_code is the gateway's code."""

    error_code = ErrorCode.GATEWAY_ERROR


class RetryExhaustedError(DeliveryError):
    """Retryable gateway failure after every retry was used."""

    error_code = ErrorCode.RETRY_EXHAUSTED
