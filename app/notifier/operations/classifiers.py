"""Error classifiers for gateway failures.

Maps gateway error codes and transport exceptions onto OperationResult
so the retry policy can decide between retrying and giving up.

Key Functions:
- classify_error_code(): gateway error code → OperationStatus
- is_retryable(): shortcut for the retry policy
- classify_transport_error(): exception raised by a transport → OperationResult

Usage:
    from notifier.operations.classifiers import classify_transport_error

    try:
        message_id = await transport.send(message)
    except Exception as exc:
        return classify_transport_error(exc)
"""

import asyncio

from notifier.operations.result import OperationResult
from notifier.operations.status import OperationStatus

RETRYABLE_ERROR_CODES = frozenset({"CONNECTION_ERROR", "GATEWAY_ERROR", "SERVICE_ERROR"})

PERMANENT_ERROR_CODES = frozenset(
    {"VALIDATION_ERROR", "INVALID_TOKEN", "PAYLOAD_TOO_LARGE"}
)


class TransportError(Exception):
    """Error raised by a gateway transport with a gateway error code.

    Attributes:
        error_code: Gateway error code (e.g. INVALID_TOKEN, SERVICE_ERROR)
    """

    def __init__(self, error_code: str, message: str = ""):
        super().__init__(message or error_code)
        self.error_code = error_code


def classify_error_code(error_code: str | None) -> OperationStatus:
    """Classify a gateway error code.

    Status Mapping:
    - CONNECTION_ERROR, GATEWAY_ERROR, SERVICE_ERROR → TRANSIENT_ERROR
    - VALIDATION_ERROR, INVALID_TOKEN, PAYLOAD_TOO_LARGE → PERMANENT_ERROR
    - Unknown or missing codes → PERMANENT_ERROR

    Args:
        error_code: Error code reported by a gateway

    Returns:
        OperationStatus for the code
    """
    if error_code in RETRYABLE_ERROR_CODES:
        return OperationStatus.TRANSIENT_ERROR
    return OperationStatus.PERMANENT_ERROR


def is_retryable(error_code: str | None) -> bool:
    """Return True when a gateway error code is worth retrying."""
    return classify_error_code(error_code) == OperationStatus.TRANSIENT_ERROR


def classify_transport_error(exc: Exception) -> OperationResult:
    """Classify an exception raised by a gateway transport.

    - asyncio.TimeoutError → CONNECTION_ERROR (transient)
    - ConnectionError / OSError → CONNECTION_ERROR (transient)
    - TransportError → its own error_code, classified by classify_error_code()
    - Anything else → GATEWAY_ERROR (transient)

    Args:
        exc: Exception raised while sending through a transport

    Returns:
        OperationResult with the appropriate status and error code
    """
    if isinstance(exc, asyncio.TimeoutError):
        return OperationResult.transient_error(
            "Gateway call timed out", error_code="CONNECTION_ERROR"
        )

    if isinstance(exc, TransportError):
        status = classify_error_code(exc.error_code)
        return OperationResult.error(status, str(exc), error_code=exc.error_code)

    if isinstance(exc, (ConnectionError, OSError)):
        return OperationResult.transient_error(
            f"Connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    return OperationResult.transient_error(
        f"Gateway error: {type(exc).__name__}: {str(exc)}",
        error_code="GATEWAY_ERROR",
    )
