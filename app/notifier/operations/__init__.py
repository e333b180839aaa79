"""Uniform operation results and error classification."""

from notifier.operations.classifiers import (
    PERMANENT_ERROR_CODES,
    RETRYABLE_ERROR_CODES,
    TransportError,
    classify_error_code,
    classify_transport_error,
    is_retryable,
)
from notifier.operations.result import OperationResult
from notifier.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "TransportError",
    "classify_error_code",
    "classify_transport_error",
    "is_retryable",
    "RETRYABLE_ERROR_CODES",
    "PERMANENT_ERROR_CODES",
]
