"""Notification delivery: models, channels, processing, tracking and the
orchestrator that ties them together.

Usage:
    from notifier.notifications import NotificationService

    service = NotificationService(get_settings(), transports)
    result = await service.send(request)
"""

from notifier.notifications.errors import (
    DeliveryError,
    ErrorCode,
    NotificationError,
    NotificationValidationError,
    ProcessingError,
    RateLimitExceededError,
    RetryExhaustedError,
)
from notifier.notifications.models import (
    BulkNotificationRequest,
    BulkNotificationResult,
    BulkStatus,
    CancelResult,
    Channel,
    DeliveryOutcome,
    DeliveryStatus,
    HealthCheckResult,
    MessageKind,
    NotificationMessage,
    NotificationMetrics,
    NotificationOptions,
    NotificationPriority,
    NotificationRecipient,
    NotificationRequest,
    NotificationResult,
    ScheduleResult,
)
from notifier.notifications.orchestrator import NotificationOrchestrator
from notifier.notifications.service import (
    NotificationService,
    build_channels,
    build_orchestrator,
    default_transports,
)
from notifier.notifications.tracking import DeliveryRecord, DeliveryTracker

__all__ = [
    "DeliveryError",
    "ErrorCode",
    "NotificationError",
    "NotificationValidationError",
    "ProcessingError",
    "RateLimitExceededError",
    "RetryExhaustedError",
    "BulkNotificationRequest",
    "BulkNotificationResult",
    "BulkStatus",
    "CancelResult",
    "Channel",
    "DeliveryOutcome",
    "DeliveryStatus",
    "HealthCheckResult",
    "MessageKind",
    "NotificationMessage",
    "NotificationMetrics",
    "NotificationOptions",
    "NotificationPriority",
    "NotificationRecipient",
    "NotificationRequest",
    "NotificationResult",
    "ScheduleResult",
    "NotificationOrchestrator",
    "NotificationService",
    "build_channels",
    "build_orchestrator",
    "default_transports",
    "DeliveryRecord",
    "DeliveryTracker",
]
