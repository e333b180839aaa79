"""Notification orchestration models.

Pydantic models for requests flowing into the orchestrator and the
results, statuses and metrics flowing out. Inbound models are frozen:
a request is immutable once created and is consumed by exactly one
orchestration run plus any retries referencing the same id.

Required content (recipient, body) is deliberately optional at the model
level so that the orchestrator, not the constructor, rejects incomplete
requests with a failure result.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


class Channel(Enum):
    """Delivery medium."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    WEBHOOK = "webhook"
    SLACK = "slack"


class NotificationPriority(Enum):
    """Notification priority levels."""

    CRITICAL = "critical"
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class MessageKind(Enum):
    """Kind of message content."""

    TRANSACTIONAL = "transactional"
    MARKETING = "marketing"
    INFO = "info"


class DeliveryOutcome(Enum):
    """Terminal outcome of one orchestration attempt."""

    SUCCESS = "success"
    FAILURE = "failure"
    RETRY_SCHEDULED = "retry_scheduled"


class DeliveryStatus(Enum):
    """Current status of a request, as tracked by the DeliveryTracker.

    PENDING is also reported for request ids the tracker has never seen.
    """

    PENDING = "pending"
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"
    DELIVERED = "delivered"
    RETRY_SCHEDULED = "retry_scheduled"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BulkStatus(Enum):
    """Aggregate status of a bulk request."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class NotificationRecipient(BaseModel):
    """Recipient of a notification.

    Attributes:
        id: Stable recipient identifier (rate limits are keyed by it)
        name: Display name, available to templates as {{name}}
        channel: Channel the recipient is reached on
        contact: Email address, E.164 phone, device token, URL or Slack
            handle, depending on channel

    Example:
        recipient = NotificationRecipient(
            id="user-1", name="Ada", channel=Channel.SMS, contact="+15551234567"
        )
    """

    model_config = ConfigDict(frozen=True)

    id: str
    channel: Channel
    contact: Optional[str] = None
    name: Optional[str] = None


class NotificationMessage(BaseModel):
    """Notification content."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: _new_id("msg"))
    subject: Optional[str] = None
    content: Optional[str] = None
    kind: MessageKind = MessageKind.TRANSACTIONAL


class NotificationOptions(BaseModel):
    """Cross-channel flags plus channel-specific knobs.

    Channel knobs live in ``channel_options`` and are validated by the
    channel the request is routed to:

    - email: reply_to, cc_recipients, bcc_recipients, html_content,
      attachments, template_id, template_variables
    - sms: sender_id, unicode_enabled, flash_sms, validity_period_hours
    - push: badge_count, sound, custom_data
    - webhook: headers, method
    - slack: username, icon_emoji, thread_ts
    """

    model_config = ConfigDict(frozen=True)

    request_delivery_confirmation: bool = False
    channel_options: Dict[str, Any] = Field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a channel knob."""
        return self.channel_options.get(key, default)


class NotificationRequest(BaseModel):
    """A request to deliver one message to one recipient.

    Example:
        request = NotificationRequest(
            recipient=NotificationRecipient(
                id="user-1", channel=Channel.EMAIL, contact="user@example.com"
            ),
            message=NotificationMessage(subject="Hi", content="Hello"),
        )
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: _new_id("req"))
    recipient: Optional[NotificationRecipient] = None
    message: Optional[NotificationMessage] = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    options: NotificationOptions = Field(default_factory=NotificationOptions)
    scheduled_time: Optional[datetime] = None
    requested_by: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("scheduled_time")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Treat naive datetimes as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def channel(self) -> Optional[Channel]:
        """Channel of the recipient, if any."""
        return self.recipient.channel if self.recipient else None


class NotificationResult(BaseModel):
    """Result of one orchestration run.

    Attributes:
        request_id: Request the result belongs to
        outcome: SUCCESS, FAILURE or RETRY_SCHEDULED
        message: Human-readable outcome or failure reason
        message_id: Gateway message id (successful deliveries)
        error_code: Machine error code (failures and scheduled retries)
        metadata: Delivery metadata or failure details
        retry_at: When the scheduled retry will run
        attempt_number: Retry number of a scheduled retry
        timestamp: When the result was produced
    """

    request_id: str
    outcome: DeliveryOutcome
    message: str
    message_id: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    retry_at: Optional[datetime] = None
    attempt_number: Optional[int] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def is_success(self) -> bool:
        """True when the notification was delivered."""
        return self.outcome == DeliveryOutcome.SUCCESS

    @property
    def is_retry_scheduled(self) -> bool:
        """True when a retry was scheduled."""
        return self.outcome == DeliveryOutcome.RETRY_SCHEDULED

    @classmethod
    def success(
        cls,
        request_id: str,
        message_id: Optional[str],
        metadata: Optional[Dict[str, Any]] = None,
        message: str = "Notification delivered",
    ) -> "NotificationResult":
        return cls(
            request_id=request_id,
            outcome=DeliveryOutcome.SUCCESS,
            message=message,
            message_id=message_id,
            metadata=metadata or {},
        )

    @classmethod
    def failure(
        cls,
        request_id: str,
        message: str,
        error_code: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "NotificationResult":
        return cls(
            request_id=request_id,
            outcome=DeliveryOutcome.FAILURE,
            message=message,
            error_code=error_code,
            metadata=metadata or {},
        )

    @classmethod
    def retry_scheduled(
        cls,
        request_id: str,
        message: str,
        error_code: Optional[str],
        retry_at: datetime,
        attempt_number: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "NotificationResult":
        return cls(
            request_id=request_id,
            outcome=DeliveryOutcome.RETRY_SCHEDULED,
            message=message,
            error_code=error_code,
            retry_at=retry_at,
            attempt_number=attempt_number,
            metadata=metadata or {},
        )


class BulkNotificationRequest(BaseModel):
    """A batch of per-recipient requests processed under one bulk id."""

    model_config = ConfigDict(frozen=True)

    bulk_id: str = Field(default_factory=lambda: _new_id("bulk"))
    requests: List[NotificationRequest] = Field(default_factory=list)


class BulkNotificationResult(BaseModel):
    """Aggregated results of a bulk request, in input order."""

    bulk_id: str
    status: BulkStatus
    results: List[NotificationResult] = Field(default_factory=list)
    failed_requests: List[str] = Field(default_factory=list)
    message: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def is_success(self) -> bool:
        """True only when every item was delivered."""
        return self.status == BulkStatus.SUCCESS

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.is_success)

    @classmethod
    def from_results(
        cls, bulk_id: str, results: List[NotificationResult]
    ) -> "BulkNotificationResult":
        """Aggregate per-item results; an empty batch counts as success."""
        failed = [r.request_id for r in results if not r.is_success]
        if not failed:
            status = BulkStatus.SUCCESS
        elif len(failed) < len(results):
            status = BulkStatus.PARTIAL
        else:
            status = BulkStatus.FAILED
        return cls(
            bulk_id=bulk_id,
            status=status,
            results=results,
            failed_requests=failed,
            message=f"{len(results) - len(failed)}/{len(results)} notifications delivered",
        )


class NotificationMetrics(BaseModel):
    """Aggregate delivery counters.

    total_sent counts requests that reached a gateway at least once;
    delivery_rate is total_delivered / total_sent (0.0 when nothing was sent).
    """

    total_sent: int = 0
    total_delivered: int = 0
    total_failed: int = 0
    total_retries_scheduled: int = 0
    delivery_rate: float = 0.0


class HealthCheckResult(BaseModel):
    """Health of the orchestrator and its components."""

    healthy: bool
    component_statuses: Dict[str, bool] = Field(default_factory=dict)
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


class ScheduleResult(BaseModel):
    """Outcome of scheduling a notification."""

    success: bool
    message: str
    schedule_id: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    request_id: Optional[str] = None


class CancelResult(BaseModel):
    """Outcome of cancelling a scheduled notification or retry."""

    success: bool
    message: str
    schedule_id: str
