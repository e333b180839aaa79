"""Delivery tracking.

DeliveryTracker owns one DeliveryRecord per request id: the ordered
history of delivery attempts plus the request's current status. Records
are created on first contact and kept for the lifetime of the process.

Writes take a lock. Aggregate counters are maintained on every status
transition, so get_metrics() reads them without taking the lock.
"""

import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog

from notifier.notifications.models import Channel, DeliveryStatus, NotificationMetrics
from notifier.resilience.retry import RetryAttempt

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DeliveryAttemptEntry:
    """One gateway attempt of a request."""

    attempt_number: int
    status: DeliveryStatus
    error_code: Optional[str] = None
    message: Optional[str] = None
    message_id: Optional[str] = None
    retry_at: Optional[datetime] = None
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class DeliveryRecord:
    """Delivery history and current status of one request."""

    request_id: str
    channel: Optional[Channel]
    status: DeliveryStatus = DeliveryStatus.PENDING
    attempts: List[DeliveryAttemptEntry] = field(default_factory=list)
    message_id: Optional[str] = None
    last_error_code: Optional[str] = None
    last_error: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


class DeliveryTracker:
    """Thread-safe per-request delivery records and aggregate metrics."""

    def __init__(self) -> None:
        self._records: Dict[str, DeliveryRecord] = {}
        self._lock = threading.Lock()
        self._total_sent = 0
        self._total_delivered = 0
        self._total_failed = 0
        self._total_retries = 0

    def mark_scheduled(self, request_id: str, channel: Optional[Channel]) -> None:
        self._transition(request_id, channel, DeliveryStatus.SCHEDULED)

    def mark_cancelled(self, request_id: str) -> None:
        self._transition(request_id, None, DeliveryStatus.CANCELLED)

    def mark_processing(self, request_id: str, channel: Optional[Channel]) -> None:
        self._transition(request_id, channel, DeliveryStatus.PROCESSING)

    def record_rejection(
        self,
        request_id: str,
        channel: Optional[Channel],
        status: DeliveryStatus,
        error_code: str,
        message: str,
    ) -> None:
        """Record a request rejected before reaching a gateway."""
        self._transition(
            request_id, channel, status, error_code=error_code, error=message
        )

    def record_success(
        self,
        request_id: str,
        channel: Optional[Channel],
        message_id: Optional[str],
        attempt_number: int = 1,
    ) -> None:
        entry = DeliveryAttemptEntry(
            attempt_number=attempt_number,
            status=DeliveryStatus.DELIVERED,
            message_id=message_id,
        )
        self._transition(
            request_id, channel, DeliveryStatus.DELIVERED, entry=entry, message_id=message_id
        )

    def record_failure(
        self,
        request_id: str,
        channel: Optional[Channel],
        error_code: Optional[str],
        message: str,
        attempt_number: int = 1,
        retry_attempt: Optional[RetryAttempt] = None,
    ) -> None:
        """Record a failed attempt; RETRY_SCHEDULED when a retry is attached."""
        status = DeliveryStatus.RETRY_SCHEDULED if retry_attempt else DeliveryStatus.ERROR
        entry = DeliveryAttemptEntry(
            attempt_number=attempt_number,
            status=status,
            error_code=error_code,
            message=message,
            retry_at=retry_attempt.scheduled_at if retry_attempt else None,
        )
        self._transition(
            request_id, channel, status, entry=entry, error_code=error_code, error=message
        )

    def record_permanent_failure(
        self,
        request_id: str,
        channel: Optional[Channel],
        error_code: Optional[str],
        message: str,
        attempt_number: int = 1,
    ) -> None:
        entry = DeliveryAttemptEntry(
            attempt_number=attempt_number,
            status=DeliveryStatus.FAILED,
            error_code=error_code,
            message=message,
        )
        self._transition(
            request_id,
            channel,
            DeliveryStatus.FAILED,
            entry=entry,
            error_code=error_code,
            error=message,
        )

    def get_delivery_status(self, request_id: str) -> DeliveryStatus:
        """Current status; PENDING for unknown request ids."""
        with self._lock:
            record = self._records.get(request_id)
            return record.status if record else DeliveryStatus.PENDING

    def get_delivery_record(self, request_id: str) -> Optional[DeliveryRecord]:
        """Snapshot of a request's record, or None if unknown."""
        with self._lock:
            record = self._records.get(request_id)
            return copy.deepcopy(record) if record else None

    def get_metrics(self) -> NotificationMetrics:
        """Aggregate counters, snapshotted together under the lock."""
        with self._lock:
            sent = self._total_sent
            delivered = self._total_delivered
            failed = self._total_failed
            retries = self._total_retries
        return NotificationMetrics(
            total_sent=sent,
            total_delivered=delivered,
            total_failed=failed,
            total_retries_scheduled=retries,
            delivery_rate=min(1.0, delivered / sent) if sent else 0.0,
        )

    def __len__(self) -> int:
        return len(self._records)

    def _transition(
        self,
        request_id: str,
        channel: Optional[Channel],
        status: DeliveryStatus,
        entry: Optional[DeliveryAttemptEntry] = None,
        message_id: Optional[str] = None,
        error_code: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        with self._lock:
            record = self._records.get(request_id)
            if record is None:
                record = DeliveryRecord(request_id=request_id, channel=channel)
                self._records[request_id] = record
            elif channel is not None:
                record.channel = channel

            previous = record.status
            if entry is not None:
                if not record.attempts:
                    self._total_sent += 1
                record.attempts.append(entry)
                if status == DeliveryStatus.RETRY_SCHEDULED:
                    self._total_retries += 1

            if status == DeliveryStatus.DELIVERED and previous != DeliveryStatus.DELIVERED:
                self._total_delivered += 1
            if status == DeliveryStatus.FAILED and previous != DeliveryStatus.FAILED:
                self._total_failed += 1

            record.status = status
            record.updated_at = _utcnow()
            if message_id is not None:
                record.message_id = message_id
            if error_code is not None:
                record.last_error_code = error_code
                record.last_error = error

        logger.debug(
            "delivery_status_changed",
            request_id=request_id,
            previous_status=previous.value,
            status=status.value,
        )
