"""Unit tests for the notification orchestrator.

Tests cover:
- Single sends through every pipeline stage
- Retry scheduling, retry execution and retry exhaustion
- Bulk sends and aggregate status
- Scheduling and cancellation
- Delivery confirmation, templates, metrics and health
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from notifier.notifications.models import (
    BulkNotificationRequest,
    BulkStatus,
    Channel,
    DeliveryOutcome,
    DeliveryStatus,
)
from notifier.resilience import RateLimitConfig, RetryConfig


async def wait_for_status(orchestrator, request_id, status, timeout=2.0):
    """Poll the tracker until a request reaches a status."""
    deadline = asyncio.get_running_loop().time() + timeout
    while orchestrator.get_delivery_status(request_id) != status:
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(
                f"{request_id} stayed {orchestrator.get_delivery_status(request_id)}"
            )
        await asyncio.sleep(0.01)


def in_future(seconds: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


@pytest.mark.unit
class TestSend:
    """Tests for send()."""

    @pytest.mark.asyncio
    async def test_email_success(self, orchestrator, request_factory, transports):
        request = request_factory()

        result = await orchestrator.send(request)

        assert result.is_success
        assert result.message_id == "email-1"
        assert result.metadata["channel"] == "email"
        assert result.metadata["system_id"] == "notifier"
        assert result.metadata["endpoint"] == "smtp://mail-gateway"
        assert result.metadata["attempt_number"] == 1
        assert "spam_check" in result.metadata["processing_steps"]
        assert "delivery_time" in result.metadata
        assert transports[Channel.EMAIL].sent[0].recipient == "user@example.com"
        assert orchestrator.get_delivery_status(request.id) == DeliveryStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_none_request_is_rejected(self, orchestrator):
        result = await orchestrator.send(None)

        assert result.outcome == DeliveryOutcome.FAILURE
        assert result.error_code == "VALIDATION_ERROR"
        assert result.request_id == "unknown"

    @pytest.mark.asyncio
    async def test_invalid_phone_never_reaches_gateway(
        self, orchestrator, request_factory, transports
    ):
        request = request_factory(channel=Channel.SMS, contact="notanumber")

        result = await orchestrator.send(request)

        assert result.error_code == "VALIDATION_ERROR"
        assert transports[Channel.SMS].call_count == 0
        assert orchestrator.get_delivery_status(request.id) == DeliveryStatus.ERROR

    @pytest.mark.asyncio
    async def test_invalid_channel_options(self, orchestrator, request_factory, transports):
        request = request_factory(channel=Channel.SMS, options={"sender_id": "ACME-CORP"})

        result = await orchestrator.send(request)

        assert result.error_code == "VALIDATION_ERROR"
        assert transports[Channel.SMS].call_count == 0

    @pytest.mark.asyncio
    async def test_unconfigured_channel(self, orchestrator_factory, channels, request_factory):
        orchestrator = orchestrator_factory(channel_list=channels[:1])

        result = await orchestrator.send(request_factory(channel=Channel.SMS))

        assert result.error_code == "CHANNEL_NOT_CONFIGURED"

    @pytest.mark.asyncio
    async def test_rate_limited(self, orchestrator_factory, request_factory, transports):
        orchestrator = orchestrator_factory(
            rate_limit=RateLimitConfig(max_requests=2, bulk_delay_seconds=0)
        )

        for _ in range(2):
            assert (await orchestrator.send(request_factory())).is_success
        request = request_factory()
        result = await orchestrator.send(request)

        assert result.error_code == "RATE_LIMIT_EXCEEDED"
        assert result.metadata["retry_after"] > 0
        assert transports[Channel.EMAIL].call_count == 2
        assert orchestrator.get_delivery_status(request.id) == DeliveryStatus.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_processing_error(self, orchestrator, request_factory, transports):
        request = request_factory(content="FREE MONEY inside, click here now")

        result = await orchestrator.send(request)

        assert result.error_code == "PROCESSING_ERROR"
        assert result.metadata["failed_step"] == "spam_check"
        assert transports[Channel.EMAIL].call_count == 0

    @pytest.mark.asyncio
    async def test_permanent_gateway_failure(self, orchestrator, request_factory):
        request = request_factory(channel=Channel.PUSH, contact="bad token value!")

        result = await orchestrator.send(request)

        assert result.outcome == DeliveryOutcome.FAILURE
        assert result.error_code == "INVALID_TOKEN"
        assert orchestrator.get_delivery_status(request.id) == DeliveryStatus.FAILED
        assert orchestrator.get_retry_history(request.id) == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_internal_error(
        self, orchestrator, channels, request_factory, monkeypatch
    ):
        def broken_process(request):
            raise RuntimeError("processor exploded")

        monkeypatch.setattr(channels[0], "process", broken_process)

        result = await orchestrator.send(request_factory())

        assert result.error_code == "INTERNAL_ERROR"
        assert result.metadata["exception"] == "RuntimeError"


@pytest.mark.unit
class TestRetries:
    """Tests for retry scheduling and exhaustion."""

    @pytest.mark.asyncio
    async def test_retryable_failure_schedules_retry(
        self, orchestrator, request_factory, transports
    ):
        transports[Channel.SMS].script("SERVICE_ERROR")
        request = request_factory(channel=Channel.SMS)

        result = await orchestrator.send(request)

        assert result.is_retry_scheduled
        assert result.error_code == "SERVICE_ERROR"
        assert result.attempt_number == 1
        assert result.retry_at > datetime.now(timezone.utc)
        assert result.metadata["retry_task_id"] == f"retry_{request.id}_1"
        assert result.metadata["delay_seconds"] == 60
        assert orchestrator.get_delivery_status(request.id) == DeliveryStatus.RETRY_SCHEDULED

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, orchestrator, request_factory, transports):
        transports[Channel.SMS].script(*["SERVICE_ERROR"] * 4)
        request = request_factory(channel=Channel.SMS)

        results = [await orchestrator.send(request) for _ in range(4)]

        assert [r.outcome for r in results[:3]] == [DeliveryOutcome.RETRY_SCHEDULED] * 3
        assert [r.attempt_number for r in results[:3]] == [1, 2, 3]
        assert results[3].outcome == DeliveryOutcome.FAILURE
        assert results[3].error_code == "RETRY_EXHAUSTED"
        assert results[3].metadata["last_error_code"] == "SERVICE_ERROR"
        assert len(orchestrator.get_retry_history(request.id)) == 3

    @pytest.mark.asyncio
    async def test_backoff_doubles(self, orchestrator, request_factory, transports):
        transports[Channel.SMS].script(*["CONNECTION_ERROR"] * 3)
        request = request_factory(channel=Channel.SMS)

        for _ in range(3):
            await orchestrator.send(request)

        delays = [a.delay_seconds for a in orchestrator.get_retry_history(request.id)]
        assert delays == [60, 120, 240]

    @pytest.mark.asyncio
    async def test_scheduled_retry_delivers(self, orchestrator_factory, request_factory, transports):
        orchestrator = orchestrator_factory(retry=RetryConfig(base_delay_seconds=0.01))
        transports[Channel.SMS].script("CONNECTION_ERROR")
        request = request_factory(channel=Channel.SMS)

        result = await orchestrator.send(request)
        await wait_for_status(orchestrator, request.id, DeliveryStatus.DELIVERED)

        assert result.is_retry_scheduled
        assert transports[Channel.SMS].call_count == 2
        record = orchestrator.get_delivery_record(request.id)
        assert [a.status for a in record.attempts] == [
            DeliveryStatus.RETRY_SCHEDULED,
            DeliveryStatus.DELIVERED,
        ]
        assert record.attempts[1].attempt_number == 2

    @pytest.mark.asyncio
    async def test_pending_retry_can_be_cancelled(
        self, orchestrator, request_factory, transports
    ):
        transports[Channel.SMS].script("SERVICE_ERROR")
        request = request_factory(channel=Channel.SMS)
        result = await orchestrator.send(request)

        cancelled = await orchestrator.cancel_scheduled_notification(
            result.metadata["retry_task_id"]
        )

        assert cancelled.success
        assert orchestrator.get_delivery_status(request.id) == DeliveryStatus.CANCELLED


@pytest.mark.unit
class TestBulk:
    """Tests for send_bulk()."""

    @pytest.mark.asyncio
    async def test_partial_failure(self, orchestrator, request_factory, transports):
        requests = [
            request_factory(
                channel=Channel.SMS, contact=f"+1555000000{i}", recipient_id=f"user-{i}"
            )
            for i in range(1, 6)
        ]
        transports[Channel.SMS].fail_recipient("+15550000003", "INVALID_TOKEN")

        result = await orchestrator.send_bulk(BulkNotificationRequest(requests=requests))

        assert result.status == BulkStatus.PARTIAL
        assert result.success_count == 4
        assert result.failed_requests == [requests[2].id]
        assert [r.request_id for r in result.results] == [r.id for r in requests]

    @pytest.mark.asyncio
    async def test_all_delivered(self, orchestrator, request_factory):
        bulk = BulkNotificationRequest(requests=[request_factory() for _ in range(3)])

        result = await orchestrator.send_bulk(bulk)

        assert result.status == BulkStatus.SUCCESS
        assert result.is_success
        assert result.bulk_id == bulk.bulk_id

    @pytest.mark.asyncio
    async def test_retry_scheduled_counts_as_failed(
        self, orchestrator, request_factory, transports
    ):
        transports[Channel.EMAIL].script("SERVICE_ERROR", "SERVICE_ERROR")
        bulk = BulkNotificationRequest(requests=[request_factory() for _ in range(2)])

        result = await orchestrator.send_bulk(bulk)

        assert result.status == BulkStatus.FAILED
        assert len(result.failed_requests) == 2

    @pytest.mark.asyncio
    async def test_empty_bulk(self, orchestrator):
        result = await orchestrator.send_bulk(BulkNotificationRequest())
        assert result.status == BulkStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_paces_items(self, orchestrator_factory, request_factory):
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        orchestrator = orchestrator_factory(
            rate_limit=RateLimitConfig(bulk_delay_seconds=0.5), sleep=fake_sleep
        )

        await orchestrator.send_bulk(
            BulkNotificationRequest(requests=[request_factory() for _ in range(3)])
        )

        assert sleeps == [0.5, 0.5]


@pytest.mark.unit
class TestScheduling:
    """Tests for schedule_notification() and cancel_scheduled_notification()."""

    @pytest.mark.asyncio
    async def test_scheduled_send_fires(self, orchestrator, request_factory, transports):
        request = request_factory(channel=Channel.WEBHOOK)

        scheduled = await orchestrator.schedule_notification(request, in_future(0.05))

        assert scheduled.success
        assert scheduled.schedule_id.startswith("schedule_")
        assert orchestrator.get_delivery_status(request.id) == DeliveryStatus.SCHEDULED
        await wait_for_status(orchestrator, request.id, DeliveryStatus.DELIVERED)
        assert transports[Channel.WEBHOOK].call_count == 1

    @pytest.mark.asyncio
    async def test_past_time_rejected(self, orchestrator, request_factory):
        result = await orchestrator.schedule_notification(request_factory(), in_future(-5))

        assert not result.success
        assert result.message == "Scheduled time must be in the future"

    @pytest.mark.asyncio
    async def test_missing_time_rejected(self, orchestrator, request_factory):
        result = await orchestrator.schedule_notification(request_factory(), None)

        assert not result.success
        assert result.message == "Scheduled time is required"

    @pytest.mark.asyncio
    async def test_naive_time_is_utc(self, orchestrator, request_factory):
        naive = (datetime.now(timezone.utc) + timedelta(hours=1)).replace(tzinfo=None)

        result = await orchestrator.schedule_notification(request_factory(), naive)

        assert result.success
        assert result.scheduled_time.tzinfo == timezone.utc

    @pytest.mark.asyncio
    async def test_invalid_request_rejected(self, orchestrator, request_factory):
        request = request_factory(channel=Channel.SMS, contact="notanumber")

        result = await orchestrator.schedule_notification(request, in_future(60))

        assert not result.success
        assert result.request_id == request.id

    @pytest.mark.asyncio
    async def test_cancel_before_fire(self, orchestrator, request_factory, transports):
        request = request_factory()
        scheduled = await orchestrator.schedule_notification(request, in_future(60))

        result = await orchestrator.cancel_scheduled_notification(scheduled.schedule_id)

        assert result.success
        assert orchestrator.get_delivery_status(request.id) == DeliveryStatus.CANCELLED
        assert transports[Channel.EMAIL].call_count == 0

    @pytest.mark.asyncio
    async def test_cancel_after_fire_fails(self, orchestrator, request_factory):
        request = request_factory()
        scheduled = await orchestrator.schedule_notification(request, in_future(0.02))
        await wait_for_status(orchestrator, request.id, DeliveryStatus.DELIVERED)

        result = await orchestrator.cancel_scheduled_notification(scheduled.schedule_id)

        assert not result.success
        assert "can no longer be cancelled" in result.message

    @pytest.mark.asyncio
    async def test_cancel_unknown_id(self, orchestrator):
        result = await orchestrator.cancel_scheduled_notification("schedule_missing")

        assert not result.success
        assert result.schedule_id == "schedule_missing"


@pytest.mark.unit
class TestDeliveryConfirmation:
    """Tests for confirmation messages sent to requesters."""

    @pytest.mark.asyncio
    async def test_confirmation_sent_to_requester(
        self, orchestrator, request_factory, transports
    ):
        request = request_factory(
            channel=Channel.SMS,
            request_delivery_confirmation=True,
            requested_by="ops@example.com",
        )

        result = await orchestrator.send(request)
        await orchestrator.drain()

        assert result.metadata["confirmation_requested"] is True
        confirmation = transports[Channel.EMAIL].sent[0]
        assert confirmation.recipient == "ops@example.com"
        assert confirmation.request_id == f"{request.id}_confirmation"
        assert request.id in confirmation.body

    @pytest.mark.asyncio
    async def test_no_confirmation_without_requester(
        self, orchestrator, request_factory, transports
    ):
        request = request_factory(channel=Channel.SMS, request_delivery_confirmation=True)

        result = await orchestrator.send(request)
        await orchestrator.drain()

        assert "confirmation_requested" not in result.metadata
        assert transports[Channel.EMAIL].call_count == 0


@pytest.mark.unit
class TestTemplates:
    """Tests for create_template() and personalize_message()."""

    def test_personalize_message(self, orchestrator, recipient_factory):
        orchestrator.create_template("welcome", "Hi {{name}}, code {{code}}", subject="Hi {{name}}")

        result = orchestrator.personalize_message(
            "welcome", recipient_factory(), {"code": "1234"}
        )

        assert result.is_success
        assert result.data.subject == "Hi Ada"
        assert result.data.content == "Hi Ada, code 1234"

    def test_name_falls_back_to_recipient_id(self, orchestrator, recipient_factory):
        orchestrator.create_template("t", "Hi {{name}}")

        result = orchestrator.personalize_message("t", recipient_factory(name=None))

        assert result.data.content == "Hi user-1"

    def test_unknown_template(self, orchestrator, recipient_factory):
        result = orchestrator.personalize_message("missing", recipient_factory())
        assert result.error_code == "TEMPLATE_NOT_FOUND"

    def test_invalid_template(self, orchestrator):
        result = orchestrator.create_template("", "body")
        assert result.error_code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_email_uses_created_template(self, orchestrator, request_factory, transports):
        orchestrator.create_template("receipt", "Thanks {{name}}", subject="Receipt")

        await orchestrator.send(request_factory(options={"template_id": "receipt"}))

        assert transports[Channel.EMAIL].sent[0].body == "Thanks Ada"


@pytest.mark.unit
class TestMetricsAndHealth:
    """Tests for get_metrics(), get_delivery_status() and health_check()."""

    @pytest.mark.asyncio
    async def test_metrics(self, orchestrator, request_factory):
        await orchestrator.send(request_factory())
        await orchestrator.send(request_factory(channel=Channel.SLACK))
        await orchestrator.send(request_factory(channel=Channel.PUSH, contact="bad token value!"))
        await orchestrator.send(request_factory(channel=Channel.SMS, contact="notanumber"))

        metrics = orchestrator.get_metrics()

        assert metrics.total_sent == 3
        assert metrics.total_delivered == 2
        assert metrics.total_failed == 1
        assert metrics.delivery_rate == pytest.approx(2 / 3)

    def test_empty_metrics(self, orchestrator):
        assert orchestrator.get_metrics().delivery_rate == 0.0

    def test_unknown_request_is_pending(self, orchestrator):
        assert orchestrator.get_delivery_status("req_unknown") == DeliveryStatus.PENDING

    @pytest.mark.asyncio
    async def test_healthy(self, orchestrator):
        result = await orchestrator.health_check()

        assert result.healthy
        assert result.component_statuses["rate_limiter"] is True
        assert result.component_statuses["scheduler"] is True
        assert result.component_statuses["channel_email"] is True
        assert result.details["pending_tasks"] == 0

    @pytest.mark.asyncio
    async def test_unhealthy_channel(self, orchestrator, transports):
        transports[Channel.PUSH].healthy = False

        result = await orchestrator.health_check()

        assert not result.healthy
        assert result.component_statuses["channel_push"] is False
        assert result.component_statuses["channel_sms"] is True

    @pytest.mark.asyncio
    async def test_shut_down_scheduler_is_unhealthy(self, orchestrator):
        await orchestrator.shutdown()

        result = await orchestrator.health_check()

        assert result.component_statuses["scheduler"] is False
