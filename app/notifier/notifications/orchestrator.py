"""Notification orchestrator.

Runs one request through the delivery pipeline:

    validate -> rate limit -> process -> deliver -> track

and turns every outcome into a NotificationResult. Retryable gateway
failures are re-run through the deferred task scheduler with exponential
backoff; scheduled notifications use the same scheduler.

No exception raised inside the pipeline reaches the caller. Pipeline
errors (NotificationError subclasses) become failed results with their
error code; anything unexpected becomes an INTERNAL_ERROR result.
"""

import asyncio
import functools
import uuid
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Coroutine,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Set,
    Union,
)

import structlog

from notifier.logging import bind_notification_context
from notifier.notifications.channels import NotificationChannel
from notifier.notifications.errors import (
    DeliveryError,
    ErrorCode,
    NotificationError,
    NotificationValidationError,
    RateLimitExceededError,
    RetryExhaustedError,
)
from notifier.notifications.models import (
    BulkNotificationRequest,
    BulkNotificationResult,
    BulkStatus,
    CancelResult,
    Channel,
    DeliveryStatus,
    HealthCheckResult,
    MessageKind,
    NotificationMessage,
    NotificationMetrics,
    NotificationPriority,
    NotificationRecipient,
    NotificationRequest,
    NotificationResult,
    ScheduleResult,
)
from notifier.notifications.processing import ProcessedMessage, TemplateStore
from notifier.notifications.tracking import DeliveryRecord, DeliveryTracker
from notifier.notifications.validators import validate_request
from notifier.operations import OperationResult, is_retryable
from notifier.resilience import (
    DeferredTaskScheduler,
    RateLimiter,
    RetryAttempt,
    RetryManager,
)

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationOrchestrator:
    """Coordinates validation, rate limiting, processing, delivery and
    tracking of notifications across channels.

    Args:
        channels: Channel capability sets, keyed by channel or as an iterable
        rate_limiter: Per-recipient rate limiter
        retry_manager: Retry policy for retryable gateway failures
        tracker: Delivery status tracker
        scheduler: Deferred task scheduler for retries and scheduled sends
        templates: Template store shared with the email processor
        system_id: Identifier reported in delivery metadata
        confirmation_channel: Channel used to confirm deliveries to requesters
        clock: Returns the current timezone-aware time
        sleep: Awaitable delay used to pace bulk sends

    Example:
        orchestrator = NotificationOrchestrator([EmailChannel(EmailGateway(transport))])
        result = await orchestrator.send(request)
        if result.is_success:
            print(result.message_id)
    """

    def __init__(
        self,
        channels: Union[Mapping[Channel, NotificationChannel], Iterable[NotificationChannel]],
        rate_limiter: Optional[RateLimiter] = None,
        retry_manager: Optional[RetryManager] = None,
        tracker: Optional[DeliveryTracker] = None,
        scheduler: Optional[DeferredTaskScheduler] = None,
        templates: Optional[TemplateStore] = None,
        system_id: str = "notifier",
        confirmation_channel: Channel = Channel.EMAIL,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if isinstance(channels, Mapping):
            channels = channels.values()
        self._channels: Dict[Channel, NotificationChannel] = {c.channel: c for c in channels}
        self._clock = clock
        self._sleep = sleep
        self._rate_limiter = rate_limiter or RateLimiter()
        self._retry_manager = retry_manager or RetryManager(clock=clock)
        self._tracker = tracker or DeliveryTracker()
        self._scheduler = scheduler or DeferredTaskScheduler(clock=clock)
        self._templates = templates or TemplateStore()
        self._system_id = system_id
        self._confirmation_channel = confirmation_channel
        self._background: Set[asyncio.Task] = set()

        logger.info(
            "orchestrator_initialized",
            channels=[c.value for c in self._channels],
            system_id=system_id,
        )

    @property
    def channels(self) -> Dict[Channel, NotificationChannel]:
        return dict(self._channels)

    def register_channel(self, channel: NotificationChannel) -> None:
        """Add or replace the capability set of a channel."""
        self._channels[channel.channel] = channel
        logger.info("channel_registered", channel=channel.channel.value)

    @property
    def tracker(self) -> DeliveryTracker:
        return self._tracker

    @property
    def scheduler(self) -> DeferredTaskScheduler:
        return self._scheduler

    @property
    def templates(self) -> TemplateStore:
        return self._templates

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send(self, request: Optional[NotificationRequest]) -> NotificationResult:
        """Send one notification now.

        A scheduled_time in the future is not honoured here; use
        schedule_notification() to defer a send.

        Returns:
            NotificationResult: SUCCESS with the gateway message id,
            RETRY_SCHEDULED for a retryable failure with retries left, or
            FAILURE with an error code. Never raises.
        """
        return await self._execute(request, deferred=False)

    async def send_bulk(self, bulk_request: BulkNotificationRequest) -> BulkNotificationResult:
        """Send a batch sequentially, pacing items when bulk delay is set.

        Items are independent: one failing never stops the rest.
        """
        bulk_id = getattr(bulk_request, "bulk_id", None) or "unknown"
        results: List[NotificationResult] = []

        try:
            with bind_notification_context(bulk_id=bulk_id):
                logger.info(
                    "bulk_processing_started",
                    bulk_id=bulk_id,
                    total=len(bulk_request.requests),
                )
                for index, request in enumerate(bulk_request.requests):
                    if index and self._rate_limiter.requires_delay():
                        await self._sleep(self._rate_limiter.delay_amount())
                    results.append(await self.send(request))
        except Exception as e:
            logger.error("bulk_processing_failed", bulk_id=bulk_id, error=str(e), exc_info=True)
            return BulkNotificationResult(
                bulk_id=bulk_id,
                status=BulkStatus.FAILED,
                results=results,
                failed_requests=[r.request_id for r in results if not r.is_success],
                message=f"Bulk processing aborted: {e}",
            )

        result = BulkNotificationResult.from_results(bulk_id, results)
        logger.info(
            "bulk_processing_completed",
            bulk_id=bulk_id,
            status=result.status.value,
            total=len(results),
            delivered=result.success_count,
            failed=len(result.failed_requests),
        )
        return result

    async def _execute(
        self, request: Optional[NotificationRequest], deferred: bool
    ) -> NotificationResult:
        request_id = getattr(request, "id", None) or "unknown"
        channel = getattr(request, "channel", None)

        with bind_notification_context(
            request_id=request_id, channel=channel.value if channel else None
        ):
            try:
                result = await self._deliver(request, deferred)
            except Exception as e:
                logger.error(
                    "notification_internal_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                result = NotificationResult.failure(
                    request_id,
                    f"Internal error: {e}",
                    ErrorCode.INTERNAL_ERROR,
                    metadata={"exception": type(e).__name__},
                )
            self._log_outcome(result, deferred)
            return result

    async def _deliver(
        self, request: Optional[NotificationRequest], deferred: bool
    ) -> NotificationResult:
        try:
            return await self._run_pipeline(request, deferred)
        except NotificationError as e:
            return self._reject(request, e)

    async def _run_pipeline(
        self, request: Optional[NotificationRequest], deferred: bool
    ) -> NotificationResult:
        check = validate_request(request, check_schedule=not deferred, now=self._clock())
        if not check.is_success:
            raise NotificationValidationError(check.message)

        channel = self._channels.get(request.recipient.channel)
        if channel is None:
            raise NotificationValidationError(
                f"No channel configured for {request.recipient.channel.value}",
                error_code=ErrorCode.CHANNEL_NOT_CONFIGURED,
            )

        options_check = channel.validate_options(request.options)
        if not options_check.is_success:
            raise NotificationValidationError(options_check.message)

        self._tracker.mark_processing(request.id, channel.channel)

        decision = self._rate_limiter.check_rate_limit(request.recipient)
        if not decision.allowed:
            raise RateLimitExceededError(
                decision.reason or "Rate limit exceeded",
                details={"retry_after": decision.retry_after},
            )

        processed = channel.process(request)
        attempt_number = self._retry_manager.get_attempt_count(request.id) + 1
        outcome = await channel.deliver(request, processed)

        if outcome.is_success:
            return self._on_delivered(request, channel, processed, outcome, attempt_number)
        return self._on_delivery_failed(request, channel, outcome, attempt_number)

    def _on_delivered(
        self,
        request: NotificationRequest,
        channel: NotificationChannel,
        processed: ProcessedMessage,
        outcome: OperationResult,
        attempt_number: int,
    ) -> NotificationResult:
        message_id = (outcome.data or {}).get("message_id")
        self._rate_limiter.record_delivery(request.recipient)
        self._tracker.record_success(request.id, channel.channel, message_id, attempt_number)

        metadata: Dict[str, Any] = dict(processed.metadata)
        metadata.update(
            delivery_time=self._clock().isoformat(),
            channel=channel.channel.value,
            system_id=self._system_id,
            endpoint=channel.endpoint,
            attempt_number=attempt_number,
            processing_steps=processed.step_names,
        )

        wants_confirmation = (
            request.options.request_delivery_confirmation and bool(request.requested_by)
        )
        if wants_confirmation:
            metadata["confirmation_requested"] = True

        result = NotificationResult.success(request.id, message_id, metadata)
        if wants_confirmation:
            self._spawn(self._send_confirmation(request, result))
        return result

    def _on_delivery_failed(
        self,
        request: NotificationRequest,
        channel: NotificationChannel,
        outcome: OperationResult,
        attempt_number: int,
    ) -> NotificationResult:
        error_code = outcome.error_code or ErrorCode.GATEWAY_ERROR

        if self._retry_manager.should_retry(request.id, error_code):
            attempt = self._retry_manager.schedule_retry(request.id, outcome)
            task_id = self._schedule_retry_task(request, attempt)
            self._tracker.record_failure(
                request.id,
                channel.channel,
                error_code,
                outcome.message,
                attempt_number=attempt_number,
                retry_attempt=attempt,
            )
            return NotificationResult.retry_scheduled(
                request.id,
                f"Delivery failed ({error_code}); retry {attempt.attempt_number} of "
                f"{self._retry_manager.config.max_attempts} scheduled",
                error_code,
                attempt.scheduled_at,
                attempt.attempt_number,
                metadata={
                    "retry_task_id": task_id,
                    "delay_seconds": attempt.delay_seconds,
                    "reason": outcome.message,
                },
            )

        if is_retryable(error_code):
            raise RetryExhaustedError(
                f"Delivery failed after {self._retry_manager.config.max_attempts} "
                f"retries: {outcome.message}",
                details={"last_error_code": error_code, "attempt_number": attempt_number},
            )
        raise DeliveryError(
            outcome.message,
            error_code=error_code,
            details={"attempt_number": attempt_number},
        )

    def _schedule_retry_task(self, request: NotificationRequest, attempt: RetryAttempt) -> str:
        return self._scheduler.schedule(
            attempt.scheduled_at,
            functools.partial(self._execute, request, True),
            task_id=f"retry_{request.id}_{attempt.attempt_number}",
            kind="retry",
            context={"request_id": request.id},
        )

    def _reject(
        self, request: Optional[NotificationRequest], error: NotificationError
    ) -> NotificationResult:
        request_id = getattr(request, "id", None) or "unknown"
        metadata = dict(error.details)

        if request is not None:
            channel = request.channel
            if isinstance(error, DeliveryError):
                self._tracker.record_permanent_failure(
                    request_id,
                    channel,
                    error.error_code,
                    str(error),
                    attempt_number=metadata.get("attempt_number", 1),
                )
            elif isinstance(error, RateLimitExceededError):
                self._tracker.record_rejection(
                    request_id, channel, DeliveryStatus.RATE_LIMITED, error.error_code, str(error)
                )
            else:
                self._tracker.record_rejection(
                    request_id, channel, DeliveryStatus.ERROR, error.error_code, str(error)
                )

        return NotificationResult.failure(request_id, str(error), error.error_code, metadata)

    def _log_outcome(self, result: NotificationResult, deferred: bool) -> None:
        if result.is_success:
            logger.info(
                "notification_delivered",
                message_id=result.message_id,
                deferred=deferred,
            )
        elif result.is_retry_scheduled:
            logger.info(
                "notification_retry_scheduled",
                error_code=result.error_code,
                retry_at=result.retry_at.isoformat() if result.retry_at else None,
                attempt_number=result.attempt_number,
            )
        else:
            logger.warning(
                "notification_failed",
                error_code=result.error_code,
                error=result.message,
                deferred=deferred,
            )

    # ------------------------------------------------------------------
    # Delivery confirmation
    # ------------------------------------------------------------------

    async def _send_confirmation(
        self, request: NotificationRequest, delivered: NotificationResult
    ) -> None:
        confirmation = NotificationRequest(
            id=f"{request.id}_confirmation",
            recipient=NotificationRecipient(
                id=request.requested_by,
                name=request.requested_by,
                channel=self._confirmation_channel,
                contact=request.requested_by,
            ),
            message=NotificationMessage(
                subject="Delivery confirmation",
                content=(
                    f"Notification {request.id} was delivered via "
                    f"{delivered.metadata.get('channel')} at "
                    f"{delivered.metadata.get('delivery_time')}."
                ),
                kind=MessageKind.INFO,
            ),
            priority=NotificationPriority.LOW,
        )
        outcome = await self.send(confirmation)
        if outcome.is_success:
            logger.info(
                "delivery_confirmation_sent",
                request_id=request.id,
                requested_by=request.requested_by,
            )
        else:
            logger.warning(
                "delivery_confirmation_failed",
                request_id=request.id,
                requested_by=request.requested_by,
                error_code=outcome.error_code,
            )

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for background work (delivery confirmations) to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def schedule_notification(
        self, request: Optional[NotificationRequest], scheduled_time: Optional[datetime]
    ) -> ScheduleResult:
        """Defer a send until scheduled_time.

        The request is validated up front (except for its own scheduled
        time); the deferred run goes through the full pipeline.
        """
        try:
            if scheduled_time is None:
                return ScheduleResult(success=False, message="Scheduled time is required")
            if scheduled_time.tzinfo is None:
                scheduled_time = scheduled_time.replace(tzinfo=timezone.utc)
            if scheduled_time <= self._clock():
                return ScheduleResult(
                    success=False,
                    message="Scheduled time must be in the future",
                    request_id=getattr(request, "id", None),
                )

            check = validate_request(request, check_schedule=False)
            if not check.is_success:
                return ScheduleResult(
                    success=False,
                    message=check.message,
                    request_id=getattr(request, "id", None),
                )

            schedule_id = self._scheduler.schedule(
                scheduled_time,
                functools.partial(self._execute, request, True),
                task_id=f"schedule_{uuid.uuid4().hex[:16]}",
                kind="scheduled",
                context={"request_id": request.id},
            )
            self._tracker.mark_scheduled(request.id, request.channel)
        except Exception as e:
            logger.error("schedule_notification_failed", error=str(e), exc_info=True)
            return ScheduleResult(success=False, message=f"Failed to schedule notification: {e}")

        logger.info(
            "notification_scheduled",
            request_id=request.id,
            schedule_id=schedule_id,
            scheduled_time=scheduled_time.isoformat(),
        )
        return ScheduleResult(
            success=True,
            message="Notification scheduled",
            schedule_id=schedule_id,
            scheduled_time=scheduled_time,
            request_id=request.id,
        )

    async def cancel_scheduled_notification(self, schedule_id: str) -> CancelResult:
        """Cancel a scheduled notification or a pending retry.

        Succeeds only when the task had not fired yet.
        """
        task = self._scheduler.get_task(schedule_id)
        if task is None:
            return CancelResult(
                success=False, message=f"Unknown schedule id {schedule_id}", schedule_id=schedule_id
            )

        if not self._scheduler.cancel(schedule_id):
            state = self._scheduler.get_state(schedule_id)
            return CancelResult(
                success=False,
                message=f"Schedule {schedule_id} can no longer be cancelled "
                f"({state.value if state else 'unknown'})",
                schedule_id=schedule_id,
            )

        request_id = task.context.get("request_id")
        if request_id:
            self._tracker.mark_cancelled(request_id)
        logger.info(
            "scheduled_notification_cancelled",
            schedule_id=schedule_id,
            request_id=request_id,
            kind=task.kind,
        )
        return CancelResult(success=True, message="Schedule cancelled", schedule_id=schedule_id)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def create_template(
        self, template_id: str, body: str, subject: Optional[str] = None
    ) -> OperationResult:
        try:
            template = self._templates.create_template(template_id, body, subject)
        except ValueError as e:
            return OperationResult.permanent_error(str(e), error_code=ErrorCode.VALIDATION_ERROR)
        return OperationResult.success(data=template, message=f"Template {template_id} saved")

    def personalize_message(
        self,
        template_id: str,
        recipient: NotificationRecipient,
        variables: Optional[Dict[str, Any]] = None,
        kind: MessageKind = MessageKind.TRANSACTIONAL,
    ) -> OperationResult:
        """Render a stored template for a recipient into a NotificationMessage.

        name and recipient_id are always available; variables override them.
        """
        template = self._templates.get(template_id)
        if template is None:
            return OperationResult.permanent_error(
                f"Template {template_id} not found", error_code="TEMPLATE_NOT_FOUND"
            )

        values: Dict[str, Any] = {
            "name": recipient.name or recipient.id,
            "recipient_id": recipient.id,
        }
        values.update(variables or {})
        subject, body = template.render(values)
        return OperationResult.success(
            data=NotificationMessage(subject=subject, content=body, kind=kind),
            message=f"Template {template_id} rendered",
        )

    # ------------------------------------------------------------------
    # Status, metrics and health
    # ------------------------------------------------------------------

    def get_delivery_status(self, request_id: str) -> DeliveryStatus:
        return self._tracker.get_delivery_status(request_id)

    def get_delivery_record(self, request_id: str) -> Optional[DeliveryRecord]:
        return self._tracker.get_delivery_record(request_id)

    def get_retry_history(self, request_id: str) -> List[RetryAttempt]:
        return self._retry_manager.get_retry_history(request_id)

    def get_metrics(self) -> NotificationMetrics:
        return self._tracker.get_metrics()

    async def health_check(self) -> HealthCheckResult:
        """Check the rate limiter, scheduler, tracker and every channel."""
        try:
            statuses: Dict[str, bool] = {
                "rate_limiter": self._rate_limiter.is_healthy(),
                "scheduler": self._scheduler.is_healthy(),
                "tracker": True,
            }
            details: Dict[str, Any] = {
                "rate_limiter": self._rate_limiter.get_stats(),
                "retries": self._retry_manager.get_stats(),
                "pending_tasks": self._scheduler.pending_count(),
                "tracked_requests": len(self._tracker),
            }

            channels = list(self._channels.values())
            checks = await asyncio.gather(
                *(c.health_check() for c in channels), return_exceptions=True
            )
            for channel, check in zip(channels, checks):
                name = f"channel_{channel.channel.value}"
                if isinstance(check, BaseException):
                    statuses[name] = False
                    details[name] = str(check)
                else:
                    statuses[name] = check.is_success
                    details[name] = check.message
        except Exception as e:
            logger.error("health_check_failed", error=str(e), exc_info=True)
            return HealthCheckResult(healthy=False, details={"error": str(e)})

        healthy = all(statuses.values())
        if not healthy:
            logger.warning(
                "health_check_degraded",
                unhealthy=[name for name, ok in statuses.items() if not ok],
            )
        return HealthCheckResult(healthy=healthy, component_statuses=statuses, details=details)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self._scheduler.start()

    async def shutdown(self) -> None:
        """Stop the scheduler and cancel outstanding background work."""
        await self._scheduler.shutdown()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        logger.info("orchestrator_shutdown")
