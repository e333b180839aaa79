"""Notification service for dependency injection.

Builds a NotificationOrchestrator from Settings and exposes it through a
thin facade that is easy to construct in applications and to mock in tests.
"""

from typing import TYPE_CHECKING, Dict, List, Optional

import structlog

from notifier.notifications.channels import (
    EmailChannel,
    EmailGateway,
    GatewayTransport,
    NotificationChannel,
    PushChannel,
    PushGateway,
    SlackChannel,
    SlackGateway,
    SlackWebTransport,
    SMSChannel,
    SMSGateway,
    WebhookChannel,
    WebhookGateway,
    WebhookHttpTransport,
)
from notifier.notifications.models import (
    BulkNotificationRequest,
    BulkNotificationResult,
    CancelResult,
    Channel,
    DeliveryStatus,
    HealthCheckResult,
    NotificationMetrics,
    NotificationRequest,
    NotificationResult,
    ScheduleResult,
)
from notifier.notifications.orchestrator import NotificationOrchestrator
from notifier.notifications.processing import (
    EmailMessageProcessor,
    MessageProcessor,
    SmsMessageProcessor,
    TemplateStore,
)
from notifier.resilience import RateLimitConfig, RateLimiter, RetryConfig, RetryManager

if TYPE_CHECKING:
    from datetime import datetime

    from notifier.configuration import Settings

logger = structlog.get_logger()


def default_transports(settings: "Settings") -> Dict[Channel, GatewayTransport]:
    """Real transports available from configuration.

    Webhooks are always available; Slack only when a bot token is set.
    Email, SMS and push providers are injected by the application.
    """
    transports: Dict[Channel, GatewayTransport] = {
        Channel.WEBHOOK: WebhookHttpTransport(
            signing_secret=settings.channels.webhook_signing_secret,
            timeout_seconds=settings.channels.gateway_timeout_seconds,
        ),
    }
    if settings.channels.slack_bot_token:
        transports[Channel.SLACK] = SlackWebTransport.from_token(
            settings.channels.slack_bot_token
        )
    return transports


def build_channels(
    settings: "Settings",
    transports: Dict[Channel, GatewayTransport],
    templates: Optional[TemplateStore] = None,
) -> List[NotificationChannel]:
    """Create a channel for every channel that has a transport."""
    cfg = settings.channels
    timeout = cfg.gateway_timeout_seconds
    channels: List[NotificationChannel] = []

    for channel, transport in transports.items():
        if channel == Channel.EMAIL:
            channels.append(
                EmailChannel(
                    EmailGateway(transport, timeout_seconds=timeout),
                    EmailMessageProcessor(
                        templates=templates, spam_filter_enabled=cfg.spam_filter_enabled
                    ),
                    sender=cfg.email_sender,
                )
            )
        elif channel == Channel.SMS:
            channels.append(
                SMSChannel(
                    SMSGateway(transport, timeout_seconds=timeout),
                    SmsMessageProcessor(
                        max_length=cfg.sms_max_length,
                        spam_filter_enabled=cfg.spam_filter_enabled,
                    ),
                    sender_id=cfg.sms_sender_id,
                )
            )
        elif channel == Channel.PUSH:
            channels.append(
                PushChannel(
                    PushGateway(
                        transport,
                        max_payload_bytes=cfg.push_max_payload_bytes,
                        overhead_bytes=cfg.push_payload_overhead_bytes,
                        timeout_seconds=timeout,
                    )
                )
            )
        elif channel == Channel.WEBHOOK:
            channels.append(
                WebhookChannel(
                    WebhookGateway(transport, timeout_seconds=timeout),
                    MessageProcessor(spam_filter_enabled=cfg.spam_filter_enabled),
                )
            )
        elif channel == Channel.SLACK:
            channels.append(
                SlackChannel(
                    SlackGateway(transport, timeout_seconds=timeout),
                    MessageProcessor(spam_filter_enabled=cfg.spam_filter_enabled),
                )
            )

    return channels


def build_orchestrator(
    settings: "Settings",
    transports: Optional[Dict[Channel, GatewayTransport]] = None,
    templates: Optional[TemplateStore] = None,
) -> NotificationOrchestrator:
    """Wire a NotificationOrchestrator from settings and transports."""
    if transports is None:
        transports = default_transports(settings)
    templates = templates or TemplateStore()

    rate_limiter = RateLimiter(
        RateLimitConfig(
            max_requests=settings.rate_limit.max_requests,
            window_seconds=settings.rate_limit.window_seconds,
            bulk_delay_seconds=settings.rate_limit.bulk_delay_seconds,
            max_tracked_recipients=settings.rate_limit.max_tracked_recipients,
        )
    )
    retry_manager = RetryManager(
        RetryConfig(
            max_attempts=settings.retry.max_attempts,
            base_delay_seconds=settings.retry.base_delay_seconds,
            max_delay_seconds=settings.retry.max_delay_seconds,
            jitter=settings.retry.jitter,
        )
    )

    return NotificationOrchestrator(
        channels=build_channels(settings, transports, templates),
        rate_limiter=rate_limiter,
        retry_manager=retry_manager,
        templates=templates,
        system_id=settings.orchestrator.system_id,
        confirmation_channel=Channel(settings.orchestrator.confirmation_channel),
    )


class NotificationService:
    """Class-based notification service.

    Thin facade over NotificationOrchestrator; all work is delegated.

    Usage:
        from notifier.configuration import get_settings
        from notifier.notifications import NotificationService

        async with NotificationService(get_settings(), transports) as service:
            result = await service.send(request)
    """

    def __init__(
        self,
        settings: "Settings",
        transports: Optional[Dict[Channel, GatewayTransport]] = None,
        orchestrator: Optional[NotificationOrchestrator] = None,
    ):
        """Initialize notification service.

        Args:
            settings: Settings instance
            transports: Optional transports per channel; defaults to the
                transports available from settings
            orchestrator: Optional pre-configured orchestrator
        """
        self._settings = settings
        self._orchestrator = orchestrator or build_orchestrator(settings, transports)

    async def __aenter__(self) -> "NotificationService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    async def start(self) -> None:
        await self._orchestrator.start()

    async def shutdown(self) -> None:
        await self._orchestrator.shutdown()

    async def send(self, request: NotificationRequest) -> NotificationResult:
        return await self._orchestrator.send(request)

    async def send_bulk(self, bulk_request: BulkNotificationRequest) -> BulkNotificationResult:
        return await self._orchestrator.send_bulk(bulk_request)

    async def schedule(
        self, request: NotificationRequest, scheduled_time: "datetime"
    ) -> ScheduleResult:
        return await self._orchestrator.schedule_notification(request, scheduled_time)

    async def cancel(self, schedule_id: str) -> CancelResult:
        return await self._orchestrator.cancel_scheduled_notification(schedule_id)

    def get_delivery_status(self, request_id: str) -> DeliveryStatus:
        return self._orchestrator.get_delivery_status(request_id)

    def get_metrics(self) -> NotificationMetrics:
        return self._orchestrator.get_metrics()

    async def health_check(self) -> HealthCheckResult:
        return await self._orchestrator.health_check()

    def register_channel(self, channel: NotificationChannel) -> None:
        """Register a channel after initialization."""
        self._orchestrator.register_channel(channel)

    def get_channel(self, channel: Channel) -> Optional[NotificationChannel]:
        return self._orchestrator.channels.get(channel)

    def list_channels(self) -> List[Channel]:
        return list(self._orchestrator.channels)

    @property
    def orchestrator(self) -> NotificationOrchestrator:
        """Access the underlying orchestrator."""
        return self._orchestrator
