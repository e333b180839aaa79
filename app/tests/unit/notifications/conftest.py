"""Test fixtures for notification tests."""

from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from notifier.notifications.channels import (
    EmailChannel,
    EmailGateway,
    InMemoryTransport,
    NotificationChannel,
    PushChannel,
    PushGateway,
    SlackChannel,
    SlackGateway,
    SMSChannel,
    SMSGateway,
    WebhookChannel,
    WebhookGateway,
)
from notifier.notifications.models import Channel
from notifier.notifications.orchestrator import NotificationOrchestrator
from notifier.notifications.processing import EmailMessageProcessor, TemplateStore
from notifier.resilience import RateLimitConfig, RateLimiter, RetryConfig, RetryManager


@pytest.fixture
def templates():
    return TemplateStore()


@pytest.fixture
def transports() -> Dict[Channel, InMemoryTransport]:
    """One in-memory transport per channel, named after the channel."""
    return {channel: InMemoryTransport(channel.value) for channel in Channel}


@pytest.fixture
def channels(transports, templates) -> List[NotificationChannel]:
    """Every channel wired to its in-memory transport."""
    return [
        EmailChannel(
            EmailGateway(transports[Channel.EMAIL]),
            EmailMessageProcessor(templates=templates),
        ),
        SMSChannel(SMSGateway(transports[Channel.SMS])),
        PushChannel(PushGateway(transports[Channel.PUSH])),
        WebhookChannel(WebhookGateway(transports[Channel.WEBHOOK])),
        SlackChannel(SlackGateway(transports[Channel.SLACK])),
    ]


@pytest_asyncio.fixture
async def orchestrator_factory(channels, templates):
    """Factory for NotificationOrchestrator instances.

    Defaults: no bulk delay, and retries far enough in the future that
    they never fire during a test unless a config says otherwise.

    Example:
        orchestrator = orchestrator_factory(
            retry=RetryConfig(max_attempts=1, base_delay_seconds=0.01)
        )
    """
    created: List[NotificationOrchestrator] = []

    def _factory(
        rate_limit: Optional[RateLimitConfig] = None,
        retry: Optional[RetryConfig] = None,
        channel_list: Optional[List[NotificationChannel]] = None,
        **kwargs,
    ) -> NotificationOrchestrator:
        orchestrator = NotificationOrchestrator(
            channels=channels if channel_list is None else channel_list,
            rate_limiter=RateLimiter(rate_limit or RateLimitConfig(bulk_delay_seconds=0)),
            retry_manager=RetryManager(
                retry or RetryConfig(base_delay_seconds=60, max_delay_seconds=600)
            ),
            templates=templates,
            **kwargs,
        )
        created.append(orchestrator)
        return orchestrator

    yield _factory

    for orchestrator in created:
        await orchestrator.shutdown()


@pytest.fixture
def orchestrator(orchestrator_factory):
    return orchestrator_factory()
