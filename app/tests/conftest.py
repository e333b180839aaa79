"""Shared test fixtures.

Factories for the notification request models used across unit tests.
"""

from typing import Any, Dict, Optional

import pytest

from notifier.notifications.models import (
    Channel,
    MessageKind,
    NotificationMessage,
    NotificationOptions,
    NotificationPriority,
    NotificationRecipient,
    NotificationRequest,
)

DEFAULT_CONTACTS = {
    Channel.EMAIL: "user@example.com",
    Channel.SMS: "+15551234567",
    Channel.PUSH: "device-token-0123456789",
    Channel.WEBHOOK: "https://hooks.example.com/notify",
    Channel.SLACK: "#alerts",
}


@pytest.fixture
def recipient_factory():
    """Factory for creating NotificationRecipient instances.

    Example:
        recipient = recipient_factory(channel=Channel.SMS)
        bad = recipient_factory(channel=Channel.SMS, contact="notanumber")
    """

    def _factory(
        id: str = "user-1",
        channel: Channel = Channel.EMAIL,
        contact: Optional[str] = None,
        name: Optional[str] = "Ada",
    ) -> NotificationRecipient:
        return NotificationRecipient(
            id=id,
            channel=channel,
            contact=contact if contact is not None else DEFAULT_CONTACTS[channel],
            name=name,
        )

    return _factory


@pytest.fixture
def message_factory():
    """Factory for creating NotificationMessage instances."""

    def _factory(
        content: Optional[str] = "Your order has shipped.",
        subject: Optional[str] = "Order update",
        kind: MessageKind = MessageKind.TRANSACTIONAL,
    ) -> NotificationMessage:
        return NotificationMessage(subject=subject, content=content, kind=kind)

    return _factory


@pytest.fixture
def request_factory(recipient_factory, message_factory):
    """Factory for creating NotificationRequest instances.

    Example:
        request = request_factory(channel=Channel.SMS, content="Hi")
        request = request_factory(options={"sender_id": "ACME"})
    """

    def _factory(
        channel: Channel = Channel.EMAIL,
        contact: Optional[str] = None,
        content: Optional[str] = "Your order has shipped.",
        subject: Optional[str] = "Order update",
        kind: MessageKind = MessageKind.TRANSACTIONAL,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        options: Optional[Dict[str, Any]] = None,
        recipient_id: str = "user-1",
        name: Optional[str] = "Ada",
        **kwargs: Any,
    ) -> NotificationRequest:
        confirmation = kwargs.pop("request_delivery_confirmation", False)
        return NotificationRequest(
            recipient=recipient_factory(
                id=recipient_id, channel=channel, contact=contact, name=name
            ),
            message=message_factory(content=content, subject=subject, kind=kind),
            priority=priority,
            options=NotificationOptions(
                request_delivery_confirmation=confirmation,
                channel_options=options or {},
            ),
            **kwargs,
        )

    return _factory
