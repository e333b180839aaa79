"""Delivery channels: gateways, channel capability sets and transports."""

from notifier.notifications.channels.base import (
    PRIORITY_MAP,
    ChannelGateway,
    GatewayTransport,
    NotificationChannel,
    PreparedMessage,
)
from notifier.notifications.channels.email import EmailChannel, EmailGateway
from notifier.notifications.channels.push import PushChannel, PushGateway
from notifier.notifications.channels.slack import SlackChannel, SlackGateway
from notifier.notifications.channels.sms import SMSChannel, SMSGateway
from notifier.notifications.channels.transports import (
    InMemoryTransport,
    SlackWebTransport,
    WebhookHttpTransport,
)
from notifier.notifications.channels.webhook import WebhookChannel, WebhookGateway

__all__ = [
    "PRIORITY_MAP",
    "ChannelGateway",
    "GatewayTransport",
    "NotificationChannel",
    "PreparedMessage",
    "EmailChannel",
    "EmailGateway",
    "PushChannel",
    "PushGateway",
    "SlackChannel",
    "SlackGateway",
    "SMSChannel",
    "SMSGateway",
    "WebhookChannel",
    "WebhookGateway",
    "InMemoryTransport",
    "SlackWebTransport",
    "WebhookHttpTransport",
]
