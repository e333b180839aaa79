"""Webhook channel."""

from typing import Any, Dict

from notifier.notifications.channels.base import (
    ChannelGateway,
    NotificationChannel,
    PreparedMessage,
    option_error,
    pick,
)
from notifier.notifications.models import Channel, NotificationOptions
from notifier.notifications.validators import is_valid_webhook_url
from notifier.operations import OperationResult

ALLOWED_METHODS = frozenset({"POST", "PUT"})


class WebhookGateway(ChannelGateway):
    """Webhook gateway."""

    endpoint = "https://webhook-gateway"

    @property
    def channel(self) -> Channel:
        return Channel.WEBHOOK

    def validate_payload(self, message: PreparedMessage) -> OperationResult:
        if not is_valid_webhook_url(message.recipient):
            return self.reject(f"Invalid webhook URL: {message.recipient}")
        if not message.body:
            return self.reject("Webhook body is required")
        return OperationResult.success()


class WebhookChannel(NotificationChannel):
    """Webhook notification channel."""

    @property
    def channel(self) -> Channel:
        return Channel.WEBHOOK

    def validate_options(self, options: NotificationOptions) -> OperationResult:
        headers = options.get("headers")
        if headers is not None:
            if not isinstance(headers, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in headers.items()
            ):
                return option_error("headers must map strings to strings")

        method = options.get("method")
        if method is not None and str(method).upper() not in ALLOWED_METHODS:
            return option_error(f"method must be one of {', '.join(sorted(ALLOWED_METHODS))}")

        return OperationResult.success()

    def transport_options(self, options: NotificationOptions) -> Dict[str, Any]:
        forwarded = pick(options, "headers")
        forwarded["method"] = str(options.get("method", "POST")).upper()
        return forwarded
