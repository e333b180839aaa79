"""Slack channel."""

from typing import Any, Dict

from notifier.notifications.channels.base import (
    ChannelGateway,
    NotificationChannel,
    PreparedMessage,
    option_error,
    pick,
)
from notifier.notifications.errors import ErrorCode
from notifier.notifications.models import Channel, NotificationOptions
from notifier.notifications.validators import is_valid_slack_target
from notifier.operations import OperationResult

MAX_TEXT_LENGTH = 40000


class SlackGateway(ChannelGateway):
    """Slack gateway."""

    endpoint = "https://slack.com/api/chat.postMessage"

    @property
    def channel(self) -> Channel:
        return Channel.SLACK

    def validate_payload(self, message: PreparedMessage) -> OperationResult:
        if not is_valid_slack_target(message.recipient):
            return self.reject(f"Invalid Slack target: {message.recipient}")
        if not message.body:
            return self.reject("Slack message text is required")
        if len(message.body) > MAX_TEXT_LENGTH:
            return self.reject(
                f"Slack message exceeds {MAX_TEXT_LENGTH} characters",
                error_code=ErrorCode.PAYLOAD_TOO_LARGE,
            )
        return OperationResult.success()


class SlackChannel(NotificationChannel):
    """Slack notification channel."""

    @property
    def channel(self) -> Channel:
        return Channel.SLACK

    def validate_options(self, options: NotificationOptions) -> OperationResult:
        for key in ("username", "thread_ts"):
            value = options.get(key)
            if value is not None and not isinstance(value, str):
                return option_error(f"{key} must be a string")

        icon_emoji = options.get("icon_emoji")
        if icon_emoji is not None and not (
            isinstance(icon_emoji, str)
            and len(icon_emoji) > 2
            and icon_emoji.startswith(":")
            and icon_emoji.endswith(":")
        ):
            return option_error("icon_emoji must look like :emoji_name:")

        return OperationResult.success()

    def transport_options(self, options: NotificationOptions) -> Dict[str, Any]:
        return pick(options, "username", "icon_emoji", "thread_ts")
