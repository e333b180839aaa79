"""Push channel."""

import re
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
from notifier.notifications.processing import PushMessageProcessor, estimate_payload_size
from notifier.notifications.validators import is_valid_push_token
from notifier.operations import OperationResult

TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_:.\-]+$")
MAX_SOUND_LENGTH = 50
MAX_CUSTOM_DATA_KEYS = 20


class PushGateway(ChannelGateway):
    """Push gateway.

    Args:
        transport: Transport performing the delivery
        max_payload_bytes: Maximum estimated payload size
        overhead_bytes: Fixed metadata overhead of a payload
        **kwargs: ChannelGateway options
    """

    endpoint = "push://push-gateway"

    def __init__(
        self, transport, max_payload_bytes: int = 4096, overhead_bytes: int = 200, **kwargs
    ):
        super().__init__(transport, **kwargs)
        self.max_payload_bytes = max_payload_bytes
        self.overhead_bytes = overhead_bytes

    @property
    def channel(self) -> Channel:
        return Channel.PUSH

    def validate_payload(self, message: PreparedMessage) -> OperationResult:
        token = message.recipient
        if not is_valid_push_token(token) or not TOKEN_PATTERN.match(token):
            return self.reject("Invalid device token", error_code=ErrorCode.INVALID_TOKEN)
        if not message.body:
            return self.reject("Push body is required")

        size = estimate_payload_size(
            message.subject,
            message.body,
            message.options.get("custom_data"),
            self.overhead_bytes,
        )
        if size > self.max_payload_bytes:
            return self.reject(
                f"Push payload of {size} bytes exceeds {self.max_payload_bytes}",
                error_code=ErrorCode.PAYLOAD_TOO_LARGE,
            )
        return OperationResult.success()


class PushChannel(NotificationChannel):
    """Push notification channel."""

    def __init__(self, gateway: PushGateway, processor: PushMessageProcessor | None = None):
        super().__init__(
            gateway,
            processor
            or PushMessageProcessor(
                max_payload_bytes=gateway.max_payload_bytes,
                overhead_bytes=gateway.overhead_bytes,
            ),
        )

    @property
    def channel(self) -> Channel:
        return Channel.PUSH

    def validate_options(self, options: NotificationOptions) -> OperationResult:
        badge_count = options.get("badge_count")
        if badge_count is not None:
            if isinstance(badge_count, bool) or not isinstance(badge_count, int):
                return option_error("badge_count must be an integer")
            if badge_count < 0:
                return option_error("badge_count cannot be negative")

        sound = options.get("sound")
        if sound is not None:
            if not isinstance(sound, str):
                return option_error("sound must be a string")
            if len(sound) > MAX_SOUND_LENGTH:
                return option_error(f"sound cannot exceed {MAX_SOUND_LENGTH} characters")

        custom_data = options.get("custom_data")
        if custom_data is not None:
            if not isinstance(custom_data, dict):
                return option_error("custom_data must be a mapping")
            if len(custom_data) > MAX_CUSTOM_DATA_KEYS:
                return option_error(
                    f"custom_data cannot have more than {MAX_CUSTOM_DATA_KEYS} keys"
                )

        return OperationResult.success()

    def transport_options(self, options: NotificationOptions) -> Dict[str, Any]:
        return pick(options, "badge_count", "sound", "custom_data")
