"""SMS channel."""

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
from notifier.notifications.processing import SmsMessageProcessor
from notifier.notifications.validators import is_valid_phone
from notifier.operations import OperationResult

MAX_CONCATENATED_LENGTH = 1600
MAX_SENDER_ID_LENGTH = 11
MAX_VALIDITY_PERIOD_HOURS = 72


class SMSGateway(ChannelGateway):
    """SMS gateway.

    Rejects invalid numbers and bodies longer than a concatenated SMS.
    """

    endpoint = "sms://sms-gateway"

    @property
    def channel(self) -> Channel:
        return Channel.SMS

    def validate_payload(self, message: PreparedMessage) -> OperationResult:
        if not is_valid_phone(message.recipient):
            return self.reject(f"Invalid phone number: {message.recipient}")
        if not message.body:
            return self.reject("SMS body is required")
        if len(message.body) > MAX_CONCATENATED_LENGTH:
            return self.reject(
                f"SMS body of {len(message.body)} characters exceeds "
                f"{MAX_CONCATENATED_LENGTH}",
                error_code=ErrorCode.PAYLOAD_TOO_LARGE,
            )
        return OperationResult.success()


class SMSChannel(NotificationChannel):
    """SMS notification channel."""

    def __init__(
        self,
        gateway: SMSGateway,
        processor: SmsMessageProcessor | None = None,
        sender_id: str | None = None,
    ):
        super().__init__(gateway, processor or SmsMessageProcessor())
        self.sender_id = sender_id

    @property
    def channel(self) -> Channel:
        return Channel.SMS

    def validate_options(self, options: NotificationOptions) -> OperationResult:
        sender_id = options.get("sender_id")
        if sender_id is not None:
            if not isinstance(sender_id, str) or not sender_id.isalnum():
                return option_error("sender_id must be alphanumeric")
            if len(sender_id) > MAX_SENDER_ID_LENGTH:
                return option_error(
                    f"sender_id cannot exceed {MAX_SENDER_ID_LENGTH} characters"
                )

        for flag in ("unicode_enabled", "flash_sms"):
            value = options.get(flag)
            if value is not None and not isinstance(value, bool):
                return option_error(f"{flag} must be a boolean")

        validity = options.get("validity_period_hours")
        if validity is not None:
            if isinstance(validity, bool) or not isinstance(validity, int):
                return option_error("validity_period_hours must be an integer")
            if not 0 < validity <= MAX_VALIDITY_PERIOD_HOURS:
                return option_error(
                    f"validity_period_hours must be between 1 and {MAX_VALIDITY_PERIOD_HOURS}"
                )

        return OperationResult.success()

    def transport_options(self, options: NotificationOptions) -> Dict[str, Any]:
        forwarded = pick(options, "unicode_enabled", "flash_sms", "validity_period_hours")
        sender_id = options.get("sender_id") or self.sender_id
        if sender_id:
            forwarded["sender_id"] = sender_id
        return forwarded
