"""Email channel."""

from typing import Any, Dict

from notifier.notifications.channels.base import (
    ChannelGateway,
    NotificationChannel,
    PreparedMessage,
    option_error,
    pick,
)
from notifier.notifications.models import Channel, NotificationOptions
from notifier.notifications.processing import EmailMessageProcessor, ProcessedMessage
from notifier.notifications.validators import is_valid_email
from notifier.operations import OperationResult

DEFAULT_SUBJECT = "Notification"
MAX_ATTACHMENTS = 10


class EmailGateway(ChannelGateway):
    """Email gateway.

    Requires a valid address, a subject and a body.
    """

    endpoint = "smtp://mail-gateway"

    @property
    def channel(self) -> Channel:
        return Channel.EMAIL

    def validate_payload(self, message: PreparedMessage) -> OperationResult:
        if not is_valid_email(message.recipient):
            return self.reject(f"Invalid email address: {message.recipient}")
        if not message.subject:
            return self.reject("Email subject is required")
        if not message.body:
            return self.reject("Email body is required")
        return OperationResult.success()


class EmailChannel(NotificationChannel):
    """Email notification channel.

    Args:
        gateway: Email gateway
        processor: Email processor (templates, HTML part, footer)
        sender: Default From address forwarded to the transport
    """

    def __init__(
        self,
        gateway: EmailGateway,
        processor: EmailMessageProcessor | None = None,
        sender: str | None = None,
    ):
        super().__init__(gateway, processor or EmailMessageProcessor())
        self.sender = sender

    @property
    def channel(self) -> Channel:
        return Channel.EMAIL

    def validate_options(self, options: NotificationOptions) -> OperationResult:
        reply_to = options.get("reply_to")
        if reply_to is not None and not is_valid_email(reply_to):
            return option_error(f"Invalid reply_to address: {reply_to}")

        for key in ("cc_recipients", "bcc_recipients"):
            addresses = options.get(key)
            if addresses is None:
                continue
            if not isinstance(addresses, (list, tuple)):
                return option_error(f"{key} must be a list of email addresses")
            invalid = [a for a in addresses if not is_valid_email(a)]
            if invalid:
                return option_error(f"Invalid {key}: {', '.join(map(str, invalid))}")

        html_content = options.get("html_content")
        if html_content is not None and not isinstance(html_content, str):
            return option_error("html_content must be a string")

        attachments = options.get("attachments")
        if attachments is not None:
            if not isinstance(attachments, (list, tuple)):
                return option_error("attachments must be a list")
            if len(attachments) > MAX_ATTACHMENTS:
                return option_error(f"At most {MAX_ATTACHMENTS} attachments are allowed")

        variables = options.get("template_variables")
        if variables is not None and not isinstance(variables, dict):
            return option_error("template_variables must be a mapping")

        return OperationResult.success()

    def prepare(self, request, processed: ProcessedMessage) -> PreparedMessage:
        prepared = super().prepare(request, processed)
        prepared.subject = prepared.subject or DEFAULT_SUBJECT
        return prepared

    def transport_options(self, options: NotificationOptions) -> Dict[str, Any]:
        forwarded = pick(options, "reply_to", "cc_recipients", "bcc_recipients")
        if self.sender:
            forwarded["sender"] = self.sender
        return forwarded
