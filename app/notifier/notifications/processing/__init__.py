"""Message processing pipelines (generic, SMS, push, email) and templates."""

from notifier.notifications.processing.base import (
    MessageProcessor,
    ProcessedMessage,
    ProcessingStep,
)
from notifier.notifications.processing.email import EmailMessageProcessor
from notifier.notifications.processing.push import (
    PushMessageProcessor,
    estimate_payload_size,
)
from notifier.notifications.processing.sms import (
    SmsMessageProcessor,
    analyze_segments,
)
from notifier.notifications.processing.templates import (
    MessageTemplate,
    TemplateStore,
    render_placeholders,
)

__all__ = [
    "MessageProcessor",
    "ProcessedMessage",
    "ProcessingStep",
    "EmailMessageProcessor",
    "PushMessageProcessor",
    "SmsMessageProcessor",
    "MessageTemplate",
    "TemplateStore",
    "analyze_segments",
    "estimate_payload_size",
    "render_placeholders",
]
