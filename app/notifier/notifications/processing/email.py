"""Email message processing.

Stages after the generic ones:

    render_template (rendered text is cleaned again) → prepare_multipart
    → add_unsubscribe_footer (marketing only)

With a ``template_id`` option the named template supplies subject and
body; otherwise placeholders in the message itself are rendered. HTML
bodies and attachments are carried as opaque assets.
"""

import html
from typing import Any, Dict

from notifier.notifications.errors import ProcessingError
from notifier.notifications.models import MessageKind, NotificationRequest
from notifier.notifications.processing.base import MessageProcessor, ProcessedMessage
from notifier.notifications.processing.templates import (
    PLACEHOLDER_PATTERN,
    TemplateStore,
    render_placeholders,
)

UNSUBSCRIBE_FOOTER = "To stop receiving these emails, reply UNSUBSCRIBE."


def text_to_html(text: str) -> str:
    """Wrap plain-text paragraphs in <p> tags, escaping markup."""
    paragraphs = [p for p in text.split("\n\n") if p.strip()]
    return "".join(
        "<p>" + html.escape(p).replace("\n", "<br>") + "</p>" for p in paragraphs
    )


def template_variables(request: NotificationRequest) -> Dict[str, Any]:
    """Variables available to templates: recipient fields plus the option map."""
    recipient = request.recipient
    variables: Dict[str, Any] = {
        "name": (recipient.name or recipient.id) if recipient else None,
        "recipient_id": recipient.id if recipient else None,
    }
    variables.update(request.options.get("template_variables") or {})
    return variables


class EmailMessageProcessor(MessageProcessor):
    """Processor for email deliveries.

    Args:
        templates: Template store consulted for the template_id option
        **kwargs: Generic processor options
    """

    def __init__(self, templates: TemplateStore | None = None, **kwargs):
        super().__init__(**kwargs)
        self.templates = templates or TemplateStore()

    def apply_channel_steps(
        self, processed: ProcessedMessage, request: NotificationRequest
    ) -> None:
        self._render(processed, request)
        self._prepare_multipart(processed, request)
        if request.message.kind == MessageKind.MARKETING:
            processed.body = f"{processed.body}\n\n{UNSUBSCRIBE_FOOTER}"
            if "html_body" in processed.assets:
                processed.assets["html_body"] += f"<p>{UNSUBSCRIBE_FOOTER}</p>"
            processed.add_step("add_unsubscribe_footer", "Appended unsubscribe footer")

    def _render(self, processed: ProcessedMessage, request: NotificationRequest) -> None:
        variables = template_variables(request)
        template_id = request.options.get("template_id")

        if template_id:
            template = self.templates.get(template_id)
            if template is None:
                processed.add_step("render_template", f"Unknown template {template_id}", False)
                raise ProcessingError(f"Template '{template_id}' not found", "render_template")
            subject, processed.body = template.render(variables)
            processed.subject = subject or processed.subject
            processed.metadata["template_id"] = template_id
            processed.add_step("render_template", f"Rendered template {template_id}")
        else:
            text = f"{processed.subject or ''}{processed.body}"
            if not PLACEHOLDER_PATTERN.search(text):
                processed.add_step("render_template", "No placeholders to render")
                return

            processed.body = render_placeholders(processed.body, variables)
            if processed.subject:
                processed.subject = render_placeholders(processed.subject, variables)
            processed.add_step("render_template", "Rendered inline placeholders")

        # rendered content goes through the generic checks as well
        self.clean(processed)
        self.collect_metadata(processed)

    def _prepare_multipart(
        self, processed: ProcessedMessage, request: NotificationRequest
    ) -> None:
        html_content = request.options.get("html_content")
        if html_content:
            processed.assets["html_body"] = html_content
            processed.metadata["html_generated"] = False
        else:
            processed.assets["html_body"] = text_to_html(processed.body)
            processed.metadata["html_generated"] = True

        attachments = request.options.get("attachments") or []
        if attachments:
            processed.assets["attachments"] = list(attachments)
        processed.metadata["attachment_count"] = len(attachments)
        processed.add_step("prepare_multipart", "Prepared text and HTML parts")
