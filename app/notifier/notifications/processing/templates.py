"""Message templates with {{variable}} placeholders.

Templates support plain substitution only. Placeholders without a value
are left in place.
"""

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")

logger = structlog.get_logger()


def render_placeholders(text: str, variables: Mapping[str, Any]) -> str:
    """Replace {{name}} placeholders with values from variables."""

    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key in variables and variables[key] is not None:
            return str(variables[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, text)


@dataclass(frozen=True)
class MessageTemplate:
    """A named subject/body template."""

    template_id: str
    body: str
    subject: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def placeholders(self) -> List[str]:
        text = f"{self.subject or ''} {self.body}"
        return sorted(set(PLACEHOLDER_PATTERN.findall(text)))

    def render(self, variables: Mapping[str, Any]) -> Tuple[Optional[str], str]:
        subject = render_placeholders(self.subject, variables) if self.subject else None
        return subject, render_placeholders(self.body, variables)


class TemplateStore:
    """Thread-safe in-memory template registry."""

    def __init__(self) -> None:
        self._templates: Dict[str, MessageTemplate] = {}
        self._lock = threading.Lock()

    def create_template(
        self, template_id: str, body: str, subject: Optional[str] = None
    ) -> MessageTemplate:
        """Create or replace a template.

        Raises:
            ValueError: If template_id or body is empty
        """
        if not template_id or not template_id.strip():
            raise ValueError("template_id is required")
        if not body or not body.strip():
            raise ValueError("template body is required")

        template = MessageTemplate(template_id=template_id, body=body, subject=subject)
        with self._lock:
            replaced = template_id in self._templates
            self._templates[template_id] = template
        logger.info(
            "template_created",
            template_id=template_id,
            replaced=replaced,
            placeholders=template.placeholders,
        )
        return template

    def get(self, template_id: str) -> Optional[MessageTemplate]:
        with self._lock:
            return self._templates.get(template_id)

    def delete(self, template_id: str) -> bool:
        with self._lock:
            return self._templates.pop(template_id, None) is not None

    def list_templates(self) -> List[str]:
        with self._lock:
            return sorted(self._templates)
