"""Message processing pipeline.

Every message runs through the generic stage, then through the stages
of the channel-specific processor:

    sanitize → validate_links → spam_check → normalize_whitespace
    → collect_metadata → <channel stages>

Each stage appends a ProcessingStep to the ProcessedMessage. A stage that
rejects the content records a failed step and raises ProcessingError.
Processing is synchronous and deterministic for a given input and
configuration.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional
from urllib.parse import urlparse

from notifier.notifications.errors import ProcessingError
from notifier.notifications.models import NotificationRequest

SCRIPT_TAG_PATTERN = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
JAVASCRIPT_URI_PATTERN = re.compile(r"javascript:", re.IGNORECASE)
EVENT_HANDLER_PATTERN = re.compile(r"on\w+\s*=", re.IGNORECASE)
URL_PATTERN = re.compile(r"https?://[^\s<>\"']+", re.IGNORECASE)
SCRIPT_FRAGMENT_PATTERNS = (SCRIPT_TAG_PATTERN, JAVASCRIPT_URI_PATTERN, EVENT_HANDLER_PATTERN)

DEFAULT_BLOCKED_DOMAINS = frozenset({"malicious-site.com"})
DEFAULT_SPAM_KEYWORDS = frozenset(
    {
        "free money",
        "click here now",
        "urgent action required",
        "congratulations winner",
    }
)


@dataclass
class ProcessingStep:
    """One entry of the transformation log."""

    name: str
    description: str
    success: bool = True


@dataclass
class ProcessedMessage:
    """Channel-ready content derived from a request.

    Attributes:
        subject: Transformed subject (title for push)
        body: Transformed body
        steps: Ordered transformation log
        metadata: Facts collected by the stages (counts, truncation, ...)
        assets: Opaque extras carried to the gateway (HTML body, attachments)
    """

    subject: Optional[str]
    body: str
    steps: List[ProcessingStep] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    assets: Dict[str, Any] = field(default_factory=dict)

    def add_step(self, name: str, description: str, success: bool = True) -> None:
        self.steps.append(ProcessingStep(name, description, success))

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self.steps]


def sanitize(text: str) -> str:
    """Strip script tags, javascript: URIs and inline event handlers.

    Substitutions repeat until the text stops changing, so fragments nested
    inside one another (``<scr<script></script>ipt>``) are removed as well.
    """
    previous = None
    while text != previous:
        previous = text
        for pattern in SCRIPT_FRAGMENT_PATTERNS:
            text = pattern.sub("", text)
    return text.strip()


def normalize_whitespace(text: str) -> str:
    """Collapse blank runs but keep paragraph breaks."""
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def collapse_whitespace(text: str) -> str:
    """Collapse all whitespace, newlines included, into single spaces."""
    return re.sub(r"\s+", " ", text).strip()


class MessageProcessor:
    """Generic processor, used as-is for webhook and Slack deliveries.

    Channel processors subclass it and override apply_channel_steps().

    Args:
        spam_filter_enabled: Fail processing when spam keywords are found
        blocked_domains: Link hosts that fail processing
        spam_keywords: Lower-case phrases treated as spam
    """

    def __init__(
        self,
        spam_filter_enabled: bool = True,
        blocked_domains: FrozenSet[str] = DEFAULT_BLOCKED_DOMAINS,
        spam_keywords: FrozenSet[str] = DEFAULT_SPAM_KEYWORDS,
    ):
        self.spam_filter_enabled = spam_filter_enabled
        self.blocked_domains = blocked_domains
        self.spam_keywords = spam_keywords

    def process(self, request: NotificationRequest) -> ProcessedMessage:
        """Run the generic stage followed by the channel stages.

        Raises:
            ProcessingError: If a stage rejects the content
        """
        message = request.message
        processed = ProcessedMessage(
            subject=message.subject if message else None,
            body=(message.content if message else None) or "",
        )
        self.apply_generic_steps(processed)
        self.apply_channel_steps(processed, request)

        if not processed.body:
            processed.add_step("finalize", "Content is empty after processing", False)
            raise ProcessingError("Message content is empty after processing", "finalize")
        return processed

    def apply_generic_steps(self, processed: ProcessedMessage) -> None:
        self.clean(processed)
        self.collect_metadata(processed)

    def clean(self, processed: ProcessedMessage) -> None:
        """Sanitize, check links and spam, then normalize whitespace.

        Also applied to content produced later in the pipeline, such as
        rendered templates.

        Raises:
            ProcessingError: If a blocked link or spam keyword is found
        """
        processed.body = sanitize(processed.body)
        if processed.subject:
            processed.subject = sanitize(processed.subject)
        processed.add_step("sanitize", "Removed script-like fragments")

        self._check_links(processed)
        self._check_spam(processed)

        processed.body = normalize_whitespace(processed.body)
        if processed.subject:
            processed.subject = collapse_whitespace(processed.subject)
        processed.add_step("normalize_whitespace", "Collapsed redundant whitespace")

    def collect_metadata(self, processed: ProcessedMessage) -> None:
        processed.metadata.update(
            character_count=len(processed.body),
            word_count=len(processed.body.split()),
            line_count=len(processed.body.splitlines()) if processed.body else 0,
        )
        processed.add_step("collect_metadata", "Recorded content statistics")

    def apply_channel_steps(
        self, processed: ProcessedMessage, request: NotificationRequest
    ) -> None:
        """Channel-specific stages; none for the generic processor."""

    def is_healthy(self) -> bool:
        return True

    def _check_links(self, processed: ProcessedMessage) -> None:
        for url in URL_PATTERN.findall(processed.body):
            host = (urlparse(url).hostname or "").lower()
            if any(host == d or host.endswith("." + d) for d in self.blocked_domains):
                processed.add_step("validate_links", f"Blocked link to {host}", False)
                raise ProcessingError(
                    f"Message contains a blocked link: {host}", "validate_links"
                )
        processed.add_step("validate_links", "No blocked links found")

    def _check_spam(self, processed: ProcessedMessage) -> None:
        if not self.spam_filter_enabled:
            return
        text = collapse_whitespace(f"{processed.subject or ''} {processed.body}").lower()
        matched = sorted(k for k in self.spam_keywords if k in text)
        if matched:
            processed.add_step("spam_check", f"Matched {', '.join(matched)}", False)
            raise ProcessingError("Message flagged as spam", "spam_check")
        processed.add_step("spam_check", "No spam keywords found")
