"""Push message processing.

Stages after the generic ones:

    optimize_for_mobile → enforce_payload_size

The payload estimate is shared with the push gateway so a processed
message always passes the gateway's size check.
"""

import json
from typing import Any, Mapping, Optional

from notifier.notifications.errors import ProcessingError
from notifier.notifications.models import NotificationRequest
from notifier.notifications.processing.base import (
    MessageProcessor,
    ProcessedMessage,
    collapse_whitespace,
)

MOBILE_PREVIEW_LENGTH = 100
ELLIPSIS = "..."


def estimate_payload_size(
    title: Optional[str],
    body: str,
    custom_data: Optional[Mapping[str, Any]] = None,
    overhead_bytes: int = 200,
) -> int:
    """Estimated push payload size in bytes."""
    size = len((title or "").encode("utf-8")) + len(body.encode("utf-8"))
    if custom_data:
        size += len(json.dumps(custom_data, default=str).encode("utf-8"))
    return size + overhead_bytes


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut text to at most max_bytes of UTF-8 without splitting a character."""
    return text.encode("utf-8")[:max_bytes].decode("utf-8", "ignore")


class PushMessageProcessor(MessageProcessor):
    """Processor for push deliveries.

    Args:
        max_payload_bytes: Maximum estimated payload size (default: 4096)
        overhead_bytes: Fixed metadata overhead added to estimates
        **kwargs: Generic processor options
    """

    def __init__(self, max_payload_bytes: int = 4096, overhead_bytes: int = 200, **kwargs):
        super().__init__(**kwargs)
        self.max_payload_bytes = max_payload_bytes
        self.overhead_bytes = overhead_bytes

    def apply_channel_steps(
        self, processed: ProcessedMessage, request: NotificationRequest
    ) -> None:
        self._optimize_for_mobile(processed)
        self._enforce_payload_size(processed, request.options.get("custom_data"))

    def _optimize_for_mobile(self, processed: ProcessedMessage) -> None:
        processed.body = collapse_whitespace(processed.body)

        # A sentence break inside the preview keeps the body readable as-is
        sentence_break = processed.body.find(". ")
        if len(processed.body) > MOBILE_PREVIEW_LENGTH and not (
            0 < sentence_break < MOBILE_PREVIEW_LENGTH
        ):
            processed.body = processed.body[: MOBILE_PREVIEW_LENGTH - len(ELLIPSIS)] + ELLIPSIS
            processed.metadata["mobile_optimized"] = True
            processed.add_step("optimize_for_mobile", "Trimmed body to preview length")
            return

        processed.metadata["mobile_optimized"] = False
        processed.add_step("optimize_for_mobile", "Collapsed whitespace")

    def _enforce_payload_size(
        self, processed: ProcessedMessage, custom_data: Optional[Mapping[str, Any]]
    ) -> None:
        estimate = estimate_payload_size(
            processed.subject, processed.body, custom_data, self.overhead_bytes
        )
        processed.metadata["estimated_payload_bytes"] = estimate
        if estimate <= self.max_payload_bytes:
            processed.metadata["payload_truncated"] = False
            processed.add_step("enforce_payload_size", f"Payload {estimate} bytes")
            return

        fixed = estimate - len(processed.body.encode("utf-8"))
        available = self.max_payload_bytes - fixed - len(ELLIPSIS)
        if available <= 0:
            processed.add_step(
                "enforce_payload_size", "Title and custom data exceed payload limit", False
            )
            raise ProcessingError(
                f"Push payload of {fixed} bytes without body exceeds "
                f"{self.max_payload_bytes} bytes",
                "enforce_payload_size",
            )

        processed.body = truncate_utf8(processed.body, available) + ELLIPSIS
        processed.metadata["payload_truncated"] = True
        processed.metadata["estimated_payload_bytes"] = estimate_payload_size(
            processed.subject, processed.body, custom_data, self.overhead_bytes
        )
        processed.add_step(
            "enforce_payload_size",
            f"Truncated body to fit {self.max_payload_bytes} byte payload",
        )
