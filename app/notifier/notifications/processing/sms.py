"""SMS message processing.

Stages after the generic ones:

    remove_special_characters (skipped when unicode is enabled)
    → normalize_whitespace → truncate → append_opt_out → analyze_segments

Re-processing an already processed body leaves it unchanged: a truncated
body is exactly max_length long, which leaves no room for the opt-out
suffix, and an appended suffix mentions "stop".
"""

import math
from dataclasses import dataclass

from notifier.notifications.models import NotificationRequest
from notifier.notifications.processing.base import (
    MessageProcessor,
    ProcessedMessage,
    collapse_whitespace,
    sanitize,
)

OPT_OUT_SUFFIX = "Reply STOP to opt out."
ELLIPSIS = "..."

_SPECIAL_CHARACTERS = str.maketrans(
    {
        "\u2018": "'",
        "\u2019": "'",
        "\u201c": '"',
        "\u201d": '"',
        "\u2013": "-",
        "\u2014": "-",
        "\u2026": "...",
        "\u00a0": " ",
    }
)


@dataclass(frozen=True)
class SegmentInfo:
    """How an SMS body splits into transport segments."""

    encoding: str
    segment_count: int
    characters_per_segment: int


def analyze_segments(text: str) -> SegmentInfo:
    """Compute SMS segmentation.

    GSM bodies fit 160 characters in one segment and 153 per part when
    concatenated; unicode (UCS-2) bodies fit 70 and 67.
    """
    if text.isascii():
        encoding, single, multi = "GSM-7", 160, 153
    else:
        encoding, single, multi = "UCS-2", 70, 67

    if len(text) <= single:
        return SegmentInfo(encoding, 1 if text else 0, single)
    return SegmentInfo(encoding, math.ceil(len(text) / multi), multi)


class SmsMessageProcessor(MessageProcessor):
    """Processor for SMS deliveries.

    Args:
        max_length: Maximum processed body length (default: 160)
        **kwargs: Generic processor options
    """

    def __init__(self, max_length: int = 160, **kwargs):
        super().__init__(**kwargs)
        if max_length <= len(ELLIPSIS):
            raise ValueError("max_length must leave room for an ellipsis")
        self.max_length = max_length

    def apply_channel_steps(
        self, processed: ProcessedMessage, request: NotificationRequest
    ) -> None:
        unicode_enabled = bool(request.options.get("unicode_enabled", False))

        if unicode_enabled:
            processed.add_step(
                "remove_special_characters", "Skipped, unicode transport enabled"
            )
        else:
            processed.body = self.remove_special_characters(processed.body)
            processed.add_step(
                "remove_special_characters", "Replaced typographic and non-ASCII characters"
            )

        processed.body = collapse_whitespace(processed.body)
        processed.add_step("normalize_whitespace", "Collapsed whitespace for SMS")

        self._truncate(processed)
        self._append_opt_out(processed)

        segments = analyze_segments(processed.body)
        processed.metadata.update(
            encoding=segments.encoding,
            segment_count=segments.segment_count,
        )
        processed.add_step(
            "analyze_segments",
            f"{segments.segment_count} {segments.encoding} segment(s)",
        )

    @staticmethod
    def remove_special_characters(text: str) -> str:
        """Fold to ASCII, then sanitize again since dropped characters can
        join script-like fragments (``oénclick=`` becomes ``onclick=``)."""
        text = text.translate(_SPECIAL_CHARACTERS)
        return sanitize(text.encode("ascii", "ignore").decode("ascii"))

    def _truncate(self, processed: ProcessedMessage) -> None:
        original_length = len(processed.body)
        processed.metadata["original_length"] = original_length
        if original_length <= self.max_length:
            processed.metadata["truncated"] = False
            processed.add_step("truncate", "Within length limit")
            return

        processed.body = processed.body[: self.max_length - len(ELLIPSIS)] + ELLIPSIS
        processed.metadata["truncated"] = True
        processed.add_step(
            "truncate", f"Truncated from {original_length} to {self.max_length} characters"
        )

    def _append_opt_out(self, processed: ProcessedMessage) -> None:
        if "stop" in processed.body.lower():
            processed.add_step("append_opt_out", "Skipped, opt-out already mentioned")
            return

        candidate = f"{processed.body} {OPT_OUT_SUFFIX}"
        if len(candidate) > self.max_length:
            processed.add_step("append_opt_out", "Skipped, no room for opt-out text")
            return

        processed.body = candidate
        processed.metadata["opt_out_appended"] = True
        processed.add_step("append_opt_out", "Appended opt-out instructions")
