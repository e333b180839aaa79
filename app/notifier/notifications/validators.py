"""Recipient and request validation.

Format rules are pure predicates, one per channel. validate_request()
applies the channel-independent pre-send checks in order and returns an
OperationResult; per-channel option checks live on the channels.
"""

import re
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from notifier.notifications.errors import ErrorCode
from notifier.notifications.models import Channel, NotificationRequest
from notifier.operations import OperationResult

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@([A-Za-z0-9.-]+\.[A-Za-z]{2,})$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
PUSH_TOKEN_MIN_LENGTH = 10


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def is_valid_phone(value: Optional[str]) -> bool:
    """E.164-like: optional '+', 2-15 digits, first digit non-zero."""
    return bool(value) and PHONE_PATTERN.match(value) is not None


def is_valid_push_token(value: Optional[str]) -> bool:
    return bool(value) and len(value.strip()) >= PUSH_TOKEN_MIN_LENGTH


def is_valid_webhook_url(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(("http://", "https://"))


def is_valid_slack_target(value: Optional[str]) -> bool:
    """Slack channel (#name) or user (@name)."""
    return bool(value) and value.startswith(("#", "@")) and len(value) > 1


RECIPIENT_VALIDATORS: Dict[Channel, Callable[[Optional[str]], bool]] = {
    Channel.EMAIL: is_valid_email,
    Channel.SMS: is_valid_phone,
    Channel.PUSH: is_valid_push_token,
    Channel.WEBHOOK: is_valid_webhook_url,
    Channel.SLACK: is_valid_slack_target,
}

_FORMAT_DESCRIPTIONS = {
    Channel.EMAIL: "an email address",
    Channel.SMS: "an E.164 phone number",
    Channel.PUSH: f"a device token of at least {PUSH_TOKEN_MIN_LENGTH} characters",
    Channel.WEBHOOK: "an http:// or https:// URL",
    Channel.SLACK: "a #channel or @user handle",
}


def validate_contact(channel: Channel, contact: Optional[str]) -> OperationResult:
    """Check a contact string against the channel's format rule."""
    if RECIPIENT_VALIDATORS[channel](contact):
        return OperationResult.success(data={"contact": contact})
    return OperationResult.permanent_error(
        f"Invalid {channel.value} recipient '{contact}': expected "
        f"{_FORMAT_DESCRIPTIONS[channel]}",
        error_code=ErrorCode.VALIDATION_ERROR,
    )


def validate_request(
    request: Optional[NotificationRequest],
    check_schedule: bool = True,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Run the channel-independent pre-send checks.

    Order: request present, recipient present, body present, scheduled
    time not in the past, recipient contact format.

    Args:
        request: Request to validate
        check_schedule: Reject a scheduled_time in the past. Deferred runs
            disable this since their scheduled time has already passed.
        now: Current time, injectable for tests

    Returns:
        OperationResult, PERMANENT_ERROR with VALIDATION_ERROR on failure
    """
    if request is None:
        return OperationResult.permanent_error(
            "Request is required", error_code=ErrorCode.VALIDATION_ERROR
        )

    if request.recipient is None:
        return OperationResult.permanent_error(
            "Recipient is required", error_code=ErrorCode.VALIDATION_ERROR
        )

    if request.message is None or not (request.message.content or "").strip():
        return OperationResult.permanent_error(
            "Message content is required", error_code=ErrorCode.VALIDATION_ERROR
        )

    if check_schedule and request.scheduled_time is not None:
        now = now or datetime.now(timezone.utc)
        if request.scheduled_time < now:
            return OperationResult.permanent_error(
                "Scheduled time cannot be in the past",
                error_code=ErrorCode.VALIDATION_ERROR,
            )

    return validate_contact(request.recipient.channel, request.recipient.contact)
