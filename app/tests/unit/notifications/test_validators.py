"""Unit tests for recipient and request validation."""

from datetime import datetime, timedelta, timezone

import pytest

from notifier.notifications.models import Channel, NotificationRequest
from notifier.notifications.validators import (
    is_valid_email,
    is_valid_phone,
    is_valid_push_token,
    is_valid_slack_target,
    is_valid_webhook_url,
    validate_contact,
    validate_request,
)


@pytest.mark.unit
class TestFormatPredicates:
    """Tests for the per-channel format rules."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("user@example.com", True),
            ("first.last+tag@mail.example.org", True),
            ("user@localhost", False),
            ("not-an-email", False),
            ("", False),
            (None, False),
        ],
    )
    def test_email(self, value, expected):
        assert is_valid_email(value) is expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("+15551234567", True),
            ("15551234567", True),
            ("+0123456", False),
            ("notanumber", False),
            ("+1234567890123456", False),
            ("+1", False),
        ],
    )
    def test_phone(self, value, expected):
        assert is_valid_phone(value) is expected

    def test_push_token_length(self):
        assert is_valid_push_token("0123456789") is True
        assert is_valid_push_token("short") is False
        assert is_valid_push_token("         x") is False

    def test_webhook_url(self):
        assert is_valid_webhook_url("https://hooks.example.com") is True
        assert is_valid_webhook_url("http://hooks.example.com") is True
        assert is_valid_webhook_url("ftp://hooks.example.com") is False

    def test_slack_target(self):
        assert is_valid_slack_target("#alerts") is True
        assert is_valid_slack_target("@ada") is True
        assert is_valid_slack_target("#") is False
        assert is_valid_slack_target("alerts") is False


@pytest.mark.unit
class TestValidateContact:
    """Tests for validate_contact()."""

    def test_valid_contact(self):
        assert validate_contact(Channel.SMS, "+15551234567").is_success

    def test_invalid_contact_names_the_channel(self):
        result = validate_contact(Channel.SMS, "notanumber")

        assert not result.is_success
        assert result.error_code == "VALIDATION_ERROR"
        assert "sms" in result.message
        assert "notanumber" in result.message


@pytest.mark.unit
class TestValidateRequest:
    """Tests for validate_request()."""

    def test_valid_request(self, request_factory):
        assert validate_request(request_factory()).is_success

    def test_missing_request(self):
        result = validate_request(None)
        assert result.message == "Request is required"

    def test_missing_recipient(self, message_factory):
        result = validate_request(NotificationRequest(message=message_factory()))
        assert result.message == "Recipient is required"

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_missing_content(self, request_factory, content):
        result = validate_request(request_factory(content=content))
        assert result.message == "Message content is required"

    def test_past_scheduled_time(self, request_factory):
        past = datetime.now(timezone.utc) - timedelta(minutes=5)

        result = validate_request(request_factory(scheduled_time=past))

        assert not result.is_success
        assert "past" in result.message

    def test_past_scheduled_time_allowed_for_deferred_runs(self, request_factory):
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        assert validate_request(request_factory(scheduled_time=past), check_schedule=False).is_success

    def test_future_scheduled_time(self, request_factory):
        future = datetime.now(timezone.utc) + timedelta(minutes=5)
        assert validate_request(request_factory(scheduled_time=future)).is_success

    def test_content_checked_before_contact(self, request_factory):
        result = validate_request(
            request_factory(channel=Channel.SMS, contact="notanumber", content="")
        )
        assert result.message == "Message content is required"

    def test_invalid_contact(self, request_factory):
        result = validate_request(request_factory(channel=Channel.PUSH, contact="short"))

        assert not result.is_success
        assert "device token" in result.message
