"""Unit tests for channel capability sets."""

import pytest

from notifier.notifications.channels import (
    EmailChannel,
    EmailGateway,
    InMemoryTransport,
    PushChannel,
    PushGateway,
    SlackChannel,
    SlackGateway,
    SMSChannel,
    SMSGateway,
    WebhookChannel,
    WebhookGateway,
)
from notifier.notifications.models import Channel, NotificationOptions, NotificationPriority
from notifier.notifications.processing import MessageProcessor


def options(**knobs) -> NotificationOptions:
    return NotificationOptions(channel_options=knobs)


@pytest.fixture
def transport():
    return InMemoryTransport("test")


@pytest.mark.unit
class TestChannelConstruction:
    """Tests for channel and gateway pairing."""

    def test_rejects_gateway_of_another_channel(self, transport):
        with pytest.raises(ValueError):
            EmailChannel(SMSGateway(transport))

    def test_push_processor_follows_gateway_limits(self, transport):
        channel = PushChannel(PushGateway(transport, max_payload_bytes=1024, overhead_bytes=300))

        assert channel.processor.max_payload_bytes == 1024
        assert channel.processor.overhead_bytes == 300

    def test_endpoint_comes_from_gateway(self, transport):
        assert SMSChannel(SMSGateway(transport)).endpoint == "sms://sms-gateway"


@pytest.mark.unit
class TestOptionValidation:
    """Tests for validate_options() on each channel."""

    @pytest.mark.parametrize(
        "knobs,valid",
        [
            ({}, True),
            ({"reply_to": "support@example.com"}, True),
            ({"reply_to": "nope"}, False),
            ({"cc_recipients": ["a@example.com", "b@example.com"]}, True),
            ({"cc_recipients": ["a@example.com", "bad"]}, False),
            ({"bcc_recipients": "a@example.com"}, False),
            ({"html_content": 5}, False),
            ({"attachments": ["f"] * 10}, True),
            ({"attachments": ["f"] * 11}, False),
            ({"template_variables": ["x"]}, False),
        ],
    )
    def test_email(self, transport, knobs, valid):
        channel = EmailChannel(EmailGateway(transport))
        assert channel.validate_options(options(**knobs)).is_success is valid

    @pytest.mark.parametrize(
        "knobs,valid",
        [
            ({"sender_id": "ACME"}, True),
            ({"sender_id": "ACME-CORP"}, False),
            ({"sender_id": "A" * 12}, False),
            ({"unicode_enabled": True, "flash_sms": False}, True),
            ({"unicode_enabled": "yes"}, False),
            ({"validity_period_hours": 72}, True),
            ({"validity_period_hours": 0}, False),
            ({"validity_period_hours": 73}, False),
            ({"validity_period_hours": True}, False),
        ],
    )
    def test_sms(self, transport, knobs, valid):
        channel = SMSChannel(SMSGateway(transport))
        assert channel.validate_options(options(**knobs)).is_success is valid

    @pytest.mark.parametrize(
        "knobs,valid",
        [
            ({"badge_count": 3, "sound": "ping.caf"}, True),
            ({"badge_count": -1}, False),
            ({"badge_count": "3"}, False),
            ({"sound": "s" * 51}, False),
            ({"custom_data": {str(i): i for i in range(20)}}, True),
            ({"custom_data": {str(i): i for i in range(21)}}, False),
        ],
    )
    def test_push(self, transport, knobs, valid):
        channel = PushChannel(PushGateway(transport))
        assert channel.validate_options(options(**knobs)).is_success is valid

    @pytest.mark.parametrize(
        "knobs,valid",
        [
            ({"headers": {"X-Key": "v"}, "method": "put"}, True),
            ({"headers": {"X-Key": 1}}, False),
            ({"method": "DELETE"}, False),
        ],
    )
    def test_webhook(self, transport, knobs, valid):
        channel = WebhookChannel(WebhookGateway(transport))
        assert channel.validate_options(options(**knobs)).is_success is valid

    @pytest.mark.parametrize(
        "knobs,valid",
        [
            ({"username": "bot", "icon_emoji": ":bell:", "thread_ts": "123.456"}, True),
            ({"icon_emoji": "bell"}, False),
            ({"thread_ts": 123.456}, False),
        ],
    )
    def test_slack(self, transport, knobs, valid):
        channel = SlackChannel(SlackGateway(transport))
        assert channel.validate_options(options(**knobs)).is_success is valid


@pytest.mark.unit
class TestPrepare:
    """Tests for prepare() and transport options."""

    def test_maps_priority_and_copies_processing_output(self, transport, request_factory):
        channel = SMSChannel(SMSGateway(transport), sender_id="ACME")
        request = request_factory(
            channel=Channel.SMS,
            priority=NotificationPriority.CRITICAL,
            options={"flash_sms": True},
        )

        prepared = channel.prepare(request, channel.process(request))

        assert prepared.priority == "high"
        assert prepared.recipient == "+15551234567"
        assert prepared.options == {"flash_sms": True, "sender_id": "ACME"}
        assert prepared.metadata["encoding"] == "GSM-7"

    @pytest.mark.parametrize(
        "priority,expected",
        [
            (NotificationPriority.URGENT, "high"),
            (NotificationPriority.HIGH, "normal"),
            (NotificationPriority.NORMAL, "low"),
            (NotificationPriority.LOW, "low"),
        ],
    )
    def test_priority_map(self, transport, request_factory, priority, expected):
        channel = WebhookChannel(WebhookGateway(transport))
        request = request_factory(channel=Channel.WEBHOOK, priority=priority)

        assert channel.prepare(request, channel.process(request)).priority == expected

    def test_email_defaults_subject(self, transport, request_factory):
        channel = EmailChannel(EmailGateway(transport))
        request = request_factory(subject=None, options={"reply_to": "help@example.com"})

        prepared = channel.prepare(request, channel.process(request))

        assert prepared.subject == "Notification"
        assert prepared.options == {"reply_to": "help@example.com"}
        assert "html_body" in prepared.assets

    def test_webhook_defaults_method(self, transport, request_factory):
        channel = WebhookChannel(WebhookGateway(transport))
        request = request_factory(channel=Channel.WEBHOOK)

        assert channel.prepare(request, channel.process(request)).options == {"method": "POST"}

    @pytest.mark.asyncio
    async def test_deliver_sends_through_gateway(self, transport, request_factory):
        channel = SlackChannel(SlackGateway(transport))
        request = request_factory(channel=Channel.SLACK, options={"username": "bot"})

        result = await channel.deliver(request, channel.process(request))

        assert result.is_success
        assert transport.sent[0].options == {"username": "bot"}


@pytest.mark.unit
class TestChannelHealth:
    """Tests for health_check()."""

    @pytest.mark.asyncio
    async def test_healthy(self, transport):
        result = await EmailChannel(EmailGateway(transport)).health_check()

        assert result.is_success
        assert result.data["endpoint"] == "smtp://mail-gateway"
        assert result.data["circuit"]["state"] == "closed"

    @pytest.mark.asyncio
    async def test_unreachable_gateway(self):
        channel = EmailChannel(EmailGateway(InMemoryTransport(healthy=False)))

        result = await channel.health_check()

        assert not result.is_success
        assert result.error_code == "CONNECTION_ERROR"

    @pytest.mark.asyncio
    async def test_unhealthy_processor(self, transport, monkeypatch):
        processor = MessageProcessor()
        monkeypatch.setattr(processor, "is_healthy", lambda: False)
        channel = SlackChannel(SlackGateway(transport), processor)

        result = await channel.health_check()

        assert result.error_code == "PROCESSOR_UNHEALTHY"
