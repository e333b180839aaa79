"""Channel and gateway settings."""

from typing import Optional

from pydantic import Field

from notifier.configuration.base import NotifierSettings


class ChannelSettings(NotifierSettings):
    """Delivery channel configuration.

    Credentials for real transports are read here and injected into the
    transports; the channels themselves never read the environment.

    Environment Variables:
        GATEWAY_TIMEOUT_SECONDS: Timeout applied to every gateway call
        SMS_MAX_LENGTH: Maximum processed SMS length (default: 160)
        SMS_SENDER_ID: Alphanumeric sender id (max 11 characters)
        PUSH_MAX_PAYLOAD_BYTES: Maximum push payload size (default: 4096)
        PUSH_PAYLOAD_OVERHEAD_BYTES: Fixed payload overhead estimate (default: 200)
        EMAIL_SENDER: From address for outgoing email
        SPAM_FILTER_ENABLED: Reject content matching spam keywords
        SLACK_BOT_TOKEN: Token used by the Slack transport
        WEBHOOK_SIGNING_SECRET: Secret sent with webhook deliveries
    """

    gateway_timeout_seconds: float = Field(
        default=10.0,
        alias="GATEWAY_TIMEOUT_SECONDS",
        description="Timeout for a single gateway call (seconds)",
    )
    sms_max_length: int = Field(
        default=160,
        alias="SMS_MAX_LENGTH",
        description="Maximum length of a processed SMS body",
    )
    sms_sender_id: Optional[str] = Field(
        default=None,
        alias="SMS_SENDER_ID",
        description="Default SMS sender id",
    )
    push_max_payload_bytes: int = Field(
        default=4096,
        alias="PUSH_MAX_PAYLOAD_BYTES",
        description="Maximum push payload size (bytes)",
    )
    push_payload_overhead_bytes: int = Field(
        default=200,
        alias="PUSH_PAYLOAD_OVERHEAD_BYTES",
        description="Estimated fixed metadata overhead of a push payload (bytes)",
    )
    email_sender: str = Field(
        default="noreply@example.com",
        alias="EMAIL_SENDER",
        description="From address for outgoing email",
    )
    spam_filter_enabled: bool = Field(
        default=True,
        alias="SPAM_FILTER_ENABLED",
        description="Fail processing for content matching spam keywords",
    )
    slack_bot_token: Optional[str] = Field(
        default=None,
        alias="SLACK_BOT_TOKEN",
        description="Slack bot token for the Slack transport",
    )
    webhook_signing_secret: Optional[str] = Field(
        default=None,
        alias="WEBHOOK_SIGNING_SECRET",
        description="Shared secret sent with webhook deliveries",
    )
