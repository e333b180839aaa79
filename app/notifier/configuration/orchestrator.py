"""Orchestrator settings."""

from pydantic import Field

from notifier.configuration.base import NotifierSettings


class OrchestratorSettings(NotifierSettings):
    """Orchestrator-level configuration.

    Environment Variables:
        NOTIFIER_SYSTEM_ID: Identifier attached to delivery metadata
        CONFIRMATION_CHANNEL: Channel used for delivery confirmations (default: email)
    """

    system_id: str = Field(
        default="notifier",
        alias="NOTIFIER_SYSTEM_ID",
        description="System identifier recorded in delivery metadata",
    )
    confirmation_channel: str = Field(
        default="email",
        alias="CONFIRMATION_CHANNEL",
        description="Channel used to send delivery confirmations to requesters",
    )
