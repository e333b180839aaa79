"""Unit tests for notifier configuration.

Tests cover:
- Section defaults
- Environment variable loading through field aliases
- Settings aggregation and overrides
- get_settings() caching
"""

import pytest

from notifier.configuration import (
    ChannelSettings,
    OrchestratorSettings,
    RateLimitSettings,
    RetrySettings,
    Settings,
    get_settings,
)


@pytest.mark.unit
class TestSettingsSections:
    """Tests for individual settings sections."""

    def test_channel_defaults(self):
        settings = ChannelSettings()

        assert settings.gateway_timeout_seconds == 10.0
        assert settings.sms_max_length == 160
        assert settings.push_max_payload_bytes == 4096
        assert settings.push_payload_overhead_bytes == 200
        assert settings.spam_filter_enabled is True

    def test_retry_defaults(self):
        settings = RetrySettings()

        assert settings.max_attempts == 3
        assert settings.base_delay_seconds == 2.0
        assert settings.max_delay_seconds == 60.0
        assert settings.jitter is False

    def test_rate_limit_from_environment(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "5")
        monkeypatch.setenv("RATE_LIMIT_WINDOW_SECONDS", "30")

        settings = RateLimitSettings()

        assert settings.max_requests == 5
        assert settings.window_seconds == 30.0

    def test_channel_credentials_from_environment(self, monkeypatch):
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-test")
        monkeypatch.setenv("SPAM_FILTER_ENABLED", "false")

        settings = ChannelSettings()

        assert settings.slack_bot_token == "xoxb-test"
        assert settings.spam_filter_enabled is False

    def test_orchestrator_from_environment(self, monkeypatch):
        monkeypatch.setenv("NOTIFIER_SYSTEM_ID", "alerts")
        monkeypatch.setenv("CONFIRMATION_CHANNEL", "slack")

        settings = OrchestratorSettings()

        assert settings.system_id == "alerts"
        assert settings.confirmation_channel == "slack"


@pytest.mark.unit
class TestSettings:
    """Tests for the Settings aggregator."""

    def test_builds_all_sections(self):
        settings = Settings()

        assert isinstance(settings.channels, ChannelSettings)
        assert isinstance(settings.rate_limit, RateLimitSettings)
        assert isinstance(settings.retry, RetrySettings)
        assert isinstance(settings.orchestrator, OrchestratorSettings)

    def test_section_override(self):
        settings = Settings(retry=RetrySettings(RETRY_MAX_ATTEMPTS=7))
        assert settings.retry.max_attempts == 7

    def test_is_production_follows_prefix(self, monkeypatch):
        monkeypatch.setenv("PREFIX", "dev-")
        assert Settings().is_production is False

        monkeypatch.setenv("PREFIX", "")
        assert Settings().is_production is True

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
