"""Notifier configuration module - public API.

Exports:
    get_settings: Cached Settings provider (single instance per process)
    Settings: Main settings class (for testing/overrides)
    ChannelSettings, RateLimitSettings, RetrySettings, OrchestratorSettings:
        Settings sections

Example:
    ```python
    from notifier.configuration import get_settings

    settings = get_settings()
    timeout = settings.channels.gateway_timeout_seconds
    ```
"""

from functools import lru_cache

from notifier.configuration.channels import ChannelSettings
from notifier.configuration.orchestrator import OrchestratorSettings
from notifier.configuration.rate_limit import RateLimitSettings
from notifier.configuration.retry import RetrySettings
from notifier.configuration.settings import Settings


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings singleton.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


__all__ = [
    "get_settings",
    "Settings",
    "ChannelSettings",
    "OrchestratorSettings",
    "RateLimitSettings",
    "RetrySettings",
]
