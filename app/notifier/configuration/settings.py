"""Notifier configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from notifier.configuration.channels import ChannelSettings
from notifier.configuration.orchestrator import OrchestratorSettings
from notifier.configuration.rate_limit import RateLimitSettings
from notifier.configuration.retry import RetrySettings


class Settings(BaseSettings):
    """Notifier configuration settings - main aggregator.

    Aggregates the per-concern settings sections into a single object:

    - **channels**: gateway timeouts, payload limits, transport credentials
    - **rate_limit**: per-recipient admission control
    - **retry**: retry attempts and backoff
    - **orchestrator**: system id and delivery confirmation channel

    Environment Variables:
        PREFIX: Environment prefix for non-production deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from notifier.configuration import get_settings

        settings = get_settings()

        max_attempts = settings.retry.max_attempts
        if settings.is_production:
            ...
        ```
    """

    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    channels: ChannelSettings
    rate_limit: RateLimitSettings
    retry: RetrySettings
    orchestrator: OrchestratorSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "channels": ChannelSettings,
            "rate_limit": RateLimitSettings,
            "retry": RetrySettings,
            "orchestrator": OrchestratorSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
