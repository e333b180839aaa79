"""Shared base classes for settings modules."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class NotifierSettings(BaseSettings):
    """Base class for notifier settings sections.

    All settings sections inherit from this class to share the same
    loading behavior (env file, case sensitivity, unknown keys ignored).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
