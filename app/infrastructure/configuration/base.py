"""Shared base classes for settings modules.

Every settings group loads from the process environment and an optional
``.env`` file, with case-sensitive variable names. Unknown variables are
ignored so that one ``.env`` file can serve every group.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

_SETTINGS_CONFIG = SettingsConfigDict(
    env_file=".env",
    case_sensitive=True,
    extra="ignore",
    populate_by_name=True,
)


class IntegrationSettings(BaseSettings):
    """Base class for external service settings (AWS)."""

    model_config = _SETTINGS_CONFIG


class FeatureSettings(BaseSettings):
    """Base class for feature module settings (tasks)."""

    model_config = _SETTINGS_CONFIG


class InfrastructureSettings(BaseSettings):
    """Base class for core behaviour settings.

    Covers retry timing, idempotency records and the task queue.
    """

    model_config = _SETTINGS_CONFIG
