"""Configuration package - public API.

Settings are pydantic-settings classes grouped by concern and aggregated by
``Settings``. Application code should obtain them through
``infrastructure.services.get_settings``.

Exports:
    settings: Settings instance built at import time (used by logging setup)
    Settings: Main settings class (for testing/overrides)
    RetrySettings: Retry settings class (for testing)
"""

from infrastructure.configuration.infrastructure.retry import RetrySettings
from infrastructure.configuration.settings import Settings, settings

__all__ = ["Settings", "RetrySettings", "settings"]
