"""Task pipeline configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from infrastructure.configuration.features import TasksFeatureSettings
from infrastructure.configuration.infrastructure import (
    IdempotencySettings,
    QueueSettings,
    RetrySettings,
)
from infrastructure.configuration.integrations import AwsSettings


class Settings(BaseSettings):
    """Task pipeline configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object:

    - **Integrations**: AWS region and endpoint
    - **Features**: task store, validation limits, fault injection
    - **Infrastructure**: retry timing, idempotency records, queues

    Environment Variables:
        PREFIX: Environment prefix for non-production deployments
        STAGE: Deployment stage recorded on dead-letter entries
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        region = settings.aws.AWS_REGION
        config = settings.retry.to_config()

        if settings.is_production:
            ...
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    STAGE: str = "dev"
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    aws: AwsSettings
    tasks: TasksFeatureSettings
    retry: RetrySettings
    idempotency: IdempotencySettings
    queue: QueueSettings

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
            "aws": AwsSettings,
            "tasks": TasksFeatureSettings,
            "retry": RetrySettings,
            "idempotency": IdempotencySettings,
            "queue": QueueSettings,
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


settings = Settings()
