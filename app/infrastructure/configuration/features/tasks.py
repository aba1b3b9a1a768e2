"""Task processing feature settings."""

from pydantic import Field, field_validator

from infrastructure.configuration.base import FeatureSettings


class TasksFeatureSettings(FeatureSettings):
    """Task store, validation limits and fault injection configuration.

    Environment Variables:
        TASK_STORE_BACKEND: 'memory' or 'dynamodb' (default: memory)
        TASK_TABLE_NAME: DynamoDB table for task records
        TASK_TTL_DAYS: Days before a task record expires (default: 30)
        FAILURE_RATE: Share of tasks destined to fail, between 0 and 1 (default: 0.3)
        MAX_TASK_ID_LENGTH: Longest accepted task id (default: 255)
        MAX_PAYLOAD_SIZE: Largest accepted serialized payload in bytes (default: 256 KiB)
        DLQ_ANALYTICS_WINDOW_MS: Window for dead-letter analytics (default: 1h)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        threshold = settings.tasks.failure_threshold_per_mille
        ```
    """

    TASK_STORE_BACKEND: str = Field(default="memory", alias="TASK_STORE_BACKEND")
    TASK_TABLE_NAME: str = Field(default="tasks", alias="TASK_TABLE_NAME")
    TASK_TTL_DAYS: int = Field(default=30, alias="TASK_TTL_DAYS", gt=0)
    FAILURE_RATE: float = Field(default=0.3, alias="FAILURE_RATE")
    MAX_TASK_ID_LENGTH: int = Field(default=255, alias="MAX_TASK_ID_LENGTH", gt=0)
    MAX_PAYLOAD_SIZE: int = Field(default=256 * 1024, alias="MAX_PAYLOAD_SIZE", gt=0)
    DLQ_ANALYTICS_WINDOW_MS: int = Field(
        default=3_600_000, alias="DLQ_ANALYTICS_WINDOW_MS", gt=0
    )

    @field_validator("FAILURE_RATE")
    @classmethod
    def validate_failure_rate(cls, v: float) -> float:
        """Reject rates outside [0, 1]."""
        if not 0 <= v <= 1:
            raise ValueError("FAILURE_RATE must be between 0 and 1")
        return v

    @property
    def failure_threshold_per_mille(self) -> int:
        """Failure rate expressed as an integer threshold out of 1000."""
        return round(self.FAILURE_RATE * 1000)

    @property
    def ttl_seconds(self) -> int:
        """Task record time-to-live in seconds."""
        return self.TASK_TTL_DAYS * 24 * 60 * 60
