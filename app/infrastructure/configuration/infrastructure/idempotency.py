"""Idempotency infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class IdempotencySettings(InfrastructureSettings):
    """Idempotency record configuration for deduplicating submissions.

    Environment Variables:
        IDEMPOTENCY_TTL_SECONDS: How long a cached submission response is honored (default: 3600s = 1h)
        IDEMPOTENCY_BACKEND: Record store - 'memory' or 'dynamodb' (default: memory)
        IDEMPOTENCY_TABLE_NAME: DynamoDB table for idempotency records

    Example:
        ```python
        from infrastructure.services import get_settings

        ttl = get_settings().idempotency.IDEMPOTENCY_TTL_SECONDS
        ```
    """

    IDEMPOTENCY_TTL_SECONDS: int = Field(
        default=3600, alias="IDEMPOTENCY_TTL_SECONDS", gt=0
    )
    IDEMPOTENCY_BACKEND: str = Field(default="memory", alias="IDEMPOTENCY_BACKEND")
    IDEMPOTENCY_TABLE_NAME: str = Field(
        default="task-idempotency", alias="IDEMPOTENCY_TABLE_NAME"
    )
