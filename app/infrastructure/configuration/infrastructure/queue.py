"""Task queue infrastructure settings."""

from typing import Optional

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class QueueSettings(InfrastructureSettings):
    """Task queue and dead-letter queue configuration.

    Environment Variables:
        QUEUE_BACKEND: 'memory' (development, tests) or 'sqs' (default: memory)
        TASK_QUEUE_URL: SQS URL of the task queue
        TASK_DLQ_URL: SQS URL of the dead-letter queue
        QUEUE_DEFAULT_VISIBILITY_SECONDS: Visibility window assumed when the
            queue cannot be asked for its own (default: 180s)
        QUEUE_MAX_VISIBILITY_SECONDS: Largest visibility timeout the queue
            accepts (default: 43200s = 12h, the SQS limit)
        QUEUE_MAX_RECEIVE_COUNT: Deliveries before the queue redirects a
            message to the DLQ (in-memory backend only; SQS uses its redrive policy)
        QUEUE_RECEIVE_BATCH_SIZE: Messages per receive call (default: 10)
        QUEUE_WAIT_TIME_SECONDS: Long-poll wait per receive call (default: 10s)
    """

    QUEUE_BACKEND: str = Field(default="memory", alias="QUEUE_BACKEND")
    TASK_QUEUE_URL: Optional[str] = Field(default=None, alias="TASK_QUEUE_URL")
    TASK_DLQ_URL: Optional[str] = Field(default=None, alias="TASK_DLQ_URL")
    DEFAULT_VISIBILITY_SECONDS: int = Field(
        default=180, alias="QUEUE_DEFAULT_VISIBILITY_SECONDS", gt=0
    )
    MAX_VISIBILITY_SECONDS: int = Field(
        default=43200, alias="QUEUE_MAX_VISIBILITY_SECONDS", gt=0, le=43200
    )
    MAX_RECEIVE_COUNT: int = Field(default=3, alias="QUEUE_MAX_RECEIVE_COUNT", ge=1)
    RECEIVE_BATCH_SIZE: int = Field(
        default=10, alias="QUEUE_RECEIVE_BATCH_SIZE", ge=1, le=10
    )
    WAIT_TIME_SECONDS: int = Field(
        default=10, alias="QUEUE_WAIT_TIME_SECONDS", ge=0, le=20
    )
