"""Task records and queue messages.

``TaskRecord`` is the durable state of one unit of work and is owned by
``TaskLifecycle``; nothing else writes it. ``TaskMessage`` is the body sent
through the task queue.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field, model_validator

from infrastructure.models import InfrastructureModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Task states.

    PENDING -> PROCESSING -> COMPLETED | FAILED, FAILED -> DEAD_LETTER.
    PROCESSING -> PENDING re-queues a task for another attempt.
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    DEAD_LETTER = "DEAD_LETTER"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.DEAD_LETTER)


class TaskRecord(InfrastructureModel):
    """Durable record of one task.

    Attributes:
        task_id: Caller-supplied unique id
        status: Current state
        payload: Opaque task data, immutable after creation
        retry_count: Retries so far, never decreasing
        failure_destiny: Whether every attempt is destined to fail
        created_at: Creation time
        updated_at: Time of the last transition, never before created_at
        completed_at: Set once, on entering COMPLETED
        failed_at: Set once, on entering FAILED or DEAD_LETTER
        last_error: Last recorded failure message
    """

    task_id: str
    status: TaskStatus = TaskStatus.PENDING
    payload: Dict[str, Any] = Field(default_factory=dict)
    retry_count: int = Field(default=0, ge=0)
    failure_destiny: bool = False
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @model_validator(mode="after")
    def check_timestamps(self) -> "TaskRecord":
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not be earlier than created_at")
        return self

    def to_item(self) -> Dict[str, Any]:
        """JSON-compatible form stored in the durable store."""
        return self.model_dump(mode="json")


class TaskMessage(InfrastructureModel):
    """Body of a task queue message."""

    task_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    retry_count: int = Field(default=0, ge=0)
    last_error: Optional[str] = None

    def to_body(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_body(cls, body: str) -> "TaskMessage":
        return cls.model_validate_json(body)
