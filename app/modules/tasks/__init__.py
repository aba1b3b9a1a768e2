"""Task processing module.

Tasks are submitted through TaskSubmissionService, run by
TaskAttemptProcessor as queue deliveries arrive, and, once their retries
are exhausted, recorded as DLQ entries and aggregated by
DLQAnalyticsAggregator. TaskLifecycle owns the task records throughout.

Services are wired in ``infrastructure.services``:

    from infrastructure.services import get_task_submission_service

    result = get_task_submission_service().submit_task("order-42", {"n": 1})
"""

from modules.tasks.errors import (
    ConcurrentModificationError,
    MissingTransitionFieldError,
    NonRetryableError,
    RetryableError,
    RetryCountRegressionError,
    StoreOperationError,
    TaskAlreadyExistsError,
    TaskError,
    TaskNotFoundError,
    TaskValidationError,
)
from modules.tasks.lifecycle import TaskLifecycle
from modules.tasks.models import TaskMessage, TaskRecord, TaskStatus
from modules.tasks.processing import BatchResult, TaskAttemptProcessor
from modules.tasks.submission import (
    Created,
    Duplicate,
    IdempotencyConflict,
    IdempotentReplay,
    TaskSubmissionService,
)

__all__ = [
    "BatchResult",
    "ConcurrentModificationError",
    "Created",
    "Duplicate",
    "IdempotencyConflict",
    "IdempotentReplay",
    "MissingTransitionFieldError",
    "NonRetryableError",
    "RetryableError",
    "RetryCountRegressionError",
    "StoreOperationError",
    "TaskAlreadyExistsError",
    "TaskAttemptProcessor",
    "TaskError",
    "TaskLifecycle",
    "TaskMessage",
    "TaskNotFoundError",
    "TaskRecord",
    "TaskStatus",
    "TaskSubmissionService",
    "TaskValidationError",
]
