"""Errors for the tasks module."""

from typing import Any, Optional


class TaskError(Exception):
    """Base class for task lifecycle and submission errors.

    Attributes:
        task_id: Task the error refers to, if known
    """

    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id


class TaskAlreadyExistsError(TaskError):
    """A task with the same id was already created."""


class TaskNotFoundError(TaskError):
    """A task was read or transitioned before it was created."""


class MissingTransitionFieldError(TaskError):
    """A transition did not supply a field its target status requires."""


class RetryCountRegressionError(TaskError):
    """A transition would lower the task's retry count."""


class ConcurrentModificationError(TaskError):
    """The task record kept changing underneath an update."""


class StoreOperationError(TaskError):
    """Raised when the task store reports an error.

    Attributes:
        response: the OperationResult returned by the store
    """

    def __init__(
        self, message: str, task_id: Optional[str] = None, response: Any = None
    ):
        super().__init__(message, task_id=task_id)
        self.response = response


class TaskValidationError(TaskError):
    """A submission has an invalid task id or payload."""


class ProcessingFailure(Exception):
    """Raised by task work when an attempt fails.

    Attributes:
        retryable: Whether another attempt may succeed
        task_id: Task the attempt belongs to
        error_type: Short name of the failure, used for strategy selection
    """

    retryable: bool = True

    def __init__(
        self,
        message: str,
        task_id: Optional[str] = None,
        error_type: Optional[str] = None,
    ):
        super().__init__(message)
        self.task_id = task_id
        self.error_type = error_type or type(self).__name__


class RetryableError(ProcessingFailure):
    """A failure another attempt may recover from."""

    retryable = True


class NonRetryableError(ProcessingFailure):
    """A failure no further attempt can fix."""

    retryable = False
