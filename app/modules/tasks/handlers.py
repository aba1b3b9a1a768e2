"""Task work.

``TaskHandler`` is whatever executes a task attempt; it returns normally on
success and raises on failure. ``SimulatedTaskHandler`` stands in for real
work and fails according to the failure destiny recorded on the task.
"""

from dataclasses import dataclass
from typing import Protocol, Tuple, Type

from infrastructure.logging import get_module_logger
from modules.tasks.destiny import fnv1a_64
from modules.tasks.errors import NonRetryableError, ProcessingFailure, RetryableError
from modules.tasks.models import TaskRecord

logger = get_module_logger()

FORCE_FAIL_RETRY_MARKER = "force-fail-retry"


class TaskHandler(Protocol):
    def handle(self, task: TaskRecord) -> None: ...


@dataclass(frozen=True)
class SimulatedError:
    error_type: str
    retryable: bool

    @property
    def exception_class(self) -> Type[ProcessingFailure]:
        return RetryableError if self.retryable else NonRetryableError


SIMULATED_ERRORS: Tuple[SimulatedError, ...] = (
    SimulatedError("NetworkTimeoutError", True),
    SimulatedError("ServiceUnavailableError", True),
    SimulatedError("ProcessingError", True),
    SimulatedError("ValidationError", False),
    SimulatedError("ResourceNotFoundError", False),
)


def select_simulated_error(task_id: str) -> SimulatedError:
    """Pick the error a destined-to-fail task raises on every attempt."""
    if FORCE_FAIL_RETRY_MARKER in task_id:
        return SIMULATED_ERRORS[1]
    return SIMULATED_ERRORS[fnv1a_64(task_id) % len(SIMULATED_ERRORS)]


class SimulatedTaskHandler:
    """Succeeds unless the task was destined to fail at creation."""

    def handle(self, task: TaskRecord) -> None:
        if not task.failure_destiny:
            logger.debug("simulated_task_succeeded", task_id=task.task_id)
            return

        selected = select_simulated_error(task.task_id)
        logger.warning(
            "simulated_task_failure",
            task_id=task.task_id,
            error_type=selected.error_type,
            retryable=selected.retryable,
        )
        raise selected.exception_class(
            f"Simulated {selected.error_type} during task processing",
            task_id=task.task_id,
            error_type=selected.error_type,
        )
