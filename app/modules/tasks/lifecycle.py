"""Task lifecycle state machine.

TaskLifecycle owns task records in the durable store. Creation is a
conditional create, so at most one submission per task id wins. Every
transition is a conditional update against the current record:

- a transition on a task that was never created raises TaskNotFoundError
- ``retry_count`` is only changed by an explicit value and may never go down
- COMPLETED requires ``completed_at``; FAILED and DEAD_LETTER require
  ``last_error`` and ``failed_at``
- ``completed_at`` and ``failed_at`` keep the first value written

The lifecycle does not police the state graph; callers decide which
transitions to attempt.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from infrastructure.logging import get_module_logger
from infrastructure.observability import MetricsSink, safe_emit
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus
from infrastructure.persistence.store import DurableStore, Item
from modules.tasks.errors import (
    ConcurrentModificationError,
    MissingTransitionFieldError,
    RetryCountRegressionError,
    StoreOperationError,
    TaskAlreadyExistsError,
    TaskNotFoundError,
)
from modules.tasks.models import TaskRecord, TaskStatus, utc_now

logger = get_module_logger()
_default_logger = logger


class TaskLifecycle:
    """Create, read and transition task records.

    Args:
        store: Durable store holding task records
        ttl_seconds: Time-to-live for task records (None keeps them forever)
        clock: Returns the current UTC time
        metrics: Metrics sink
        logger: Optional bound logger
    """

    def __init__(
        self,
        store: DurableStore,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
        metrics: Optional[MetricsSink] = None,
        logger: Optional[Any] = None,
    ) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._metrics = metrics
        self._log = (logger or _default_logger).bind(component="task_lifecycle")

    def create(
        self,
        task_id: str,
        payload: Dict[str, Any],
        failure_destiny: bool = False,
    ) -> TaskRecord:
        """Create a PENDING task with ``retry_count = 0``.

        Raises:
            TaskAlreadyExistsError: If the task id is already taken.
            StoreOperationError: If the store fails.
        """
        now = self._clock()
        record = TaskRecord(
            task_id=task_id,
            status=TaskStatus.PENDING,
            payload=payload,
            retry_count=0,
            failure_destiny=failure_destiny,
            created_at=now,
            updated_at=now,
        )

        result = self._store.conditional_create(
            task_id, record.to_item(), ttl_seconds=self.ttl_seconds
        )
        if result.status == OperationStatus.ALREADY_EXISTS:
            self._log.info("task_duplicate_submission", task_id=task_id)
            raise TaskAlreadyExistsError(f"Task {task_id} already exists", task_id=task_id)
        self._raise_for_result(result, task_id, "create")

        self._log.info(
            "task_record_created",
            task_id=task_id,
            failure_destiny=failure_destiny,
        )
        safe_emit(self._metrics, "TaskCreated", 1)
        return record

    def get(self, task_id: str) -> TaskRecord:
        """Read a task record.

        Raises:
            TaskNotFoundError: If the task does not exist.
            StoreOperationError: If the store fails or holds an unreadable record.
        """
        result = self._store.read(task_id)
        self._raise_for_result(result, task_id, "read")
        return self._parse(result.data, task_id)

    def transition(
        self,
        task_id: str,
        status: TaskStatus,
        *,
        retry_count: Optional[int] = None,
        last_error: Optional[str] = None,
        completed_at: Optional[datetime] = None,
        failed_at: Optional[datetime] = None,
    ) -> TaskRecord:
        """Move a task to ``status`` and return the updated record.

        Args:
            task_id: Task to update
            status: Target status
            retry_count: New retry count; must not be lower than the current one
            last_error: Failure message (required for FAILED and DEAD_LETTER)
            completed_at: Completion time (required for COMPLETED)
            failed_at: Failure time (required for FAILED and DEAD_LETTER)

        Raises:
            MissingTransitionFieldError: If a field required by ``status`` is missing.
            TaskNotFoundError: If the task does not exist.
            RetryCountRegressionError: If ``retry_count`` would decrease.
            ConcurrentModificationError: If concurrent writers kept winning.
            StoreOperationError: If the store fails.
        """
        self._check_required_fields(task_id, status, last_error, completed_at, failed_at)
        if retry_count is not None and retry_count < 0:
            raise RetryCountRegressionError(
                f"retry_count must be non-negative, got {retry_count}", task_id=task_id
            )

        now = self._clock()

        def precondition(current: Item) -> bool:
            if retry_count is None:
                return True
            return retry_count >= int(current.get("retry_count", 0))

        def mutator(current: Item) -> Item:
            record = TaskRecord.model_validate(current)
            changes: Dict[str, Any] = {
                "status": status,
                "updated_at": max(now, record.created_at),
            }
            if retry_count is not None:
                changes["retry_count"] = retry_count
            if last_error is not None:
                changes["last_error"] = last_error
            if completed_at is not None and record.completed_at is None:
                changes["completed_at"] = completed_at
            if failed_at is not None and record.failed_at is None:
                changes["failed_at"] = failed_at
            return record.model_copy(update=changes).to_item()

        try:
            result = self._store.conditional_update(task_id, mutator, precondition)
        except ValidationError as e:
            raise StoreOperationError(
                f"Task {task_id} record is malformed: {e}", task_id=task_id
            ) from e

        if result.status == OperationStatus.PRECONDITION_FAILED:
            if result.error_code == "VERSION_CONFLICT":
                raise ConcurrentModificationError(
                    f"Task {task_id} was modified concurrently", task_id=task_id
                )
            raise RetryCountRegressionError(
                f"Task {task_id} retry_count cannot decrease to {retry_count}",
                task_id=task_id,
            )
        self._raise_for_result(result, task_id, "transition")

        record = self._parse(result.data, task_id)
        self._log.info(
            "task_status_updated",
            task_id=task_id,
            status=status.value,
            retry_count=record.retry_count,
        )
        safe_emit(
            self._metrics, "TaskStatusTransition", 1, tags={"status": status.value}
        )
        return record

    def mark_processing(self, task_id: str, retry_count: int) -> TaskRecord:
        """Start an attempt."""
        return self.transition(task_id, TaskStatus.PROCESSING, retry_count=retry_count)

    def mark_retry_pending(
        self, task_id: str, retry_count: int, last_error: str
    ) -> TaskRecord:
        """Send a task back to PENDING after a failed attempt that will be retried."""
        return self.transition(
            task_id,
            TaskStatus.PENDING,
            retry_count=retry_count,
            last_error=last_error,
        )

    def mark_completed(
        self, task_id: str, retry_count: Optional[int] = None
    ) -> TaskRecord:
        return self.transition(
            task_id,
            TaskStatus.COMPLETED,
            retry_count=retry_count,
            completed_at=self._clock(),
        )

    def mark_failed(
        self, task_id: str, last_error: str, retry_count: Optional[int] = None
    ) -> TaskRecord:
        return self.transition(
            task_id,
            TaskStatus.FAILED,
            retry_count=retry_count,
            last_error=last_error,
            failed_at=self._clock(),
        )

    def mark_dead_letter(
        self, task_id: str, last_error: str, retry_count: Optional[int] = None
    ) -> TaskRecord:
        return self.transition(
            task_id,
            TaskStatus.DEAD_LETTER,
            retry_count=retry_count,
            last_error=last_error,
            failed_at=self._clock(),
        )

    def count_by_status(self) -> Dict[TaskStatus, int]:
        """Count stored tasks in each status.

        Raises:
            StoreOperationError: If the store cannot be scanned.
        """
        result = self._store.scan()
        self._raise_for_result(result, None, "scan")

        counts = {status: 0 for status in TaskStatus}
        for item in result.data or []:
            try:
                counts[TaskStatus(item.get("status"))] += 1
            except ValueError:
                self._log.warning(
                    "task_status_unrecognized",
                    task_id=item.get("task_id"),
                    status=item.get("status"),
                )
        return counts

    def _check_required_fields(
        self,
        task_id: str,
        status: TaskStatus,
        last_error: Optional[str],
        completed_at: Optional[datetime],
        failed_at: Optional[datetime],
    ) -> None:
        missing = []
        if status == TaskStatus.COMPLETED and completed_at is None:
            missing.append("completed_at")
        if status in (TaskStatus.FAILED, TaskStatus.DEAD_LETTER):
            if not last_error:
                missing.append("last_error")
            if failed_at is None:
                missing.append("failed_at")
        if missing:
            raise MissingTransitionFieldError(
                f"Transition of task {task_id} to {status.value} requires "
                f"{', '.join(missing)}",
                task_id=task_id,
            )

    def _parse(self, item: Item, task_id: str) -> TaskRecord:
        try:
            return TaskRecord.model_validate(item)
        except ValidationError as e:
            raise StoreOperationError(
                f"Task {task_id} record is malformed: {e}", task_id=task_id
            ) from e

    def _raise_for_result(
        self, result: OperationResult, task_id: Optional[str], operation: str
    ) -> None:
        if result.is_success:
            return
        if result.status == OperationStatus.NOT_FOUND:
            raise TaskNotFoundError(f"Task {task_id} not found", task_id=task_id)
        self._log.error(
            "task_store_operation_failed",
            task_id=task_id,
            operation=operation,
            status=result.status.value,
            error_code=result.error_code,
            message=result.message,
        )
        raise StoreOperationError(
            f"Task store {operation} failed: {result.message}",
            task_id=task_id,
            response=result,
        )
