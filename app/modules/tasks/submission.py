"""Task submission.

Submitting a task:

1. validates the task id and payload
2. checks the idempotency guard; a cached response is replayed unchanged
   and a key reused for a different request is rejected
3. creates the task record (a second create for the same id is a duplicate)
4. enqueues the task; if that fails the task is marked FAILED and the error
   propagates
5. caches the response under the idempotency key
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from infrastructure.idempotency import (
    IdempotencyDecision,
    IdempotencyGuard,
    IdempotencyKeyBuilder,
    compute_fingerprint,
)
from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.messaging.transport import Transport, TransportError
from infrastructure.observability import MetricsSink, safe_emit
from modules.tasks.destiny import decide_failure_destiny
from modules.tasks.errors import TaskAlreadyExistsError, TaskError
from modules.tasks.lifecycle import TaskLifecycle
from modules.tasks.models import TaskMessage, TaskRecord
from modules.tasks.validation import (
    DEFAULT_MAX_PAYLOAD_SIZE,
    DEFAULT_MAX_TASK_ID_LENGTH,
    payload_size,
    validate_submission,
)

logger = get_module_logger()
_default_logger = logger

SUBMIT_OPERATION = "submit_task"
ACCEPTED_MESSAGE = "Task successfully submitted for processing"


@dataclass(frozen=True)
class Created:
    record: TaskRecord
    response: Dict[str, Any]
    message_id: Optional[str] = None


@dataclass(frozen=True)
class Duplicate:
    task_id: str


@dataclass(frozen=True)
class IdempotentReplay:
    cached_response: Dict[str, Any]


@dataclass(frozen=True)
class IdempotencyConflict:
    idempotency_key: str


SubmissionResult = Union[Created, Duplicate, IdempotentReplay, IdempotencyConflict]


class TaskSubmissionService:
    """Accepts tasks and puts them on the task queue.

    Args:
        lifecycle: Task lifecycle
        guard: Idempotency guard
        transport: Task queue
        failure_threshold_per_mille: Share of tasks destined to fail, out of 1000
        metrics: Metrics sink
        logger: Optional bound logger
        max_task_id_length: Longest accepted task id
        max_payload_size: Largest accepted serialized payload in bytes
    """

    def __init__(
        self,
        lifecycle: TaskLifecycle,
        guard: IdempotencyGuard,
        transport: Transport,
        failure_threshold_per_mille: int = 300,
        metrics: Optional[MetricsSink] = None,
        logger: Optional[Any] = None,
        max_task_id_length: int = DEFAULT_MAX_TASK_ID_LENGTH,
        max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
    ) -> None:
        self._lifecycle = lifecycle
        self._guard = guard
        self._transport = transport
        self.failure_threshold_per_mille = failure_threshold_per_mille
        self._metrics = metrics
        self._log = (logger or _default_logger).bind(component="task_submission")
        self.max_task_id_length = max_task_id_length
        self.max_payload_size = max_payload_size
        self._keys = IdempotencyKeyBuilder("tasks")

    def submit_task(
        self,
        task_id: str,
        payload: Dict[str, Any],
        idempotency_key: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> SubmissionResult:
        """Submit a task for processing.

        Args:
            task_id: Caller-supplied task id
            payload: Task data
            idempotency_key: Caller-supplied key; derived from the task id if omitted
            correlation_id: Request id for logs

        Returns:
            Created, Duplicate, IdempotentReplay or IdempotencyConflict

        Raises:
            TaskValidationError: If the task id or payload is invalid.
            IdempotencyStoreError: If the idempotency store fails.
            StoreOperationError: If the task store fails.
            TransportError: If the task could not be enqueued.
        """
        request = validate_submission(
            task_id,
            payload,
            max_task_id_length=self.max_task_id_length,
            max_payload_size=self.max_payload_size,
        )

        with bind_request_context(correlation_id=correlation_id, task_id=task_id):
            key = idempotency_key or self._keys.build(SUBMIT_OPERATION, task_id=task_id)
            fingerprint = compute_fingerprint(request.model_dump())

            check = self._guard.check(key, fingerprint)
            if check.decision is IdempotencyDecision.CACHED_RESPONSE:
                safe_emit(self._metrics, "IdempotentReplay", 1)
                return IdempotentReplay(cached_response=check.cached_response)
            if check.decision is IdempotencyDecision.CONFLICT:
                safe_emit(self._metrics, "IdempotencyConflict", 1)
                return IdempotencyConflict(idempotency_key=key)

            failure_destiny = decide_failure_destiny(
                task_id, self.failure_threshold_per_mille
            )
            try:
                record = self._lifecycle.create(
                    task_id, request.payload, failure_destiny=failure_destiny
                )
            except TaskAlreadyExistsError:
                safe_emit(self._metrics, "DuplicateTask", 1)
                return Duplicate(task_id=task_id)

            message_id = self._enqueue(record)

            response = {
                "task_id": task_id,
                "status": "queued",
                "message": ACCEPTED_MESSAGE,
            }
            self._guard.store(key, fingerprint, response)

            self._log.info(
                "task_submitted",
                message_id=message_id,
                payload_size=payload_size(request.payload),
                failure_destiny=failure_destiny,
            )
            safe_emit(self._metrics, "TaskSubmitted", 1)
            safe_emit(
                self._metrics, "PayloadSize", payload_size(request.payload), unit="Bytes"
            )
            return Created(record=record, response=response, message_id=message_id)

    def _enqueue(self, record: TaskRecord) -> str:
        message = TaskMessage(
            task_id=record.task_id,
            payload=record.payload,
            created_at=record.created_at,
        )
        try:
            return self._transport.send(message.to_body())
        except TransportError as e:
            self._log.error("task_enqueue_failed", error=str(e))
            try:
                self._lifecycle.mark_failed(
                    record.task_id, f"Failed to queue task: {e}"
                )
            except TaskError as cleanup_error:
                self._log.error(
                    "task_enqueue_cleanup_failed",
                    error=str(cleanup_error),
                    error_type=type(cleanup_error).__name__,
                )
                safe_emit(self._metrics, "CleanupError", 1)
            raise
