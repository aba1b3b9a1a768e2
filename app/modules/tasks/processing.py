"""Task attempt processing.

One delivery of a task message is one attempt. The attempt index comes
from the transport (delivery count - 1). A successful attempt completes
the task and acknowledges the message. A failed attempt is handed to the
RetryCoordinator:

- Retry: the task goes back to PENDING with its new retry count and last
  error, and the message is left un-acked so the queue redelivers it (after
  the extended visibility timeout when the coordinator uses one)
- Terminal: the task goes to FAILED then DEAD_LETTER, a DLQ entry is built
  and emitted, and the message is acknowledged
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from pydantic import ValidationError

from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.messaging.transport import QueueMessage, Transport, TransportError
from infrastructure.observability import MetricsSink, safe_emit
from infrastructure.resilience.classifier import ErrorClassifier
from infrastructure.resilience.retry import Retry, RetryCoordinator, RetryDecision
from modules.tasks.dlq.entries import (
    UNKNOWN_FAILURE,
    DLQEntry,
    EnvironmentInfo,
    TransportMetadata,
    build_dlq_entry,
)
from modules.tasks.errors import TaskError
from modules.tasks.handlers import SimulatedTaskHandler, TaskHandler
from modules.tasks.lifecycle import TaskLifecycle
from modules.tasks.models import TaskMessage

logger = get_module_logger()
_default_logger = logger


class AttemptOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    RETRIED = "retried"
    DEAD_LETTERED = "dead_lettered"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class MessageResult:
    message_id: str
    outcome: AttemptOutcome
    task_id: Optional[str] = None
    dlq_entry: Optional[DLQEntry] = None
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Summary of one processed batch.

    ``failed_message_ids`` lists messages that could not be processed and
    are left on the queue.
    """

    processed: int = 0
    succeeded: int = 0
    retried: int = 0
    dead_lettered: int = 0
    skipped: int = 0
    failed_message_ids: List[str] = field(default_factory=list)
    dlq_entries: List[DLQEntry] = field(default_factory=list)

    def add(self, result: MessageResult) -> None:
        self.processed += 1
        if result.outcome == AttemptOutcome.SUCCEEDED:
            self.succeeded += 1
        elif result.outcome == AttemptOutcome.RETRIED:
            self.retried += 1
        elif result.outcome == AttemptOutcome.DEAD_LETTERED:
            self.dead_lettered += 1
        elif result.outcome == AttemptOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed_message_ids.append(result.message_id)
        if result.dlq_entry is not None:
            self.dlq_entries.append(result.dlq_entry)


def _error_message(error: Any) -> str:
    if error is None:
        return UNKNOWN_FAILURE
    return str(error) or type(error).__name__


class TaskAttemptProcessor:
    """Runs task attempts delivered by the task queue.

    Args:
        lifecycle: Task lifecycle
        coordinator: Retry coordinator
        transport: Task queue
        handler: Task work (defaults to SimulatedTaskHandler)
        classifier: Classifier for DLQ entries
        metrics: Metrics sink
        logger: Optional bound logger
        environment: Environment recorded on DLQ entries
        receive_batch_size: Messages received per batch
    """

    def __init__(
        self,
        lifecycle: TaskLifecycle,
        coordinator: RetryCoordinator,
        transport: Transport,
        handler: Optional[TaskHandler] = None,
        classifier: Optional[ErrorClassifier] = None,
        metrics: Optional[MetricsSink] = None,
        logger: Optional[Any] = None,
        environment: Optional[EnvironmentInfo] = None,
        receive_batch_size: int = 10,
    ) -> None:
        self._lifecycle = lifecycle
        self._coordinator = coordinator
        self._transport = transport
        self._handler = handler or SimulatedTaskHandler()
        self._classifier = classifier or ErrorClassifier()
        self._metrics = metrics
        self._log = (logger or _default_logger).bind(component="task_processor")
        self.environment = environment or EnvironmentInfo()
        self.receive_batch_size = receive_batch_size

    def record_attempt_outcome(
        self,
        task_id: str,
        attempt_index: int,
        error: Any = None,
        message_handle: Optional[str] = None,
    ) -> RetryDecision:
        """Record a failed attempt and apply the retry decision to the task.

        Args:
            task_id: Task whose attempt failed
            attempt_index: 0-based attempt number
            error: The failure, if known
            message_handle: Receipt handle of the in-flight message

        Returns:
            Retry or Terminal
        """
        decision = self._coordinator.decide(
            attempt_index, error, message_handle=message_handle, task_id=task_id
        )
        last_error = _error_message(error)

        if isinstance(decision, Retry):
            self._lifecycle.mark_retry_pending(
                task_id, retry_count=attempt_index + 1, last_error=last_error
            )
            safe_emit(self._metrics, "TaskRetryScheduled", 1)
            return decision

        self._lifecycle.mark_failed(task_id, last_error, retry_count=attempt_index)
        if decision.should_dead_letter:
            self._lifecycle.mark_dead_letter(
                task_id, last_error, retry_count=attempt_index
            )
        return decision

    def process_message(self, message: QueueMessage) -> MessageResult:
        """Run one attempt for the task carried by ``message``."""
        try:
            task_message = TaskMessage.from_body(message.body)
        except ValidationError as e:
            self._log.error(
                "task_message_unparseable", message_id=message.message_id, error=str(e)
            )
            safe_emit(self._metrics, "MessageParseError", 1)
            return MessageResult(
                message.message_id, AttemptOutcome.FAILED, error="Invalid message format"
            )

        task_id = task_message.task_id
        attempt_index = message.attempt_index
        with bind_request_context(
            correlation_id=message.message_id, task_id=task_id, attempt=attempt_index
        ):
            task = self._lifecycle.get(task_id)
            if task.status.is_terminal:
                self._log.info("task_already_terminal", status=task.status.value)
                self._transport.ack(message.receipt_handle)
                return MessageResult(message.message_id, AttemptOutcome.SKIPPED, task_id)

            task = self._lifecycle.mark_processing(task_id, retry_count=attempt_index)
            self._log.info("task_processing_started", delivery_count=message.delivery_count)

            try:
                self._handler.handle(task)
            except Exception as e:  # pylint: disable=broad-except
                return self._handle_failure(message, task_id, attempt_index, e)

            self._lifecycle.mark_completed(task_id, retry_count=attempt_index)
            self._transport.ack(message.receipt_handle)
            self._log.info("task_completed")
            safe_emit(self._metrics, "TaskCompleted", 1)
            return MessageResult(message.message_id, AttemptOutcome.SUCCEEDED, task_id)

    def process_batch(self, max_messages: Optional[int] = None) -> BatchResult:
        """Receive and process one batch of task messages.

        A message whose processing fails on a store or queue error is logged,
        listed in ``failed_message_ids`` and left on the queue.
        """
        messages = self._transport.receive(max_messages or self.receive_batch_size)
        batch = BatchResult()

        for message in messages:
            try:
                result = self.process_message(message)
            except (TaskError, TransportError) as e:
                self._log.error(
                    "task_message_processing_failed",
                    message_id=message.message_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result = MessageResult(
                    message.message_id,
                    AttemptOutcome.FAILED,
                    task_id=getattr(e, "task_id", None),
                    error=str(e),
                )
            batch.add(result)

        self._log.info(
            "task_batch_processed",
            processed=batch.processed,
            succeeded=batch.succeeded,
            retried=batch.retried,
            dead_lettered=batch.dead_lettered,
            failed=len(batch.failed_message_ids),
        )
        safe_emit(self._metrics, "BatchProcessed", 1)
        safe_emit(self._metrics, "BatchSuccessful", batch.succeeded)
        safe_emit(self._metrics, "BatchFailed", len(batch.failed_message_ids))
        if batch.failed_message_ids:
            safe_emit(self._metrics, "PartialBatchFailure", 1)
        return batch

    def _handle_failure(
        self,
        message: QueueMessage,
        task_id: str,
        attempt_index: int,
        error: Exception,
    ) -> MessageResult:
        self._log.warning(
            "task_attempt_failed",
            error=_error_message(error),
            error_type=getattr(error, "error_type", type(error).__name__),
        )
        safe_emit(self._metrics, "TaskFailed", 1)

        decision = self.record_attempt_outcome(
            task_id, attempt_index, error, message_handle=message.receipt_handle
        )
        if isinstance(decision, Retry):
            return MessageResult(
                message.message_id,
                AttemptOutcome.RETRIED,
                task_id,
                error=_error_message(error),
            )

        task = self._lifecycle.get(task_id)
        entry = build_dlq_entry(
            task,
            TransportMetadata.from_message(message),
            classifier=self._classifier,
            retry_delays_ms=decision.retry_delays_ms,
            failure_reason=decision.reason,
            environment=self.environment,
        )
        self._transport.ack(message.receipt_handle)

        classification = entry.error_classification
        self._log.error(
            "task_sent_to_dlq",
            reason=decision.reason,
            retry_count=task.retry_count,
            last_error=entry.last_error,
            category=classification.category.value,
            severity=classification.severity.value,
            suggested_action=classification.suggested_action,
        )
        safe_emit(
            self._metrics,
            "TaskSentToDLQ",
            1,
            tags={"error_category": classification.category.value},
        )
        return MessageResult(
            message.message_id,
            AttemptOutcome.DEAD_LETTERED,
            task_id,
            dlq_entry=entry,
            error=entry.last_error,
        )
