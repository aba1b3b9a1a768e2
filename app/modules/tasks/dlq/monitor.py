"""Dead-letter queue monitor.

Consumes messages the task queue redirected to its dead-letter queue after
too many deliveries. Each task is marked DEAD_LETTER, a DLQ entry is built
and reported, and the message is acknowledged. A batch report with
analytics is produced for every batch.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.messaging.transport import QueueMessage, Transport, TransportError
from infrastructure.observability import MetricsSink, safe_emit
from infrastructure.resilience.classifier import ErrorClassifier
from modules.tasks.dlq.analytics import (
    DEFAULT_WINDOW_MS,
    DLQAnalyticsAggregator,
    DLQAnalyticsReport,
)
from modules.tasks.dlq.entries import (
    UNKNOWN_FAILURE,
    DLQEntry,
    EnvironmentInfo,
    TransportMetadata,
    build_dlq_entry,
)
from modules.tasks.errors import TaskError
from modules.tasks.lifecycle import TaskLifecycle
from modules.tasks.models import TaskMessage, utc_now

logger = get_module_logger()
_default_logger = logger

FAILURE_REASON_ATTRIBUTE = "failureReason"


@dataclass
class DLQBatchReport:
    """Outcome of one DLQ batch."""

    timestamp: datetime
    total: int = 0
    successful: int = 0
    failed_message_ids: List[str] = field(default_factory=list)
    failures_by_reason: Dict[str, int] = field(default_factory=dict)
    failures_by_retry_count: Dict[str, int] = field(default_factory=dict)
    average_retry_count: float = 0.0
    entries: List[DLQEntry] = field(default_factory=list)
    analytics: Optional[DLQAnalyticsReport] = None

    @property
    def success_rate(self) -> float:
        """Percentage of messages processed; 100 for an empty batch."""
        return self.successful / self.total * 100 if self.total else 100.0


class DLQMonitor:
    """Processes batches from the dead-letter queue.

    Args:
        lifecycle: Task lifecycle
        transport: The dead-letter queue
        classifier: Classifier for DLQ entries
        aggregator: Analytics aggregator for batch reports
        metrics: Metrics sink
        logger: Optional bound logger
        environment: Environment recorded on DLQ entries
        window_ms: Analytics window
        receive_batch_size: Messages received per batch
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        lifecycle: TaskLifecycle,
        transport: Transport,
        classifier: Optional[ErrorClassifier] = None,
        aggregator: Optional[DLQAnalyticsAggregator] = None,
        metrics: Optional[MetricsSink] = None,
        logger: Optional[Any] = None,
        environment: Optional[EnvironmentInfo] = None,
        window_ms: int = DEFAULT_WINDOW_MS,
        receive_batch_size: int = 10,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._lifecycle = lifecycle
        self._transport = transport
        self._classifier = classifier or ErrorClassifier()
        self._aggregator = aggregator or DLQAnalyticsAggregator(self._classifier)
        self._metrics = metrics
        self._log = (logger or _default_logger).bind(component="dlq_monitor")
        self.environment = environment or EnvironmentInfo()
        self.window_ms = window_ms
        self.receive_batch_size = receive_batch_size
        self._clock = clock

    def process_message(self, message: QueueMessage) -> DLQEntry:
        """Dead-letter the task carried by ``message`` and return its entry.

        Raises:
            ValidationError: If the message body is not a task message.
            TaskError: If the task cannot be read or updated.
            TransportError: If the message cannot be acknowledged.
        """
        task_message = TaskMessage.from_body(message.body)
        failure_reason = message.attributes.get(FAILURE_REASON_ATTRIBUTE) or UNKNOWN_FAILURE

        with bind_request_context(
            correlation_id=message.message_id, task_id=task_message.task_id
        ):
            current = self._lifecycle.get(task_message.task_id)
            last_error = task_message.last_error or current.last_error or failure_reason
            task = self._lifecycle.mark_dead_letter(task_message.task_id, last_error)

            entry = build_dlq_entry(
                task,
                TransportMetadata.from_message(message),
                classifier=self._classifier,
                failure_reason=failure_reason,
                environment=self.environment,
                now=self._clock(),
            )
            self._transport.ack(message.receipt_handle)

            classification = entry.error_classification
            self._log.error(
                "task_permanent_failure",
                original_message_id=entry.original_message_id,
                failure_reason=failure_reason,
                last_error=last_error,
                retry_count=task.retry_count,
                payload_size=entry.payload.size,
                payload_keys=entry.payload.keys,
                category=classification.category.value,
                severity=classification.severity.value,
                retryable=classification.retryable,
                suggested_action=classification.suggested_action,
            )
            safe_emit(
                self._metrics,
                "TaskPermanentFailure",
                1,
                tags={
                    "failure_reason": failure_reason,
                    "retry_count": str(task.retry_count),
                    "error_category": classification.category.value,
                    "severity": classification.severity.value,
                },
            )
            safe_emit(
                self._metrics,
                "DLQTaskProcessingTime",
                entry.processing_metrics.total_processing_time_ms or 0,
                unit="Milliseconds",
                tags={"error_category": classification.category.value},
            )
            return entry

    def process_batch(self, max_messages: Optional[int] = None) -> DLQBatchReport:
        """Receive and process one batch from the dead-letter queue.

        Messages that cannot be processed are logged, listed in
        ``failed_message_ids`` and left on the queue.
        """
        messages = self._transport.receive(max_messages or self.receive_batch_size)
        report = DLQBatchReport(timestamp=self._clock(), total=len(messages))

        for message in messages:
            try:
                entry = self.process_message(message)
            except (ValidationError, TaskError, TransportError) as e:
                self._log.error(
                    "dlq_message_processing_failed",
                    message_id=message.message_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                safe_emit(self._metrics, "DLQProcessingFailure", 1)
                report.failed_message_ids.append(message.message_id)
                continue
            report.successful += 1
            report.entries.append(entry)

        self._summarize(report)
        safe_emit(
            self._metrics, "DLQBatchSuccessRate", report.success_rate, unit="Percent"
        )
        return report

    def _summarize(self, report: DLQBatchReport) -> None:
        if not report.entries:
            return

        for entry in report.entries:
            reason = entry.failure_reason
            report.failures_by_reason[reason] = report.failures_by_reason.get(reason, 0) + 1
            retry_key = str(entry.retry_count)
            report.failures_by_retry_count[retry_key] = (
                report.failures_by_retry_count.get(retry_key, 0) + 1
            )
        average = sum(entry.retry_count for entry in report.entries) / len(report.entries)
        report.average_retry_count = round(average, 2)
        report.analytics = self._aggregator.aggregate(
            report.entries, window_ms=self.window_ms, now=report.timestamp
        )

        self._log.info(
            "dlq_monitoring_report",
            total_failed_tasks=len(report.entries),
            failures_by_reason=report.failures_by_reason,
            failures_by_retry_count=report.failures_by_retry_count,
            average_retry_count=report.average_retry_count,
            unique_tasks=report.analytics.summary.unique_tasks,
            by_category=report.analytics.error_breakdown.by_category,
        )
        safe_emit(self._metrics, "DLQBatchSize", len(report.entries))
        safe_emit(self._metrics, "DLQAverageRetryCount", report.average_retry_count)
        safe_emit(
            self._metrics, "DLQUniqueTasksInBatch", report.analytics.summary.unique_tasks
        )
        safe_emit(
            self._metrics,
            "DLQAveragePayloadSize",
            report.analytics.summary.average_payload_size,
            unit="Bytes",
        )
        for category, count in report.analytics.error_breakdown.by_category.items():
            safe_emit(
                self._metrics, "DLQErrorsByCategory", count, tags={"error_category": category}
            )
        for severity, count in report.analytics.error_breakdown.by_severity.items():
            safe_emit(self._metrics, "DLQErrorsBySeverity", count, tags={"severity": severity})
