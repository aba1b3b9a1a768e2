"""Dead-letter entries.

A DLQ entry is the terminal-failure record of one task: the task's final
state, the queue metadata of the message that carried it, the error
classification, the retry delays it went through and the environment it
failed in. Payloads are summarized and a sanitized copy is kept, never the
raw data.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from pydantic import Field

from infrastructure.logging.formatters import SENSITIVE_PATTERNS, redact_sensitive
from infrastructure.messaging.transport import QueueMessage
from infrastructure.models import InfrastructureModel
from infrastructure.resilience.classifier import ErrorClassification, ErrorClassifier
from modules.tasks.models import TaskRecord, utc_now
from modules.tasks.validation import payload_size

UNKNOWN_FAILURE = "Unknown failure"

PAYLOAD_SENSITIVE_PATTERNS = SENSITIVE_PATTERNS | frozenset({"key"})
PAYLOAD_MASK_VALUE = "[REDACTED]"


def sanitize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``payload`` with sensitive keys redacted at every depth."""
    return redact_sensitive(payload, PAYLOAD_SENSITIVE_PATTERNS, PAYLOAD_MASK_VALUE)


class PayloadSummary(InfrastructureModel):
    size: int
    keys: List[str]
    sanitized: Dict[str, Any]

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PayloadSummary":
        return cls(
            size=payload_size(payload),
            keys=list(payload.keys()),
            sanitized=sanitize_payload(payload),
        )


class TransportMetadata(InfrastructureModel):
    """Queue metadata of the message that carried a task."""

    message_id: str
    receipt_handle: Optional[str] = None
    delivery_count: int = 1
    sent_at: Optional[datetime] = None
    first_received_at: Optional[datetime] = None
    attributes: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_message(cls, message: QueueMessage) -> "TransportMetadata":
        return cls(
            message_id=message.message_id,
            receipt_handle=message.receipt_handle,
            delivery_count=message.delivery_count,
            sent_at=message.sent_at,
            first_received_at=message.first_received_at,
            attributes=dict(message.attributes),
        )


class ProcessingMetrics(InfrastructureModel):
    first_attempt_at: datetime
    last_attempt_at: datetime
    retry_delays_ms: List[float] = Field(default_factory=list)
    total_processing_time_ms: Optional[float] = None


class EnvironmentInfo(InfrastructureModel):
    stage: str = "dev"
    region: str = "us-east-1"
    version: str = "unknown"


class DLQEntry(InfrastructureModel):
    """Terminal-failure record of one task."""

    timestamp: datetime
    task_id: str
    original_message_id: Optional[str] = None
    failure_reason: str
    last_error: str
    retry_count: int = Field(default=0, ge=0)
    created_at: datetime
    failed_at: datetime
    payload: PayloadSummary
    transport: Optional[TransportMetadata] = None
    error_classification: Optional[ErrorClassification] = None
    processing_metrics: ProcessingMetrics
    environment: EnvironmentInfo = Field(default_factory=EnvironmentInfo)


def build_dlq_entry(
    task: TaskRecord,
    transport_metadata: Optional[TransportMetadata] = None,
    classifier: Optional[ErrorClassifier] = None,
    retry_delays_ms: Sequence[float] = (),
    failure_reason: Optional[str] = None,
    environment: Optional[EnvironmentInfo] = None,
    now: Optional[datetime] = None,
) -> DLQEntry:
    """Build the DLQ entry for a dead-lettered task.

    Args:
        task: Task record in its final state
        transport_metadata: Metadata of the message that carried the task
        classifier: Classifier for the last error (defaults to ErrorClassifier())
        retry_delays_ms: Delays granted to the task's retries, in order
        failure_reason: Why the queue gave up on the task, if it says
        environment: Where the task failed
        now: Entry timestamp (defaults to the current UTC time)
    """
    now = now or utc_now()
    last_error = task.last_error or failure_reason or UNKNOWN_FAILURE
    classification = (classifier or ErrorClassifier()).classify(
        last_error, task.retry_count
    )

    original_message_id = None
    first_attempt_at = task.created_at
    if transport_metadata is not None:
        original_message_id = (
            transport_metadata.attributes.get("originalMessageId")
            or transport_metadata.message_id
        )
        if transport_metadata.first_received_at is not None:
            first_attempt_at = transport_metadata.first_received_at
    last_attempt_at = task.failed_at or now
    elapsed_ms = (last_attempt_at - first_attempt_at).total_seconds() * 1000

    return DLQEntry(
        timestamp=now,
        task_id=task.task_id,
        original_message_id=original_message_id,
        failure_reason=failure_reason or last_error,
        last_error=last_error,
        retry_count=task.retry_count,
        created_at=task.created_at,
        failed_at=task.failed_at or now,
        payload=PayloadSummary.from_payload(task.payload),
        transport=transport_metadata,
        error_classification=classification,
        processing_metrics=ProcessingMetrics(
            first_attempt_at=first_attempt_at,
            last_attempt_at=last_attempt_at,
            retry_delays_ms=list(retry_delays_ms),
            total_processing_time_ms=max(elapsed_ms, 0.0),
        ),
        environment=environment or EnvironmentInfo(),
    )
