"""Windowed analytics over dead-letter entries.

The aggregation is a pure reduction: given the same entries, window and
``now`` it always produces the same report.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from infrastructure.models import InfrastructureModel
from infrastructure.resilience.classifier import ErrorClassification, ErrorClassifier
from modules.tasks.dlq.entries import DLQEntry
from modules.tasks.models import utc_now

DEFAULT_WINDOW_MS = 3_600_000
TOP_ERRORS_LIMIT = 10
ERROR_MESSAGE_MAX_LENGTH = 100
MS_PER_HOUR = 3_600_000


class TimeWindow(InfrastructureModel):
    start: datetime
    end: datetime
    duration_ms: int


class DLQSummary(InfrastructureModel):
    total_messages: int
    unique_tasks: int
    average_retry_count: float
    max_retry_count: int
    total_payload_size: int
    average_payload_size: float


class TopError(InfrastructureModel):
    error: str
    count: int
    percentage: float


class ErrorBreakdown(InfrastructureModel):
    by_category: Dict[str, int]
    by_severity: Dict[str, int]
    by_retry_count: Dict[str, int]
    top_errors: List[TopError]


class DLQTrends(InfrastructureModel):
    messages_per_hour: float


class DLQAnalyticsReport(InfrastructureModel):
    time_window: TimeWindow
    summary: DLQSummary
    error_breakdown: ErrorBreakdown
    trends: DLQTrends


class DLQAnalyticsAggregator:
    """Reduces DLQ entries to a DLQAnalyticsReport.

    Entries carry their classification; entries without one are classified
    from their last error and retry count.

    Args:
        classifier: Classifier for unclassified entries
    """

    def __init__(self, classifier: Optional[ErrorClassifier] = None) -> None:
        self._classifier = classifier or ErrorClassifier()

    def aggregate(
        self,
        entries: Iterable[DLQEntry],
        window_ms: int = DEFAULT_WINDOW_MS,
        now: Optional[datetime] = None,
    ) -> DLQAnalyticsReport:
        """Aggregate the entries whose timestamp falls in ``[now - window_ms, now]``.

        Raises:
            ValueError: If ``window_ms`` is not positive.
        """
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")

        end = now or utc_now()
        start = end - timedelta(milliseconds=window_ms)
        in_window = [entry for entry in entries if start <= entry.timestamp <= end]
        total = len(in_window)

        by_category: Counter = Counter()
        by_severity: Counter = Counter()
        by_retry_count: Counter = Counter()
        error_counts: Counter = Counter()
        for entry in in_window:
            classification = self._classification(entry)
            by_category[classification.category.value] += 1
            by_severity[classification.severity.value] += 1
            by_retry_count[str(entry.retry_count)] += 1
            error_counts[entry.last_error[:ERROR_MESSAGE_MAX_LENGTH]] += 1

        retry_sum = sum(entry.retry_count for entry in in_window)
        payload_total = sum(entry.payload.size for entry in in_window)

        # Counter.most_common keeps first-seen order among equal counts
        top_errors = [
            TopError(error=error, count=count, percentage=count / total * 100)
            for error, count in error_counts.most_common(TOP_ERRORS_LIMIT)
        ]

        return DLQAnalyticsReport(
            time_window=TimeWindow(start=start, end=end, duration_ms=window_ms),
            summary=DLQSummary(
                total_messages=total,
                unique_tasks=len({entry.task_id for entry in in_window}),
                average_retry_count=retry_sum / total if total else 0.0,
                max_retry_count=max(
                    (entry.retry_count for entry in in_window), default=0
                ),
                total_payload_size=payload_total,
                average_payload_size=payload_total / total if total else 0.0,
            ),
            error_breakdown=ErrorBreakdown(
                by_category=dict(by_category),
                by_severity=dict(by_severity),
                by_retry_count=dict(by_retry_count),
                top_errors=top_errors,
            ),
            trends=DLQTrends(messages_per_hour=total / window_ms * MS_PER_HOUR),
        )

    def _classification(self, entry: DLQEntry) -> ErrorClassification:
        if entry.error_classification is not None:
            return entry.error_classification
        return self._classifier.classify(entry.last_error, entry.retry_count)
