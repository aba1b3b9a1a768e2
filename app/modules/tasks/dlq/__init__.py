"""Dead-letter entries, analytics and the DLQ monitor."""

from modules.tasks.dlq.analytics import DLQAnalyticsAggregator, DLQAnalyticsReport
from modules.tasks.dlq.entries import (
    DLQEntry,
    EnvironmentInfo,
    PayloadSummary,
    ProcessingMetrics,
    TransportMetadata,
    build_dlq_entry,
    sanitize_payload,
)
from modules.tasks.dlq.monitor import DLQBatchReport, DLQMonitor

__all__ = [
    "DLQAnalyticsAggregator",
    "DLQAnalyticsReport",
    "DLQBatchReport",
    "DLQEntry",
    "DLQMonitor",
    "EnvironmentInfo",
    "PayloadSummary",
    "ProcessingMetrics",
    "TransportMetadata",
    "build_dlq_entry",
    "sanitize_payload",
]
