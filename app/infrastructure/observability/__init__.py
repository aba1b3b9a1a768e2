"""Observability module - metrics sinks.

Exports:
    MetricsSink: Protocol implemented by metric destinations
    StructlogMetricsSink: Metrics recorded as structured log events
    NullMetricsSink: Sink that drops everything
    safe_emit: Emit without ever raising into the caller
"""

from infrastructure.observability.metrics import (
    MetricsSink,
    NullMetricsSink,
    StructlogMetricsSink,
    safe_emit,
)

__all__ = [
    "MetricsSink",
    "NullMetricsSink",
    "StructlogMetricsSink",
    "safe_emit",
]
