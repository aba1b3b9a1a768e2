"""Fire-and-forget metrics emission.

Components receive a ``MetricsSink`` through their constructor and emit
through ``safe_emit`` so a failing sink can never change control flow.

Usage:
    from infrastructure.observability import StructlogMetricsSink, safe_emit

    sink = StructlogMetricsSink(namespace="TaskProcessing", default_tags={"stage": "dev"})
    safe_emit(sink, "TaskCompleted", 1, tags={"task_type": "simulated"})
"""

from typing import Any, Dict, Optional, Protocol

import structlog

logger = structlog.get_logger()


class MetricsSink(Protocol):
    """Destination for counters and timings."""

    def emit(
        self,
        name: str,
        value: float,
        unit: str = "Count",
        tags: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record one metric data point."""
        ...


class StructlogMetricsSink:
    """Records metrics as structured ``custom_metric`` log events.

    Log-based metrics are picked up by the log pipeline, so no metrics
    client is needed in-process.

    Args:
        namespace: Metric namespace written on every data point
        default_tags: Dimensions merged into every data point
        logger: Optional bound logger (defaults to the module logger)
    """

    def __init__(
        self,
        namespace: str = "TaskProcessing",
        default_tags: Optional[Dict[str, Any]] = None,
        logger: Optional[Any] = None,
    ) -> None:
        self.namespace = namespace
        self.default_tags = dict(default_tags or {})
        self._logger = (logger or structlog.get_logger()).bind(
            component="metrics", namespace=namespace
        )

    def emit(
        self,
        name: str,
        value: float,
        unit: str = "Count",
        tags: Optional[Dict[str, Any]] = None,
    ) -> None:
        dimensions = {**self.default_tags, **(tags or {})}
        self._logger.info(
            "custom_metric",
            metric_name=name,
            metric_value=value,
            metric_unit=unit,
            dimensions=dimensions,
        )


class NullMetricsSink:
    """Discards every metric."""

    def emit(
        self,
        name: str,
        value: float,
        unit: str = "Count",
        tags: Optional[Dict[str, Any]] = None,
    ) -> None:
        return None


def safe_emit(
    sink: Optional[MetricsSink],
    name: str,
    value: float = 1,
    unit: str = "Count",
    tags: Optional[Dict[str, Any]] = None,
) -> None:
    """Emit a metric, logging and discarding any error raised by the sink."""
    if sink is None:
        return
    try:
        sink.emit(name, value, unit, tags)
    except Exception as e:  # pylint: disable=broad-except
        logger.warning(
            "metric_emit_failed",
            metric_name=name,
            error=str(e),
            error_type=type(e).__name__,
        )
