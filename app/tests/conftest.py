"""Shared fixtures for all tests.

Level: Application-wide fixtures (clocks, metrics, stores, queues, task
services wired on in-memory backends)
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytest

from infrastructure.idempotency import IdempotencyGuard
from infrastructure.messaging import InMemoryTransport
from infrastructure.persistence import InMemoryDurableStore
from infrastructure.resilience import (
    ErrorClassifier,
    RetryConfig,
    RetryCoordinator,
    default_registry,
)
from modules.tasks.lifecycle import TaskLifecycle
from modules.tasks.processing import TaskAttemptProcessor
from modules.tasks.submission import TaskSubmissionService
from tests.factories.tasks import BASE_TIME


class FakeClock:
    """Controllable clock serving both datetimes and epoch seconds."""

    def __init__(self, start: datetime = BASE_TIME):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def time(self) -> float:
        return self.current.timestamp()

    def advance(self, seconds: float) -> None:
        self.current = self.current + timedelta(seconds=seconds)


class RecordingMetricsSink:
    """Metrics sink that keeps every emitted data point."""

    def __init__(self):
        self.emitted: List[Tuple[str, float, str, Dict[str, Any]]] = []

    def emit(
        self,
        name: str,
        value: float,
        unit: str = "Count",
        tags: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.emitted.append((name, value, unit, dict(tags or {})))

    def names(self) -> List[str]:
        return [name for name, _, _, _ in self.emitted]

    def values(self, name: str) -> List[float]:
        return [value for n, value, _, _ in self.emitted if n == name]


@pytest.fixture
def clock():
    """Fake clock starting at BASE_TIME."""
    return FakeClock()


@pytest.fixture
def metrics():
    """Recording metrics sink."""
    return RecordingMetricsSink()


@pytest.fixture
def task_store(clock):
    """Empty in-memory task store."""
    return InMemoryDurableStore(name="tasks", clock=clock.time)


@pytest.fixture
def idempotency_store(clock):
    """Empty in-memory idempotency store."""
    return InMemoryDurableStore(name="idempotency", clock=clock.time)


@pytest.fixture
def dead_letter_queue(clock):
    """In-memory dead-letter queue."""
    return InMemoryTransport(name="tasks-dlq", clock=clock.time)


@pytest.fixture
def task_queue(clock, dead_letter_queue):
    """In-memory task queue redriving to ``dead_letter_queue`` after 3 deliveries."""
    return InMemoryTransport(
        name="tasks",
        visibility_window_seconds=30,
        max_receive_count=3,
        dead_letter=dead_letter_queue,
        clock=clock.time,
    )


@pytest.fixture
def retry_config_factory():
    """Factory for creating RetryConfig instances (jitter off by default)."""

    def _factory(**overrides: Any) -> RetryConfig:
        values: Dict[str, Any] = {
            "max_retries": 2,
            "base_delay_ms": 1000,
            "max_delay_ms": 30000,
            "backoff_multiplier": 2.0,
            "jitter_enabled": False,
        }
        values.update(overrides)
        return RetryConfig(**values)

    return _factory


@pytest.fixture
def lifecycle(task_store, clock, metrics):
    """TaskLifecycle on the in-memory task store."""
    return TaskLifecycle(task_store, clock=clock.now, metrics=metrics)


@pytest.fixture
def guard(idempotency_store, clock):
    """IdempotencyGuard on the in-memory idempotency store."""
    return IdempotencyGuard(idempotency_store, clock=clock.now)


@pytest.fixture
def coordinator(retry_config_factory, task_queue, metrics):
    """RetryCoordinator using visibility timeouts on the task queue."""
    return RetryCoordinator(
        default_registry(),
        retry_config_factory(use_visibility_timeout=True),
        transport=task_queue,
        metrics=metrics,
    )


@pytest.fixture
def submission_service(lifecycle, guard, task_queue, metrics):
    """TaskSubmissionService with a 30% failure threshold."""
    return TaskSubmissionService(
        lifecycle, guard, task_queue, failure_threshold_per_mille=300, metrics=metrics
    )


@pytest.fixture
def processor(lifecycle, coordinator, task_queue, metrics):
    """TaskAttemptProcessor with the simulated handler."""
    return TaskAttemptProcessor(
        lifecycle,
        coordinator,
        task_queue,
        classifier=ErrorClassifier(),
        metrics=metrics,
    )
