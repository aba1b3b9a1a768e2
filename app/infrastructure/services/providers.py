"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for the task pipeline.
Each provider is cached with ``lru_cache`` so a process builds every
component once; tests reset them with ``cache_clear()``.
"""

from functools import lru_cache
from typing import Tuple

from infrastructure.clients.aws import AWSClients
from infrastructure.configuration import Settings
from infrastructure.idempotency import IdempotencyGuard
from infrastructure.messaging import InMemoryTransport, SQSTransport, Transport
from infrastructure.observability import MetricsSink, StructlogMetricsSink
from infrastructure.persistence import (
    DurableStore,
    DynamoDBDurableStore,
    InMemoryDurableStore,
)
from infrastructure.resilience import (
    ErrorClassifier,
    RetryCoordinator,
    StrategyRegistry,
    default_registry,
)
from modules.tasks.dlq import DLQMonitor, EnvironmentInfo
from modules.tasks.lifecycle import TaskLifecycle
from modules.tasks.processing import TaskAttemptProcessor
from modules.tasks.submission import TaskSubmissionService

APP_VERSION = "0.1.0"


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the application.
    The @lru_cache decorator ensures only ONE instance is created per process.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_aws_clients() -> AWSClients:
    """Provider for the AWS clients facade.

    Credentials are resolved per API call, so caching the facade is safe.

    Returns:
        AWSClients: Configured facade exposing ``dynamodb`` and ``sqs``
    """
    settings = get_settings()
    return AWSClients(aws_settings=settings.aws)


@lru_cache
def get_metrics_sink() -> MetricsSink:
    settings = get_settings()
    return StructlogMetricsSink(
        namespace="TaskProcessing",
        default_tags={"stage": settings.STAGE, "service": "task-resilience"},
    )


def _build_store(backend: str, table_name: str) -> DurableStore:
    if backend == "memory":
        return InMemoryDurableStore(name=table_name)
    if backend == "dynamodb":
        return DynamoDBDurableStore(get_aws_clients().dynamodb, table_name)
    raise ValueError(f"Unknown store backend: {backend}")


@lru_cache
def get_task_store() -> DurableStore:
    """Task record store selected by TASK_STORE_BACKEND."""
    tasks = get_settings().tasks
    return _build_store(tasks.TASK_STORE_BACKEND, tasks.TASK_TABLE_NAME)


@lru_cache
def get_idempotency_store() -> DurableStore:
    """Idempotency record store selected by IDEMPOTENCY_BACKEND."""
    idempotency = get_settings().idempotency
    return _build_store(
        idempotency.IDEMPOTENCY_BACKEND, idempotency.IDEMPOTENCY_TABLE_NAME
    )


@lru_cache
def get_transports() -> Tuple[Transport, Transport]:
    """Task queue and dead-letter queue selected by QUEUE_BACKEND.

    Returns:
        (task queue, dead-letter queue)
    """
    queue = get_settings().queue
    if queue.QUEUE_BACKEND == "memory":
        dead_letter = InMemoryTransport(
            name="tasks-dlq",
            visibility_window_seconds=queue.DEFAULT_VISIBILITY_SECONDS,
            max_visibility_seconds=queue.MAX_VISIBILITY_SECONDS,
        )
        task_queue = InMemoryTransport(
            name="tasks",
            visibility_window_seconds=queue.DEFAULT_VISIBILITY_SECONDS,
            max_visibility_seconds=queue.MAX_VISIBILITY_SECONDS,
            max_receive_count=queue.MAX_RECEIVE_COUNT,
            dead_letter=dead_letter,
        )
        return task_queue, dead_letter
    if queue.QUEUE_BACKEND == "sqs":
        sqs = get_aws_clients().sqs
        return (
            SQSTransport(
                sqs,
                queue.TASK_QUEUE_URL,
                wait_time_seconds=queue.WAIT_TIME_SECONDS,
                max_visibility_seconds=queue.MAX_VISIBILITY_SECONDS,
            ),
            SQSTransport(
                sqs,
                queue.TASK_DLQ_URL,
                wait_time_seconds=queue.WAIT_TIME_SECONDS,
                max_visibility_seconds=queue.MAX_VISIBILITY_SECONDS,
            ),
        )
    raise ValueError(f"Unknown queue backend: {queue.QUEUE_BACKEND}")


@lru_cache
def get_strategy_registry() -> StrategyRegistry:
    return default_registry()


@lru_cache
def get_error_classifier() -> ErrorClassifier:
    return ErrorClassifier()


@lru_cache
def get_retry_coordinator() -> RetryCoordinator:
    """Retry coordinator for the task queue.

    Raises:
        UnknownStrategyError: If RETRY_STRATEGY is not registered.
        ValueError: If the retry settings are out of range.
    """
    settings = get_settings()
    task_queue, _ = get_transports()
    return RetryCoordinator(
        get_strategy_registry(),
        settings.retry.to_config(
            visibility_window_seconds=settings.queue.DEFAULT_VISIBILITY_SECONDS
        ),
        classifier=get_error_classifier(),
        transport=task_queue,
        metrics=get_metrics_sink(),
    )


@lru_cache
def get_task_lifecycle() -> TaskLifecycle:
    return TaskLifecycle(
        get_task_store(),
        ttl_seconds=get_settings().tasks.ttl_seconds,
        metrics=get_metrics_sink(),
    )


@lru_cache
def get_idempotency_guard() -> IdempotencyGuard:
    return IdempotencyGuard(
        get_idempotency_store(),
        default_ttl_seconds=get_settings().idempotency.IDEMPOTENCY_TTL_SECONDS,
    )


def get_environment_info() -> EnvironmentInfo:
    settings = get_settings()
    return EnvironmentInfo(
        stage=settings.STAGE,
        region=settings.aws.AWS_REGION,
        version=APP_VERSION,
    )


@lru_cache
def get_task_submission_service() -> TaskSubmissionService:
    tasks = get_settings().tasks
    task_queue, _ = get_transports()
    return TaskSubmissionService(
        get_task_lifecycle(),
        get_idempotency_guard(),
        task_queue,
        failure_threshold_per_mille=tasks.failure_threshold_per_mille,
        metrics=get_metrics_sink(),
        max_task_id_length=tasks.MAX_TASK_ID_LENGTH,
        max_payload_size=tasks.MAX_PAYLOAD_SIZE,
    )


@lru_cache
def get_task_attempt_processor() -> TaskAttemptProcessor:
    task_queue, _ = get_transports()
    return TaskAttemptProcessor(
        get_task_lifecycle(),
        get_retry_coordinator(),
        task_queue,
        classifier=get_error_classifier(),
        metrics=get_metrics_sink(),
        environment=get_environment_info(),
        receive_batch_size=get_settings().queue.RECEIVE_BATCH_SIZE,
    )


@lru_cache
def get_dlq_monitor() -> DLQMonitor:
    settings = get_settings()
    _, dead_letter = get_transports()
    return DLQMonitor(
        get_task_lifecycle(),
        dead_letter,
        classifier=get_error_classifier(),
        metrics=get_metrics_sink(),
        environment=get_environment_info(),
        window_ms=settings.tasks.DLQ_ANALYTICS_WINDOW_MS,
        receive_batch_size=settings.queue.RECEIVE_BATCH_SIZE,
    )
