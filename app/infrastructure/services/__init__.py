"""
Application-scoped service providers.

Every provider is an ``lru_cache``-d factory that wires one component from
settings. Import providers from here rather than constructing components
directly so a process shares one instance of each.
"""

from infrastructure.services.providers import (
    get_aws_clients,
    get_dlq_monitor,
    get_environment_info,
    get_error_classifier,
    get_idempotency_guard,
    get_idempotency_store,
    get_metrics_sink,
    get_retry_coordinator,
    get_settings,
    get_strategy_registry,
    get_task_attempt_processor,
    get_task_lifecycle,
    get_task_store,
    get_task_submission_service,
    get_transports,
)

__all__ = [
    "get_aws_clients",
    "get_dlq_monitor",
    "get_environment_info",
    "get_error_classifier",
    "get_idempotency_guard",
    "get_idempotency_store",
    "get_metrics_sink",
    "get_retry_coordinator",
    "get_settings",
    "get_strategy_registry",
    "get_task_attempt_processor",
    "get_task_lifecycle",
    "get_task_store",
    "get_task_submission_service",
    "get_transports",
]
