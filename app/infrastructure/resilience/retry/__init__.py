"""Retry decisions for failed task attempts.

Architecture:
- RetryConfig: Immutable retry and backoff configuration
- BackoffStrategy / StrategyRegistry: Named, pluggable delay calculations
- RetryCoordinator: Grants or refuses a retry and sets visibility timeouts
- Retry / Terminal: Decision outcomes

Usage:
    from infrastructure.resilience.retry import (
        RetryConfig,
        RetryCoordinator,
        default_registry,
    )

    coordinator = RetryCoordinator(default_registry(), RetryConfig())
    decision = coordinator.decide(attempt_index=0, error=exc)
"""

from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.coordinator import RetryCoordinator
from infrastructure.resilience.retry.models import (
    Retry,
    RetryAttempt,
    RetryDecision,
    RetryMetrics,
    Terminal,
    TerminalReason,
)
from infrastructure.resilience.retry.strategies import (
    BackoffStrategy,
    ExponentialBackoffStrategy,
    StrategyRegistry,
    UnknownStrategyError,
    default_registry,
    select_strategy,
)

__all__ = [
    "BackoffStrategy",
    "ExponentialBackoffStrategy",
    "Retry",
    "RetryAttempt",
    "RetryConfig",
    "RetryCoordinator",
    "RetryDecision",
    "RetryMetrics",
    "StrategyRegistry",
    "Terminal",
    "TerminalReason",
    "UnknownStrategyError",
    "default_registry",
    "select_strategy",
]
