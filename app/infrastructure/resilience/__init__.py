"""Resilience: failure classification and retry decisions."""

from infrastructure.resilience.classifier import (
    ErrorCategory,
    ErrorClassification,
    ErrorClassifier,
    Severity,
)
from infrastructure.resilience.retry import (
    Retry,
    RetryConfig,
    RetryCoordinator,
    StrategyRegistry,
    Terminal,
    UnknownStrategyError,
    default_registry,
)

__all__ = [
    "ErrorCategory",
    "ErrorClassification",
    "ErrorClassifier",
    "Severity",
    "Retry",
    "RetryConfig",
    "RetryCoordinator",
    "StrategyRegistry",
    "Terminal",
    "UnknownStrategyError",
    "default_registry",
]
