"""Keyword-based classification of failure messages.

The classifier maps an error message and the number of attempts already
made to a category, a severity, a retryability flag and a suggested
operator action. Rules are matched case-insensitively in table order and
the first match wins, so "internal timeout" is NETWORK rather than SYSTEM.

    validation / invalid / malformed  -> VALIDATION  MEDIUM                not retryable
    network / connection / timeout    -> NETWORK     HIGH if attempts > 2  retryable
    throttl / rate / limit            -> RATE_LIMIT  MEDIUM                retryable
    system / internal / server        -> SYSTEM      HIGH                  retryable
    anything else                     -> UNKNOWN     HIGH if attempts > 1  retryable while attempts < 3
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple


class ErrorCategory(str, Enum):
    """Failure categories used for retry decisions and DLQ analytics."""

    VALIDATION = "VALIDATION"
    NETWORK = "NETWORK"
    RATE_LIMIT = "RATE_LIMIT"
    SYSTEM = "SYSTEM"
    UNKNOWN = "UNKNOWN"


class Severity(str, Enum):
    """Operational severity of a failure."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


SUGGESTED_ACTIONS = {
    ErrorCategory.VALIDATION: "Review and fix input data validation",
    ErrorCategory.NETWORK: "Check network connectivity and service availability",
    ErrorCategory.RATE_LIMIT: "Implement exponential backoff or reduce request rate",
    ErrorCategory.SYSTEM: "Check system health and resource availability",
    ErrorCategory.UNKNOWN: "Manual investigation required",
}


@dataclass(frozen=True)
class ErrorClassification:
    """Result of classifying one failure."""

    category: ErrorCategory
    severity: Severity
    retryable: bool
    suggested_action: str


@dataclass(frozen=True)
class _Rule:
    category: ErrorCategory
    keywords: Tuple[str, ...]
    severity: Callable[[int], Severity]
    retryable: Callable[[int], bool]


_RULES: Tuple[_Rule, ...] = (
    _Rule(
        ErrorCategory.VALIDATION,
        ("validation", "invalid", "malformed"),
        lambda attempts: Severity.MEDIUM,
        lambda attempts: False,
    ),
    _Rule(
        ErrorCategory.NETWORK,
        ("network", "connection", "timeout"),
        lambda attempts: Severity.HIGH if attempts > 2 else Severity.MEDIUM,
        lambda attempts: True,
    ),
    _Rule(
        ErrorCategory.RATE_LIMIT,
        ("throttl", "rate", "limit"),
        lambda attempts: Severity.MEDIUM,
        lambda attempts: True,
    ),
    _Rule(
        ErrorCategory.SYSTEM,
        ("system", "internal", "server"),
        lambda attempts: Severity.HIGH,
        lambda attempts: True,
    ),
)


class ErrorClassifier:
    """Pure, deterministic error classifier.

    Example:
        >>> ErrorClassifier().classify("Connection timeout", 1).category
        <ErrorCategory.NETWORK: 'NETWORK'>
    """

    def classify(
        self, message: Optional[str], attempt_count: int = 0
    ) -> ErrorClassification:
        """Classify ``message`` given how many attempts have been made.

        Args:
            message: Error message; None or empty is classified UNKNOWN
            attempt_count: Attempts (or retries) already made for the task
        """
        text = (message or "").lower()
        for rule in _RULES:
            if any(keyword in text for keyword in rule.keywords):
                return ErrorClassification(
                    category=rule.category,
                    severity=rule.severity(attempt_count),
                    retryable=rule.retryable(attempt_count),
                    suggested_action=SUGGESTED_ACTIONS[rule.category],
                )

        return ErrorClassification(
            category=ErrorCategory.UNKNOWN,
            severity=Severity.HIGH if attempt_count > 1 else Severity.MEDIUM,
            retryable=attempt_count < 3,
            suggested_action=SUGGESTED_ACTIONS[ErrorCategory.UNKNOWN],
        )
