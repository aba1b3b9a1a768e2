"""Retry decision models.

``Retry`` and ``Terminal`` are the two outcomes of a retry decision.
``RetryAttempt`` and ``RetryMetrics`` are in-process bookkeeping only and
are never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple, Union

from infrastructure.resilience.classifier import ErrorClassification


@dataclass(frozen=True)
class Retry:
    """Retry granted.

    Fields:
        delay_ms: Delay before the next attempt
        visibility_timeout_seconds: Visibility timeout applied to the
            in-flight message, when the transport cooperates
        classification: Classification of the failure, if one was given
    """

    delay_ms: float
    visibility_timeout_seconds: Optional[int] = None
    classification: Optional[ErrorClassification] = None


class TerminalReason:
    """Why a retry was refused."""

    NON_RETRYABLE = "non_retryable"
    RETRIES_EXHAUSTED = "retries_exhausted"


@dataclass(frozen=True)
class Terminal:
    """Retry refused.

    When ``should_dead_letter`` is True the caller moves the task to Failed,
    then DeadLetter, and emits a DLQ entry. ``retry_delays_ms`` lists the
    delays this coordinator granted the task, in order.
    """

    should_dead_letter: bool
    reason: str = TerminalReason.RETRIES_EXHAUSTED
    classification: Optional[ErrorClassification] = None
    retry_delays_ms: Tuple[float, ...] = ()


RetryDecision = Union[Retry, Terminal]


@dataclass
class RetryAttempt:
    """One granted retry and its computed delay."""

    attempt_number: int
    delay_ms: float
    task_id: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class RetryMetrics:
    """Aggregate of the retries granted by one coordinator."""

    total_attempts: int
    total_delay_ms: float
    average_delay_ms: float
    strategy: str
    jitter_applied: bool
