"""Retry coordinator.

Decides, for one failed task attempt, whether the task is retried and
after what delay:

1. An error explicitly marked non-retryable is refused, whatever the attempt.
2. Otherwise, while ``attempt_index < max_retries`` a retry is granted with
   ``delay = strategy.calculate_delay(attempt_index + 1, config)``.
3. Otherwise retries are exhausted and the task is dead-lettered.

When the transport has visibility-timeout semantics the granted delay is
also converted into a visibility timeout and applied to the in-flight
message, so it is not redelivered before the delay elapses.
"""

import dataclasses
import math
import threading
from collections import OrderedDict
from typing import Any, Callable, List, Optional, Tuple, Union

from infrastructure.logging import get_module_logger
from infrastructure.observability import MetricsSink, safe_emit
from infrastructure.resilience.classifier import (
    ErrorCategory,
    ErrorClassification,
    ErrorClassifier,
)
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import (
    Retry,
    RetryAttempt,
    RetryDecision,
    RetryMetrics,
    Terminal,
    TerminalReason,
)
from infrastructure.resilience.retry.strategies import (
    StrategyRegistry,
    select_strategy,
)

logger = get_module_logger()
_default_logger = logger

# SQS hard limit, used when the transport cannot report its own
DEFAULT_MAX_VISIBILITY_SECONDS = 43200

DEFAULT_MAX_TRACKED_TASKS = 10_000

ErrorInput = Union[BaseException, str, None]
StrategySelector = Callable[[Optional[str], RetryConfig], str]


def _error_message(error: ErrorInput) -> Optional[str]:
    if error is None:
        return None
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return str(error)


def _error_type(error: ErrorInput) -> Optional[str]:
    if isinstance(error, BaseException):
        return getattr(error, "error_type", None) or type(error).__name__
    return None


class RetryCoordinator:
    """Computes retry decisions for task attempts.

    Decisions depend only on their arguments; any number of workers can
    share one instance. Granted retries are kept per task only until the
    task reaches a terminal decision, when its delays are handed over on
    the ``Terminal`` and forgotten. At most ``max_tracked_tasks`` tasks are
    tracked; the least recently retried are dropped first.

    Args:
        registry: Backoff strategies available to the coordinator
        config: Retry configuration. Its strategy must be registered.
        classifier: Error classifier (defaults to ErrorClassifier())
        transport: Queue transport for visibility timeouts, if any
        metrics: Metrics sink
        logger: Optional bound logger
        strategy_selector: Maps (error type, config) to a strategy name
        max_tracked_tasks: Tasks whose granted retries are kept in memory

    Raises:
        UnknownStrategyError: If ``config.strategy`` is not registered.
        ValueError: If ``max_tracked_tasks`` is not positive.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        config: RetryConfig,
        classifier: Optional[ErrorClassifier] = None,
        transport: Optional[Any] = None,
        metrics: Optional[MetricsSink] = None,
        logger: Optional[Any] = None,
        strategy_selector: StrategySelector = select_strategy,
        max_tracked_tasks: int = DEFAULT_MAX_TRACKED_TASKS,
    ) -> None:
        registry.get(config.strategy)
        if max_tracked_tasks < 1:
            raise ValueError("max_tracked_tasks must be positive")

        self.config = config
        self._registry = registry
        self._classifier = classifier or ErrorClassifier()
        self._transport = transport
        self._metrics = metrics
        self._select_strategy = strategy_selector
        self._log = (logger or _default_logger).bind(strategy=config.strategy)

        self._window_seconds: Optional[int] = None
        self._max_visibility_seconds: Optional[int] = None
        self.max_tracked_tasks = max_tracked_tasks
        self._in_flight: "OrderedDict[str, List[RetryAttempt]]" = OrderedDict()
        self._total_attempts = 0
        self._total_delay_ms = 0.0
        self._lock = threading.Lock()

    @property
    def uses_visibility_timeout(self) -> bool:
        """True when delays are applied as visibility timeouts."""
        return self.config.use_visibility_timeout and self._transport is not None

    def decide(
        self,
        attempt_index: int,
        error: ErrorInput = None,
        message_handle: Optional[str] = None,
        task_id: Optional[str] = None,
    ) -> RetryDecision:
        """Decide the next step after a failed attempt.

        Args:
            attempt_index: 0-based attempt number (delivery count - 1)
            error: The failure (exception or message); None if unknown
            message_handle: Receipt handle of the in-flight message, used to
                extend its visibility when a retry is granted
            task_id: Task the attempt belongs to (for logs and metrics)

        Returns:
            Retry or Terminal

        Raises:
            ValueError: If attempt_index is negative.
            UnknownStrategyError: If the selected strategy is not registered.
        """
        if attempt_index < 0:
            raise ValueError("attempt_index must be non-negative")

        message = _error_message(error)
        classification = (
            self._classifier.classify(message, attempt_index) if message else None
        )

        if self._is_non_retryable(error, classification):
            return self._refuse(
                TerminalReason.NON_RETRYABLE, attempt_index, task_id, classification
            )

        if attempt_index >= self.config.max_retries:
            return self._refuse(
                TerminalReason.RETRIES_EXHAUSTED, attempt_index, task_id, classification
            )

        config = self._effective_config()
        strategy_name = self._select_strategy(_error_type(error), config)
        strategy = self._registry.get(strategy_name)
        delay_ms = strategy.calculate_delay(attempt_index + 1, config)

        visibility_timeout = None
        if self.uses_visibility_timeout:
            visibility_timeout = self.visibility_timeout_for(delay_ms)
            if message_handle is not None:
                self._transport.extend_visibility(message_handle, visibility_timeout)

        self._record(
            RetryAttempt(
                attempt_number=attempt_index + 1,
                delay_ms=delay_ms,
                task_id=task_id,
                error=message,
            )
        )

        self._log.info(
            "retry_scheduled",
            task_id=task_id,
            attempt_index=attempt_index,
            delay_ms=round(delay_ms, 2),
            visibility_timeout_seconds=visibility_timeout,
            strategy_used=strategy_name,
            category=classification.category.value if classification else None,
        )
        safe_emit(
            self._metrics,
            "RetryScheduled",
            1,
            tags={"strategy": strategy_name, "attempt": attempt_index + 1},
        )
        safe_emit(self._metrics, "RetryDelay", delay_ms, unit="Milliseconds")

        return Retry(
            delay_ms=delay_ms,
            visibility_timeout_seconds=visibility_timeout,
            classification=classification,
        )

    def visibility_timeout_for(self, delay_ms: float) -> int:
        """Convert a delay to a visibility timeout: clamp(ceil(delay / 1000), 1, max)."""
        seconds = math.ceil(delay_ms / 1000)
        return max(1, min(seconds, self._max_visibility()))

    def get_metrics(self) -> RetryMetrics:
        """Aggregate the retries granted so far."""
        with self._lock:
            count = self._total_attempts
            total = self._total_delay_ms
        return RetryMetrics(
            total_attempts=count,
            total_delay_ms=total,
            average_delay_ms=total / count if count else 0.0,
            strategy=self.config.strategy,
            jitter_applied=self.config.jitter_enabled,
        )

    def delays_for(self, task_id: str) -> List[float]:
        """Delays granted so far to a task still being retried, in order."""
        with self._lock:
            return [a.delay_ms for a in self._in_flight.get(task_id, ())]

    @property
    def tracked_task_count(self) -> int:
        """Number of tasks with granted retries held in memory."""
        with self._lock:
            return len(self._in_flight)

    def reset(self) -> None:
        """Forget recorded attempts and cached transport attributes."""
        with self._lock:
            self._in_flight.clear()
            self._total_attempts = 0
            self._total_delay_ms = 0.0
        self._window_seconds = None
        self._max_visibility_seconds = None

    def _is_non_retryable(
        self,
        error: ErrorInput,
        classification: Optional[ErrorClassification],
    ) -> bool:
        flag = getattr(error, "retryable", None)
        if flag is not None:
            return flag is False
        if classification is None or classification.retryable:
            return False
        # UNKNOWN turns non-retryable by attempt count, which is the job of
        # max_retries here
        return classification.category != ErrorCategory.UNKNOWN

    def _refuse(
        self,
        reason: str,
        attempt_index: int,
        task_id: Optional[str],
        classification: Optional[ErrorClassification],
    ) -> Terminal:
        self._log.warning(
            "retry_refused",
            task_id=task_id,
            attempt_index=attempt_index,
            max_retries=self.config.max_retries,
            reason=reason,
            category=classification.category.value if classification else None,
        )
        safe_emit(self._metrics, "RetryRefused", 1, tags={"reason": reason})
        return Terminal(
            should_dead_letter=True,
            reason=reason,
            classification=classification,
            retry_delays_ms=self._forget(task_id),
        )

    def _record(self, attempt: RetryAttempt) -> None:
        with self._lock:
            self._total_attempts += 1
            self._total_delay_ms += attempt.delay_ms
            if attempt.task_id is None:
                return
            attempts = self._in_flight.pop(attempt.task_id, [])
            attempts.append(attempt)
            self._in_flight[attempt.task_id] = attempts
            while len(self._in_flight) > self.max_tracked_tasks:
                self._in_flight.popitem(last=False)

    def _forget(self, task_id: Optional[str]) -> Tuple[float, ...]:
        if task_id is None:
            return ()
        with self._lock:
            attempts = self._in_flight.pop(task_id, [])
        return tuple(a.delay_ms for a in attempts)

    def _effective_config(self) -> RetryConfig:
        if not self.uses_visibility_timeout:
            return self.config
        window = self._visibility_window()
        if window == self.config.visibility_window_seconds:
            return self.config
        return dataclasses.replace(self.config, visibility_window_seconds=window)

    def _visibility_window(self) -> int:
        if self._window_seconds is not None:
            return self._window_seconds
        try:
            window = int(self._transport.get_visibility_window_seconds())
            if window < 1:
                raise ValueError(f"invalid visibility window {window}")
        except Exception as e:  # pylint: disable=broad-except
            self._log.warning(
                "visibility_window_lookup_failed",
                error=str(e),
                fallback_seconds=self.config.visibility_window_seconds,
            )
            return self.config.visibility_window_seconds
        self._window_seconds = window
        return window

    def _max_visibility(self) -> int:
        if self._max_visibility_seconds is not None:
            return self._max_visibility_seconds
        if self._transport is None:
            return DEFAULT_MAX_VISIBILITY_SECONDS
        try:
            max_seconds = int(self._transport.get_max_visibility_seconds())
            if max_seconds < 1:
                raise ValueError(f"invalid max visibility {max_seconds}")
        except Exception as e:  # pylint: disable=broad-except
            self._log.warning(
                "max_visibility_lookup_failed",
                error=str(e),
                fallback_seconds=DEFAULT_MAX_VISIBILITY_SECONDS,
            )
            return DEFAULT_MAX_VISIBILITY_SECONDS
        self._max_visibility_seconds = max_seconds
        return max_seconds
