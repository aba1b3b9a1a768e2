"""Backoff strategies and the strategy registry.

A strategy is a pure function of (attempt, config) returning a delay in
milliseconds within ``[0, config.max_delay_ms]``. The registry maps
strategy names to implementations and is passed to the retry coordinator
explicitly, so new strategies (linear, fixed, ...) can be registered
without touching callers.
"""

import random
from typing import Dict, List, Mapping, Optional, Protocol

from infrastructure.resilience.retry.config import RetryConfig

# Share of the visibility window a delay may occupy before the safety
# multiplier is applied
VISIBILITY_WINDOW_FRACTION = 0.8


class UnknownStrategyError(LookupError):
    """Raised when a retry configuration names an unregistered strategy."""

    def __init__(self, name: str, available: List[str]):
        self.name = name
        self.available = available
        super().__init__(
            f"Unknown retry strategy '{name}'. Registered: {', '.join(available) or 'none'}"
        )


class BackoffStrategy(Protocol):
    """Computes the delay before a retry."""

    def calculate_delay(self, attempt: int, config: RetryConfig) -> float:
        """Return the delay in milliseconds for a non-negative ``attempt``."""
        ...


class ExponentialBackoffStrategy:
    """``min(base * multiplier ^ attempt, max)`` with optional jitter.

    When ``config.use_visibility_timeout`` is set, the delay is first capped
    to 80% of the visibility window and then scaled by
    ``config.visibility_timeout_multiplier``, so the delay stays within what
    the queue can represent.

    Args:
        rng: Random source for jitter (inject a seeded one for tests)
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def calculate_delay(self, attempt: int, config: RetryConfig) -> float:
        if attempt < 0:
            raise ValueError("attempt must be non-negative")

        try:
            delay = config.base_delay_ms * (config.backoff_multiplier**attempt)
        except OverflowError:
            delay = float(config.max_delay_ms)
        delay = min(delay, config.max_delay_ms)

        if config.use_visibility_timeout:
            window_cap_ms = (
                config.visibility_window_seconds * 1000 * VISIBILITY_WINDOW_FRACTION
            )
            delay = min(delay, window_cap_ms) * config.visibility_timeout_multiplier
            delay = min(delay, config.max_delay_ms)

        if config.jitter_enabled and config.jitter_max_ms > 0:
            delay += self._rng.uniform(0, config.jitter_max_ms)
            delay = min(delay, config.max_delay_ms)

        return float(delay)


class StrategyRegistry:
    """Named collection of backoff strategies.

    Example:
        registry = StrategyRegistry({"exponential": ExponentialBackoffStrategy()})
        registry.register("fixed", FixedDelayStrategy())
        strategy = registry.get(config.strategy)
    """

    def __init__(
        self, strategies: Optional[Mapping[str, BackoffStrategy]] = None
    ) -> None:
        self._strategies: Dict[str, BackoffStrategy] = dict(strategies or {})

    def register(
        self, name: str, strategy: BackoffStrategy, replace: bool = False
    ) -> None:
        """Register ``strategy`` under ``name``.

        Raises:
            ValueError: If ``name`` is empty, or already registered and
                ``replace`` is False.
        """
        if not name:
            raise ValueError("strategy name is required")
        if name in self._strategies and not replace:
            raise ValueError(f"Retry strategy '{name}' is already registered")
        self._strategies[name] = strategy

    def get(self, name: str) -> BackoffStrategy:
        """Look up a strategy.

        Raises:
            UnknownStrategyError: If no strategy is registered under ``name``.
        """
        try:
            return self._strategies[name]
        except KeyError:
            raise UnknownStrategyError(name, self.names()) from None

    def names(self) -> List[str]:
        """Registered strategy names, sorted."""
        return sorted(self._strategies)

    def __contains__(self, name: object) -> bool:
        return name in self._strategies


def default_registry(rng: Optional[random.Random] = None) -> StrategyRegistry:
    """Registry holding the built-in exponential strategy."""
    return StrategyRegistry({"exponential": ExponentialBackoffStrategy(rng)})


def select_strategy(error_type: Optional[str], config: RetryConfig) -> str:
    """Choose the strategy name for a failure.

    Every error type currently uses the configured strategy. Replace this
    function on the coordinator to route error types to other strategies.
    """
    return config.strategy
