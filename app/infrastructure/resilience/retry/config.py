"""Retry decision configuration.

This module defines the immutable configuration consumed by backoff
strategies and the retry coordinator. All delays are in milliseconds.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry decisions and backoff timing.

    Attributes:
        max_retries: Retries granted before an attempt is terminal
        base_delay_ms: Delay for attempt 0
        max_delay_ms: Upper bound for every computed delay
        backoff_multiplier: Growth factor per attempt
        jitter_enabled: Add uniform random jitter to each delay
        jitter_max_ms: Largest jitter added to a delay
        strategy: Name of the backoff strategy in the registry
        use_visibility_timeout: Cooperate with a visibility-timeout queue by
            capping delays to the queue's visibility window and extending the
            in-flight message instead of waiting for redelivery
        visibility_timeout_multiplier: Safety margin applied to a delay after
            it has been capped to the visibility window
        visibility_window_seconds: Visibility window assumed until the
            transport reports its own

    Example:
        config = RetryConfig(
            max_retries=3,
            base_delay_ms=1000,
            max_delay_ms=30000,
            jitter_enabled=False,
        )
    """

    max_retries: int = 2
    base_delay_ms: int = 500
    max_delay_ms: int = 10000
    backoff_multiplier: float = 2.0
    jitter_enabled: bool = True
    jitter_max_ms: int = 500
    strategy: str = "exponential"
    use_visibility_timeout: bool = False
    visibility_timeout_multiplier: float = 1.2
    visibility_window_seconds: int = 180

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be at least 0")
        if self.base_delay_ms <= 0:
            raise ValueError("base_delay_ms must be positive")
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be at least 1")
        if self.jitter_max_ms < 0:
            raise ValueError("jitter_max_ms must be at least 0")
        if not self.strategy:
            raise ValueError("strategy is required")
        if self.visibility_timeout_multiplier < 1:
            raise ValueError("visibility_timeout_multiplier must be at least 1")
        if self.visibility_window_seconds < 1:
            raise ValueError("visibility_window_seconds must be at least 1")
