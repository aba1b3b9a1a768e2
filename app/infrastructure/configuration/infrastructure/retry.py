"""Retry decision infrastructure settings."""

from typing import TYPE_CHECKING

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings

if TYPE_CHECKING:
    from infrastructure.resilience.retry.config import RetryConfig


class RetrySettings(InfrastructureSettings):
    """Retry and backoff configuration for failed task attempts.

    Environment Variables:
        RETRY_MAX_RETRIES: Retries granted before a task is dead-lettered (default: 2)
        RETRY_BASE_DELAY_MS: Delay before the first retry (default: 500ms)
        RETRY_MAX_DELAY_MS: Upper bound for any computed delay (default: 10000ms)
        RETRY_BACKOFF_MULTIPLIER: Growth factor per attempt (default: 2.0)
        RETRY_JITTER_ENABLED: Add random jitter to each delay (default: True)
        RETRY_JITTER_MAX_MS: Largest jitter added to a delay (default: 500ms)
        RETRY_STRATEGY: Registered backoff strategy name (default: exponential)
        RETRY_USE_VISIBILITY_TIMEOUT: Delay retries by extending the in-flight
            message visibility instead of relying on redelivery (default: False)
        RETRY_VISIBILITY_TIMEOUT_MULTIPLIER: Safety margin applied to delays
            capped by the queue visibility window (default: 1.2)

    Exponential Backoff:
        delay = min(base_delay * multiplier ^ attempt, max_delay)

        Example with defaults (base=500ms, multiplier=2, max=10000ms):
            Retry 1: 1000ms
            Retry 2: 2000ms
            Retry 5: 10000ms (capped)

    Example:
        ```python
        from infrastructure.services import get_settings

        config = get_settings().retry.to_config()
        ```
    """

    max_retries: int = Field(
        default=2,
        alias="RETRY_MAX_RETRIES",
        description="Retries granted before the task is dead-lettered",
    )
    base_delay_ms: int = Field(
        default=500,
        alias="RETRY_BASE_DELAY_MS",
        description="Base delay for exponential backoff (milliseconds)",
    )
    max_delay_ms: int = Field(
        default=10000,
        alias="RETRY_MAX_DELAY_MS",
        description="Maximum delay between retries (milliseconds)",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        alias="RETRY_BACKOFF_MULTIPLIER",
        description="Exponential growth factor",
    )
    jitter_enabled: bool = Field(
        default=True,
        alias="RETRY_JITTER_ENABLED",
        description="Add uniform random jitter to delays",
    )
    jitter_max_ms: int = Field(
        default=500,
        alias="RETRY_JITTER_MAX_MS",
        description="Maximum jitter added to a delay (milliseconds)",
    )
    strategy: str = Field(
        default="exponential",
        alias="RETRY_STRATEGY",
        description="Name of the backoff strategy in the strategy registry",
    )
    use_visibility_timeout: bool = Field(
        default=False,
        alias="RETRY_USE_VISIBILITY_TIMEOUT",
        description="Extend message visibility to delay retries",
    )
    visibility_timeout_multiplier: float = Field(
        default=1.2,
        alias="RETRY_VISIBILITY_TIMEOUT_MULTIPLIER",
        description="Safety margin for visibility-capped delays",
    )

    def to_config(self, visibility_window_seconds: int = 180) -> "RetryConfig":
        """Build the validated RetryConfig used by the retry coordinator.

        Args:
            visibility_window_seconds: Default visibility window of the task
                queue, used until the queue reports its own value.

        Raises:
            ValueError: If any value is out of range.
        """
        from infrastructure.resilience.retry.config import RetryConfig

        return RetryConfig(
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=self.max_delay_ms,
            backoff_multiplier=self.backoff_multiplier,
            jitter_enabled=self.jitter_enabled,
            jitter_max_ms=self.jitter_max_ms,
            strategy=self.strategy,
            use_visibility_timeout=self.use_visibility_timeout,
            visibility_timeout_multiplier=self.visibility_timeout_multiplier,
            visibility_window_seconds=visibility_window_seconds,
        )
