"""Unit tests for infrastructure.configuration settings.

Tests cover:
- RetrySettings defaults, environment aliases and conversion to RetryConfig
- TasksFeatureSettings validation and derived values
- QueueSettings bounds
- Settings aggregation
"""

import pytest
from pydantic import ValidationError

from infrastructure.configuration import RetrySettings, Settings
from infrastructure.configuration.features import TasksFeatureSettings
from infrastructure.configuration.infrastructure import (
    IdempotencySettings,
    QueueSettings,
)
from infrastructure.configuration.integrations import AwsSettings
from infrastructure.resilience.retry import RetryConfig


@pytest.mark.unit
class TestRetrySettings:
    """Test suite for RetrySettings configuration."""

    def test_defaults(self):
        """RetrySettings uses the documented defaults."""
        retry = RetrySettings()

        assert retry.max_retries == 2
        assert retry.base_delay_ms == 500
        assert retry.max_delay_ms == 10000
        assert retry.backoff_multiplier == 2.0
        assert retry.jitter_enabled is True
        assert retry.strategy == "exponential"
        assert retry.use_visibility_timeout is False

    def test_environment_aliases(self, monkeypatch):
        """RETRY_* variables override the defaults."""
        monkeypatch.setenv("RETRY_MAX_RETRIES", "4")
        monkeypatch.setenv("RETRY_BASE_DELAY_MS", "1000")
        monkeypatch.setenv("RETRY_MAX_DELAY_MS", "30000")
        monkeypatch.setenv("RETRY_JITTER_ENABLED", "false")
        monkeypatch.setenv("RETRY_USE_VISIBILITY_TIMEOUT", "true")

        retry = RetrySettings()

        assert retry.max_retries == 4
        assert retry.base_delay_ms == 1000
        assert retry.max_delay_ms == 30000
        assert retry.jitter_enabled is False
        assert retry.use_visibility_timeout is True

    def test_to_config(self):
        """to_config builds a RetryConfig with the queue's visibility window."""
        config = RetrySettings(max_retries=3, jitter_enabled=False).to_config(
            visibility_window_seconds=60
        )

        assert isinstance(config, RetryConfig)
        assert config.max_retries == 3
        assert config.jitter_enabled is False
        assert config.visibility_window_seconds == 60

    def test_to_config_rejects_inconsistent_values(self):
        """Out-of-range combinations fail when the RetryConfig is built."""
        retry = RetrySettings(base_delay_ms=5000, max_delay_ms=1000)

        with pytest.raises(ValueError):
            retry.to_config()


@pytest.mark.unit
class TestTasksFeatureSettings:
    """Test suite for TasksFeatureSettings."""

    def test_failure_threshold_per_mille(self, monkeypatch):
        monkeypatch.setenv("FAILURE_RATE", "0.25")

        assert TasksFeatureSettings().failure_threshold_per_mille == 250

    @pytest.mark.parametrize("rate", ["-0.1", "1.5"])
    def test_failure_rate_out_of_range(self, monkeypatch, rate):
        monkeypatch.setenv("FAILURE_RATE", rate)

        with pytest.raises(ValidationError):
            TasksFeatureSettings()

    def test_ttl_seconds(self):
        assert TasksFeatureSettings(TASK_TTL_DAYS=2).ttl_seconds == 172800


@pytest.mark.unit
class TestQueueSettings:
    def test_defaults(self):
        queue = QueueSettings()

        assert queue.QUEUE_BACKEND == "memory"
        assert queue.DEFAULT_VISIBILITY_SECONDS == 180
        assert queue.MAX_VISIBILITY_SECONDS == 43200
        assert queue.MAX_RECEIVE_COUNT == 3

    def test_max_visibility_cannot_exceed_sqs_limit(self, monkeypatch):
        monkeypatch.setenv("QUEUE_MAX_VISIBILITY_SECONDS", "50000")

        with pytest.raises(ValidationError):
            QueueSettings()


@pytest.mark.unit
class TestSettings:
    """Test suite for the Settings aggregator."""

    def test_subsettings_are_instantiated(self):
        settings = Settings()

        assert isinstance(settings.aws, AwsSettings)
        assert isinstance(settings.tasks, TasksFeatureSettings)
        assert isinstance(settings.retry, RetrySettings)
        assert isinstance(settings.idempotency, IdempotencySettings)
        assert isinstance(settings.queue, QueueSettings)

    def test_override_subsetting(self):
        retry = RetrySettings(max_retries=7)

        assert Settings(retry=retry).retry.max_retries == 7

    def test_is_production(self, monkeypatch):
        monkeypatch.setenv("PREFIX", "")
        assert Settings().is_production is True

        monkeypatch.setenv("PREFIX", "dev-")
        assert Settings().is_production is False

    def test_aws_settings_aliases(self, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "ca-central-1")
        monkeypatch.setenv("AWS_ENDPOINT_URL", "http://localhost:4566")
        monkeypatch.setenv("AWS_MAX_API_RETRIES", "5")

        aws = AwsSettings()

        assert aws.AWS_REGION == "ca-central-1"
        assert aws.ENDPOINT_URL == "http://localhost:4566"
        assert aws.MAX_API_RETRIES == 5
