from unittest.mock import MagicMock

import pytest

from infrastructure.resilience import ErrorCategory
from infrastructure.resilience.retry import (
    Retry,
    RetryCoordinator,
    Terminal,
    TerminalReason,
    UnknownStrategyError,
    default_registry,
)
from modules.tasks.errors import NonRetryableError, RetryableError


@pytest.fixture
def make_coordinator(retry_config_factory, metrics):
    """Factory for coordinators; transport is None unless given."""

    def _factory(transport=None, registry=None, **config_overrides):
        return RetryCoordinator(
            registry or default_registry(),
            retry_config_factory(**config_overrides),
            transport=transport,
            metrics=metrics,
        )

    return _factory


@pytest.fixture
def mock_transport():
    transport = MagicMock()
    transport.get_visibility_window_seconds.return_value = 180
    transport.get_max_visibility_seconds.return_value = 43200
    return transport


@pytest.mark.unit
class TestDecide:
    """Tests for retry decisions."""

    def test_retries_until_exhausted(self, make_coordinator):
        coordinator = make_coordinator(max_retries=2)

        first = coordinator.decide(0, "Connection timeout", task_id="t-1")
        second = coordinator.decide(1, "Connection timeout", task_id="t-1")
        third = coordinator.decide(2, "Connection timeout", task_id="t-1")

        assert first == Retry(delay_ms=2000.0, classification=first.classification)
        assert isinstance(second, Retry) and second.delay_ms == 4000.0
        assert isinstance(third, Terminal)
        assert third.should_dead_letter is True
        assert third.reason == TerminalReason.RETRIES_EXHAUSTED

    def test_zero_retries_is_terminal_immediately(self, make_coordinator):
        decision = make_coordinator(max_retries=0).decide(0, "Connection timeout")

        assert isinstance(decision, Terminal)
        assert decision.reason == TerminalReason.RETRIES_EXHAUSTED

    def test_non_retryable_error_is_refused(self, make_coordinator):
        error = NonRetryableError("Simulated ResourceNotFoundError", task_id="t-1")

        decision = make_coordinator().decide(0, error, task_id="t-1")

        assert isinstance(decision, Terminal)
        assert decision.reason == TerminalReason.NON_RETRYABLE

    def test_non_retryable_classification_is_refused(self, make_coordinator):
        decision = make_coordinator().decide(0, "invalid payload")

        assert isinstance(decision, Terminal)
        assert decision.reason == TerminalReason.NON_RETRYABLE
        assert decision.classification.category == ErrorCategory.VALIDATION

    def test_explicit_retryable_flag_overrides_classification(self, make_coordinator):
        error = RetryableError("Simulated ValidationError")

        assert isinstance(make_coordinator().decide(0, error), Retry)

    def test_unknown_classification_defers_to_max_retries(self, make_coordinator):
        coordinator = make_coordinator(max_retries=5)

        assert isinstance(coordinator.decide(4, "Something odd"), Retry)

    def test_unknown_error_is_retried(self, make_coordinator):
        decision = make_coordinator().decide(0, None)

        assert isinstance(decision, Retry)
        assert decision.classification is None

    def test_negative_attempt_index_rejected(self, make_coordinator):
        with pytest.raises(ValueError):
            make_coordinator().decide(-1, "Connection timeout")

    def test_unregistered_strategy_rejected_at_construction(self, retry_config_factory):
        with pytest.raises(UnknownStrategyError):
            RetryCoordinator(default_registry(), retry_config_factory(strategy="linear"))

    def test_custom_strategy_selector(self, retry_config_factory):
        registry = default_registry()
        fixed = MagicMock()
        fixed.calculate_delay.return_value = 123.0
        registry.register("fixed", fixed)
        coordinator = RetryCoordinator(
            registry,
            retry_config_factory(),
            strategy_selector=lambda error_type, config: (
                "fixed" if error_type == "ServiceUnavailableError" else config.strategy
            ),
        )

        error = RetryableError("boom", error_type="ServiceUnavailableError")
        decision = coordinator.decide(0, error)

        assert decision.delay_ms == 123.0
        fixed.calculate_delay.assert_called_once_with(1, coordinator.config)

    def test_selected_strategy_must_be_registered(self, retry_config_factory):
        coordinator = RetryCoordinator(
            default_registry(),
            retry_config_factory(),
            strategy_selector=lambda error_type, config: "missing",
        )

        with pytest.raises(UnknownStrategyError):
            coordinator.decide(0, "Connection timeout")

    def test_metrics_emitted(self, make_coordinator, metrics):
        coordinator = make_coordinator(max_retries=1)

        coordinator.decide(0, "Connection timeout")
        coordinator.decide(1, "Connection timeout")

        assert metrics.names() == ["RetryScheduled", "RetryDelay", "RetryRefused"]
        assert metrics.values("RetryDelay") == [2000.0]


@pytest.mark.unit
class TestVisibilityTimeout:
    """Tests for visibility-timeout cooperation."""

    def test_retry_extends_message_visibility(self, make_coordinator, mock_transport):
        coordinator = make_coordinator(
            transport=mock_transport, use_visibility_timeout=True, base_delay_ms=1000
        )

        decision = coordinator.decide(0, "Connection timeout", message_handle="rh-1")

        # 2000ms * 1.2 multiplier
        assert decision.delay_ms == pytest.approx(2400.0)
        assert decision.visibility_timeout_seconds == 3
        mock_transport.extend_visibility.assert_called_once_with("rh-1", 3)

    def test_no_handle_means_no_extension(self, make_coordinator, mock_transport):
        coordinator = make_coordinator(transport=mock_transport, use_visibility_timeout=True)

        decision = coordinator.decide(0, "Connection timeout")

        assert decision.visibility_timeout_seconds is not None
        mock_transport.extend_visibility.assert_not_called()

    def test_terminal_does_not_extend(self, make_coordinator, mock_transport):
        coordinator = make_coordinator(
            transport=mock_transport, use_visibility_timeout=True, max_retries=0
        )

        coordinator.decide(0, "Connection timeout", message_handle="rh-1")

        mock_transport.extend_visibility.assert_not_called()

    def test_disabled_without_flag(self, make_coordinator, mock_transport):
        coordinator = make_coordinator(transport=mock_transport)

        decision = coordinator.decide(0, "Connection timeout", message_handle="rh-1")

        assert coordinator.uses_visibility_timeout is False
        assert decision.visibility_timeout_seconds is None
        mock_transport.extend_visibility.assert_not_called()

    def test_transport_window_caps_delay(self, make_coordinator, mock_transport):
        mock_transport.get_visibility_window_seconds.return_value = 2
        coordinator = make_coordinator(
            transport=mock_transport,
            use_visibility_timeout=True,
            base_delay_ms=1000,
            max_delay_ms=60000,
        )

        decision = coordinator.decide(1, "Connection timeout")

        # 4000ms capped to 80% of 2s, then * 1.2
        assert decision.delay_ms == pytest.approx(1920.0)

    def test_window_lookup_failure_falls_back_to_config(
        self, make_coordinator, mock_transport
    ):
        mock_transport.get_visibility_window_seconds.side_effect = RuntimeError("down")
        coordinator = make_coordinator(
            transport=mock_transport,
            use_visibility_timeout=True,
            base_delay_ms=1000,
            max_delay_ms=60000,
            visibility_window_seconds=3,
        )

        decision = coordinator.decide(1, "Connection timeout")

        # 4000ms capped to 80% of 3s, then * 1.2
        assert decision.delay_ms == pytest.approx(2880.0)

    def test_visibility_timeout_is_clamped(self, make_coordinator, mock_transport):
        mock_transport.get_max_visibility_seconds.return_value = 60
        coordinator = make_coordinator(transport=mock_transport, use_visibility_timeout=True)

        assert coordinator.visibility_timeout_for(0) == 1
        assert coordinator.visibility_timeout_for(1001) == 2
        assert coordinator.visibility_timeout_for(10_000_000) == 60

    def test_max_visibility_lookup_failure_uses_sqs_limit(
        self, make_coordinator, mock_transport
    ):
        mock_transport.get_max_visibility_seconds.side_effect = RuntimeError("down")
        coordinator = make_coordinator(transport=mock_transport, use_visibility_timeout=True)

        assert coordinator.visibility_timeout_for(10_000_000_000) == 43200

    def test_extend_failure_propagates(self, make_coordinator, mock_transport):
        mock_transport.extend_visibility.side_effect = RuntimeError("handle expired")
        coordinator = make_coordinator(transport=mock_transport, use_visibility_timeout=True)

        with pytest.raises(RuntimeError):
            coordinator.decide(0, "Connection timeout", message_handle="rh-1")


@pytest.mark.unit
class TestBookkeeping:
    """Tests for in-process retry metrics."""

    def test_get_metrics(self, make_coordinator):
        coordinator = make_coordinator(max_retries=3)
        coordinator.decide(0, "Connection timeout", task_id="a")
        coordinator.decide(1, "Connection timeout", task_id="a")
        coordinator.decide(0, "Connection timeout", task_id="b")

        metrics = coordinator.get_metrics()

        assert metrics.total_attempts == 3
        assert metrics.total_delay_ms == 8000.0
        assert metrics.average_delay_ms == pytest.approx(8000.0 / 3)
        assert metrics.strategy == "exponential"
        assert metrics.jitter_applied is False

    def test_delays_for_task(self, make_coordinator):
        coordinator = make_coordinator(max_retries=3)
        coordinator.decide(0, "Connection timeout", task_id="a")
        coordinator.decide(0, "Connection timeout", task_id="b")
        coordinator.decide(1, "Connection timeout", task_id="a")

        assert coordinator.delays_for("a") == [2000.0, 4000.0]
        assert coordinator.delays_for("missing") == []

    def test_reset(self, make_coordinator):
        coordinator = make_coordinator()
        coordinator.decide(0, "Connection timeout", task_id="a")

        coordinator.reset()

        assert coordinator.get_metrics().total_attempts == 0
        assert coordinator.get_metrics().average_delay_ms == 0.0
        assert coordinator.tracked_task_count == 0

    def test_terminal_decision_hands_over_and_forgets_delays(self, make_coordinator):
        coordinator = make_coordinator(max_retries=2)
        coordinator.decide(0, "Connection timeout", task_id="a")
        coordinator.decide(1, "Connection timeout", task_id="a")

        terminal = coordinator.decide(2, "Connection timeout", task_id="a")

        assert terminal.retry_delays_ms == (2000.0, 4000.0)
        assert coordinator.delays_for("a") == []
        assert coordinator.tracked_task_count == 0
        assert coordinator.get_metrics().total_attempts == 2

    def test_tracking_does_not_grow_once_tasks_finish(self, make_coordinator):
        coordinator = make_coordinator(max_retries=2)

        for i in range(500):
            task_id = f"t-{i}"
            coordinator.decide(0, "Connection timeout", task_id=task_id)
            coordinator.decide(1, "Connection timeout", task_id=task_id)
            coordinator.decide(2, "Connection timeout", task_id=task_id)

        assert coordinator.tracked_task_count == 0
        assert coordinator.get_metrics().total_attempts == 1000

    def test_non_retryable_refusal_forgets_task(self, make_coordinator):
        coordinator = make_coordinator()
        coordinator.decide(0, "Connection timeout", task_id="a")

        terminal = coordinator.decide(1, "invalid payload", task_id="a")

        assert terminal.retry_delays_ms == (2000.0,)
        assert coordinator.tracked_task_count == 0

    def test_tracked_tasks_are_bounded(self, retry_config_factory):
        coordinator = RetryCoordinator(
            default_registry(), retry_config_factory(), max_tracked_tasks=2
        )
        for task_id in ("a", "b", "c"):
            coordinator.decide(0, "Connection timeout", task_id=task_id)
        coordinator.decide(1, "Connection timeout", task_id="b")
        coordinator.decide(0, "Connection timeout", task_id="d")

        assert coordinator.tracked_task_count == 2
        assert coordinator.delays_for("a") == []
        assert coordinator.delays_for("c") == []
        assert coordinator.delays_for("b") == [2000.0, 4000.0]

    def test_untracked_attempts_still_counted(self, make_coordinator):
        coordinator = make_coordinator()

        coordinator.decide(0, "Connection timeout")

        assert coordinator.tracked_task_count == 0
        assert coordinator.get_metrics().total_attempts == 1

    def test_invalid_max_tracked_tasks(self, retry_config_factory):
        with pytest.raises(ValueError):
            RetryCoordinator(
                default_registry(), retry_config_factory(), max_tracked_tasks=0
            )
