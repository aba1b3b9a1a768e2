import pytest

from infrastructure.resilience import (
    ErrorCategory,
    ErrorClassifier,
    Severity,
)


@pytest.fixture
def classifier():
    return ErrorClassifier()


@pytest.mark.unit
class TestErrorClassifier:
    """Tests for keyword-based error classification."""

    def test_network_error(self, classifier):
        result = classifier.classify("Connection timeout", 1)

        assert result.category == ErrorCategory.NETWORK
        assert result.severity == Severity.MEDIUM
        assert result.retryable is True
        assert result.suggested_action == (
            "Check network connectivity and service availability"
        )

    def test_network_error_severity_rises_after_two_attempts(self, classifier):
        assert classifier.classify("Connection timeout", 2).severity == Severity.MEDIUM
        assert classifier.classify("Connection timeout", 3).severity == Severity.HIGH

    def test_validation_error(self, classifier):
        result = classifier.classify("invalid payload", 0)

        assert result.category == ErrorCategory.VALIDATION
        assert result.severity == Severity.MEDIUM
        assert result.retryable is False

    def test_rate_limit_error(self, classifier):
        result = classifier.classify("Request was THROTTLED", 5)

        assert result.category == ErrorCategory.RATE_LIMIT
        assert result.severity == Severity.MEDIUM
        assert result.retryable is True

    def test_system_error(self, classifier):
        result = classifier.classify("Internal server error", 0)

        assert result.category == ErrorCategory.SYSTEM
        assert result.severity == Severity.HIGH
        assert result.retryable is True

    def test_first_matching_rule_wins(self, classifier):
        assert classifier.classify("internal timeout", 0).category == ErrorCategory.NETWORK
        assert classifier.classify("invalid connection", 0).category == (
            ErrorCategory.VALIDATION
        )

    @pytest.mark.parametrize(
        "attempts, severity, retryable",
        [
            (0, Severity.MEDIUM, True),
            (1, Severity.MEDIUM, True),
            (2, Severity.HIGH, True),
            (3, Severity.HIGH, False),
        ],
    )
    def test_unknown_error(self, classifier, attempts, severity, retryable):
        result = classifier.classify("Something odd happened", attempts)

        assert result.category == ErrorCategory.UNKNOWN
        assert result.severity == severity
        assert result.retryable is retryable
        assert result.suggested_action == "Manual investigation required"

    @pytest.mark.parametrize("message", [None, ""])
    def test_missing_message_is_unknown(self, classifier, message):
        assert classifier.classify(message).category == ErrorCategory.UNKNOWN

    def test_is_deterministic(self, classifier):
        assert classifier.classify("Simulated ServiceUnavailableError", 2) == (
            classifier.classify("Simulated ServiceUnavailableError", 2)
        )
