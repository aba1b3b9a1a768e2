"""Unit tests for infrastructure.logging.formatters module."""

import pytest

from infrastructure.logging.formatters import (
    DEFAULT_MASK_VALUE,
    add_app_info,
    is_sensitive_key,
    mask_sensitive_data,
    redact_sensitive,
    truncate_large_values,
)


@pytest.mark.unit
class TestRedactSensitive:
    """Test suite for redact_sensitive."""

    def test_masks_nested_keys(self):
        value = {"user": "a", "auth": {"token": "x"}, "items": [{"password": "p"}]}

        assert redact_sensitive(value) == {
            "user": "a",
            "auth": DEFAULT_MASK_VALUE,
            "items": [{"password": DEFAULT_MASK_VALUE}],
        }

    def test_does_not_modify_input(self):
        value = {"secret": "s", "nested": {"api_key": "k"}}

        redact_sensitive(value)

        assert value == {"secret": "s", "nested": {"api_key": "k"}}

    def test_none_values_are_kept(self):
        assert redact_sensitive({"token": None}) == {"token": None}

    def test_custom_patterns_and_mask(self):
        result = redact_sensitive(
            {"license_key": "abc", "name": "n"}, frozenset({"key"}), "[REDACTED]"
        )

        assert result == {"license_key": "[REDACTED]", "name": "n"}

    @pytest.mark.parametrize("key", ["Authorization", "X-API-KEY", "session_id"])
    def test_is_sensitive_key_is_case_insensitive(self, key):
        assert is_sensitive_key(key) is True


@pytest.mark.unit
class TestProcessors:
    """Test suite for structlog processors."""

    def test_add_app_info(self):
        processor = add_app_info("task-resilience", "abc123")

        event = processor(None, "info", {"event": "x"})

        assert event["app_name"] == "task-resilience"
        assert event["app_version"] == "abc123"
        assert "stage" not in event

    def test_add_app_info_with_stage(self):
        processor = add_app_info("task-resilience", "abc123", stage="staging")

        event = processor(None, "info", {"event": "x"})

        assert event["stage"] == "staging"

    def test_mask_sensitive_data_with_additional_patterns(self):
        processor = mask_sensitive_data(additional_patterns=frozenset({"ssn"}))

        event = processor(None, "info", {"event": "x", "ssn": "1", "token": "t"})

        assert event == {
            "event": "x",
            "ssn": DEFAULT_MASK_VALUE,
            "token": DEFAULT_MASK_VALUE,
        }

    def test_truncate_large_values(self):
        processor = truncate_large_values(max_length=5)

        event = processor(None, "info", {"event": "x", "body": "abcdefgh"})

        assert event["body"] == "abcde...[truncated, 8 chars total]"
        assert event["event"] == "x"
