"""Structlog processors and redaction helpers.

Usage:
    from infrastructure.logging.formatters import add_app_info, mask_sensitive_data

``redact_sensitive`` is the plain-data counterpart of ``mask_sensitive_data``
and is used to sanitize task payload copies kept on dead-letter entries.
"""

from typing import Any, Optional

# Key fragments that mark a value as sensitive (case-insensitive)
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "auth",
        "credential",
        "private_key",
        "session_id",
        "cookie",
        "jwt",
        "bearer",
    }
)

DEFAULT_MASK_VALUE = "***REDACTED***"


def is_sensitive_key(key: Any, patterns: frozenset[str] = SENSITIVE_PATTERNS) -> bool:
    """Return True if ``key`` contains any of ``patterns``."""
    key_lower = str(key).lower()
    return any(pattern in key_lower for pattern in patterns)


def redact_sensitive(
    value: Any,
    patterns: frozenset[str] = SENSITIVE_PATTERNS,
    mask_value: str = DEFAULT_MASK_VALUE,
) -> Any:
    """Return a copy of ``value`` with sensitive mapping entries masked.

    Nested dicts and lists are walked recursively. The input is not modified.

    Example:
        >>> redact_sensitive({"user": "a", "auth": {"token": "x"}})
        {'user': 'a', 'auth': '***REDACTED***'}
    """
    if isinstance(value, dict):
        return {
            k: (
                mask_value
                if is_sensitive_key(k, patterns) and v is not None
                else redact_sensitive(v, patterns, mask_value)
            )
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_sensitive(item, patterns, mask_value) for item in value]
    return value


def add_app_info(
    app_name: str, app_version: str = "unknown", stage: Optional[str] = None
):
    """Create a processor that adds application info to log entries.

    Args:
        app_name: Name of the application.
        app_version: Version string for the application.
        stage: Deployment stage, added when given.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["app_name"] = app_name
        event_dict["app_version"] = app_version
        if stage:
            event_dict["stage"] = stage
        return event_dict

    return processor


def mask_sensitive_data(
    mask_value: str = DEFAULT_MASK_VALUE,
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that masks sensitive data in log entries.

    Top-level keys and keys of nested dicts are checked against
    ``SENSITIVE_PATTERNS`` plus ``additional_patterns``.

    Returns:
        A structlog processor function.
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        return redact_sensitive(event_dict, patterns, mask_value)

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that truncates overly large string values.

    Args:
        max_length: Maximum string length before truncation.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
