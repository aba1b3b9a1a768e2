"""Request context binding for structured logging.

Binds submission- or delivery-scoped fields (correlation id, task id,
attempt) so every log entry emitted while handling one task carries them.

Usage:
    from infrastructure.logging import bind_request_context

    with bind_request_context(correlation_id=message.message_id, task_id="t-1"):
        logger.info("task_processing_started")
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    task_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind context to all logs within the context manager.

    Args:
        correlation_id: Unique request or delivery identifier. Generated if
            not provided.
        task_id: Task the block is working on, if known.
        **extra_context: Additional key-value pairs to include in logs.
            ``None`` values are dropped.
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}

    if task_id is not None:
        context["task_id"] = task_id

    context.update({k: v for k, v in extra_context.items() if v is not None})

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context."""
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")
