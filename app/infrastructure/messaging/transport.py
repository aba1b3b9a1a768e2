"""Queue transport interface.

A transport is a durable queue with visibility-timeout semantics: a
received message stays hidden from other consumers for the visibility
window, reappears if it is not acknowledged, and is redirected to a
dead-letter queue by the queue itself after too many deliveries.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from infrastructure.operations.result import OperationResult


class TransportError(Exception):
    """Raised when a queue operation fails.

    Attributes:
        response: The failed OperationResult, when the failure came from AWS
    """

    def __init__(self, message: str, response: Optional[OperationResult] = None):
        super().__init__(message)
        self.response = response


@dataclass
class QueueMessage:
    """A received message and its delivery metadata.

    Fields:
        message_id: Queue-assigned message id
        receipt_handle: Handle for visibility changes and acknowledgement
        body: Raw message body
        delivery_count: Times the message has been received, including this one
        sent_at: When the message was first sent
        first_received_at: When the message was first received
        attributes: String message attributes set by the producer
    """

    message_id: str
    receipt_handle: str
    body: str
    delivery_count: int = 1
    sent_at: Optional[datetime] = None
    first_received_at: Optional[datetime] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def attempt_index(self) -> int:
        """0-based attempt number derived from the delivery count."""
        return max(self.delivery_count - 1, 0)


class Transport(Protocol):
    """Queue operations used by task submission and processing."""

    def send(
        self,
        body: str,
        delay_seconds: int = 0,
        attributes: Optional[Dict[str, str]] = None,
    ) -> str:
        """Enqueue ``body`` and return the message id."""
        ...

    def receive(self, max_messages: int = 10) -> List[QueueMessage]:
        """Receive up to ``max_messages`` visible messages."""
        ...

    def extend_visibility(self, receipt_handle: str, seconds: int) -> None:
        """Hide an in-flight message for ``seconds`` from now."""
        ...

    def ack(self, receipt_handle: str) -> None:
        """Delete a processed message."""
        ...

    def get_max_visibility_seconds(self) -> int:
        """Largest visibility timeout the queue accepts."""
        ...

    def get_visibility_window_seconds(self) -> int:
        """The queue's default visibility timeout."""
        ...
