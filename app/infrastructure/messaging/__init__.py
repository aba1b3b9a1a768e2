"""Queue transports.

Exports:
    Transport: Protocol for queue operations
    QueueMessage: A received message with delivery metadata
    TransportError: Raised when a queue operation fails
    InMemoryTransport: In-process queue with visibility timeouts and redrive
    SQSTransport: SQS-backed queue
"""

from infrastructure.messaging.memory import InMemoryTransport
from infrastructure.messaging.sqs import SQSTransport
from infrastructure.messaging.transport import QueueMessage, Transport, TransportError

__all__ = [
    "InMemoryTransport",
    "QueueMessage",
    "SQSTransport",
    "Transport",
    "TransportError",
]
