"""In-memory queue transport for development and tests.

Implements visibility timeouts and a redrive policy: a message received
more than ``max_receive_count`` times is moved to the paired dead-letter
transport instead of being delivered again.
"""

import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.messaging.transport import QueueMessage, TransportError

logger = get_module_logger()


@dataclass
class _Envelope:
    message_id: str
    body: str
    attributes: Dict[str, str]
    sent_at: float
    visible_at: float
    receive_count: int = 0
    first_received_at: Optional[float] = None
    receipt_handle: Optional[str] = None


def _to_datetime(epoch_seconds: Optional[float]) -> Optional[datetime]:
    if epoch_seconds is None:
        return None
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


class InMemoryTransport:
    """Thread-safe in-memory queue.

    Args:
        name: Queue name used in logs
        visibility_window_seconds: Default visibility timeout after a receive
        max_visibility_seconds: Largest accepted visibility timeout
        max_receive_count: Deliveries before redirecting to ``dead_letter``
            (None disables the redrive policy)
        dead_letter: Transport receiving redirected messages
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        name: str = "tasks",
        visibility_window_seconds: int = 180,
        max_visibility_seconds: int = 43200,
        max_receive_count: Optional[int] = None,
        dead_letter: Optional["InMemoryTransport"] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.name = name
        self.visibility_window_seconds = visibility_window_seconds
        self.max_visibility_seconds = max_visibility_seconds
        self.max_receive_count = max_receive_count
        self.dead_letter = dead_letter
        self._clock = clock
        self._messages: Dict[str, _Envelope] = {}
        self._lock = threading.Lock()
        self._log = logger.bind(queue=name)

    def send(
        self,
        body: str,
        delay_seconds: int = 0,
        attributes: Optional[Dict[str, str]] = None,
    ) -> str:
        now = self._clock()
        envelope = _Envelope(
            message_id=str(uuid.uuid4()),
            body=body,
            attributes=dict(attributes or {}),
            sent_at=now,
            visible_at=now + max(delay_seconds, 0),
        )
        with self._lock:
            self._messages[envelope.message_id] = envelope
        self._log.debug("queue_message_sent", message_id=envelope.message_id)
        return envelope.message_id

    def receive(self, max_messages: int = 10) -> List[QueueMessage]:
        now = self._clock()
        received: List[QueueMessage] = []
        redirected: List[_Envelope] = []

        with self._lock:
            for envelope in list(self._messages.values()):
                if len(received) >= max_messages:
                    break
                if envelope.visible_at > now:
                    continue

                if (
                    self.max_receive_count is not None
                    and self.dead_letter is not None
                    and envelope.receive_count >= self.max_receive_count
                ):
                    del self._messages[envelope.message_id]
                    redirected.append(envelope)
                    continue

                envelope.receive_count += 1
                if envelope.first_received_at is None:
                    envelope.first_received_at = now
                envelope.receipt_handle = str(uuid.uuid4())
                envelope.visible_at = now + self.visibility_window_seconds
                received.append(
                    QueueMessage(
                        message_id=envelope.message_id,
                        receipt_handle=envelope.receipt_handle,
                        body=envelope.body,
                        delivery_count=envelope.receive_count,
                        sent_at=_to_datetime(envelope.sent_at),
                        first_received_at=_to_datetime(envelope.first_received_at),
                        attributes=dict(envelope.attributes),
                    )
                )

        for envelope in redirected:
            self._log.info(
                "queue_message_redriven",
                message_id=envelope.message_id,
                receive_count=envelope.receive_count,
                dead_letter_queue=self.dead_letter.name,
            )
            self.dead_letter.send(envelope.body, attributes=envelope.attributes)

        return received

    def _find(self, receipt_handle: str) -> _Envelope:
        for envelope in self._messages.values():
            if envelope.receipt_handle == receipt_handle:
                return envelope
        raise TransportError(
            f"Receipt handle {receipt_handle} is not valid for queue {self.name}"
        )

    def extend_visibility(self, receipt_handle: str, seconds: int) -> None:
        if not 0 <= seconds <= self.max_visibility_seconds:
            raise TransportError(
                f"Visibility timeout {seconds} outside [0, {self.max_visibility_seconds}]"
            )
        with self._lock:
            envelope = self._find(receipt_handle)
            envelope.visible_at = self._clock() + seconds

    def ack(self, receipt_handle: str) -> None:
        with self._lock:
            envelope = self._find(receipt_handle)
            del self._messages[envelope.message_id]
        self._log.debug("queue_message_acked", message_id=envelope.message_id)

    def get_max_visibility_seconds(self) -> int:
        return self.max_visibility_seconds

    def get_visibility_window_seconds(self) -> int:
        return self.visibility_window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
