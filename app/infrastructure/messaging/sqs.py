"""SQS queue transport."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from infrastructure.clients.aws.sqs import SQSClient
from infrastructure.messaging.transport import QueueMessage, TransportError
from infrastructure.operations.result import OperationResult

logger = structlog.get_logger()

SQS_MAX_VISIBILITY_SECONDS = 43200


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """SQS timestamps are epoch milliseconds as strings."""
    if not value:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


def _parse_message(raw: Dict[str, Any]) -> QueueMessage:
    attributes = raw.get("Attributes", {})
    message_attributes = {
        name: value["StringValue"]
        for name, value in raw.get("MessageAttributes", {}).items()
        if "StringValue" in value
    }
    return QueueMessage(
        message_id=raw["MessageId"],
        receipt_handle=raw["ReceiptHandle"],
        body=raw.get("Body", ""),
        delivery_count=int(attributes.get("ApproximateReceiveCount", "1")),
        sent_at=_parse_timestamp(attributes.get("SentTimestamp")),
        first_received_at=_parse_timestamp(
            attributes.get("ApproximateFirstReceiveTimestamp")
        ),
        attributes=message_attributes,
    )


class SQSTransport:
    """Transport backed by one SQS queue.

    Args:
        sqs: SQS client from the AWS clients facade
        queue_url: Queue URL
        wait_time_seconds: Long-poll wait for receive calls
        max_visibility_seconds: Largest visibility timeout (SQS limit: 12h)
    """

    def __init__(
        self,
        sqs: SQSClient,
        queue_url: str,
        wait_time_seconds: int = 10,
        max_visibility_seconds: int = SQS_MAX_VISIBILITY_SECONDS,
    ) -> None:
        if not queue_url:
            raise ValueError("queue_url is required for the SQS transport")
        self._sqs = sqs
        self.queue_url = queue_url
        self.wait_time_seconds = wait_time_seconds
        self.max_visibility_seconds = max_visibility_seconds
        self._log = logger.bind(component="sqs_transport", queue_url=queue_url)

    def _check(self, result: OperationResult, operation: str) -> OperationResult:
        if not result.is_success:
            raise TransportError(
                f"SQS {operation} failed: {result.message}", response=result
            )
        return result

    def send(
        self,
        body: str,
        delay_seconds: int = 0,
        attributes: Optional[Dict[str, str]] = None,
    ) -> str:
        result = self._check(
            self._sqs.send_message(
                self.queue_url,
                body,
                delay_seconds=delay_seconds,
                message_attributes=attributes,
            ),
            "send_message",
        )
        message_id = (result.data or {}).get("MessageId", "")
        self._log.debug("queue_message_sent", message_id=message_id)
        return message_id

    def receive(self, max_messages: int = 10) -> List[QueueMessage]:
        result = self._check(
            self._sqs.receive_messages(
                self.queue_url,
                max_messages=max_messages,
                wait_time_seconds=self.wait_time_seconds,
            ),
            "receive_message",
        )
        return [_parse_message(raw) for raw in result.data or []]

    def extend_visibility(self, receipt_handle: str, seconds: int) -> None:
        self._check(
            self._sqs.change_message_visibility(
                self.queue_url, receipt_handle, seconds
            ),
            "change_message_visibility",
        )

    def ack(self, receipt_handle: str) -> None:
        self._check(
            self._sqs.delete_message(self.queue_url, receipt_handle),
            "delete_message",
        )

    def get_max_visibility_seconds(self) -> int:
        return self.max_visibility_seconds

    def get_visibility_window_seconds(self) -> int:
        """Read the queue's VisibilityTimeout attribute.

        Raises:
            TransportError: If the attribute cannot be read.
        """
        result = self._check(
            self._sqs.get_queue_attributes(self.queue_url, ["VisibilityTimeout"]),
            "get_queue_attributes",
        )
        try:
            return int(result.data["VisibilityTimeout"])
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(
                f"Queue {self.queue_url} returned no usable VisibilityTimeout"
            ) from e
