"""SQS client for AWS operations."""

from typing import Any, Dict, List, Optional

import structlog

from infrastructure.clients.aws.session_provider import SessionProvider
from infrastructure.operations.result import OperationResult

logger = structlog.get_logger()

SQS_MAX_DELAY_SECONDS = 900


class SQSClient:
    """Client for SQS operations.

    Args:
        session_provider: SessionProvider instance for region/endpoint config
    """

    def __init__(self, session_provider: SessionProvider) -> None:
        self._session_provider = session_provider
        self._service_name = "sqs"

    def _execute(self, method: str, **kwargs) -> OperationResult:
        return self._session_provider.execute(self._service_name, method, **kwargs)

    def send_message(
        self,
        queue_url: str,
        body: str,
        delay_seconds: int = 0,
        message_attributes: Optional[Dict[str, str]] = None,
    ) -> OperationResult:
        """Send a message; the delay is capped at the SQS limit of 900 seconds.

        ``message_attributes`` are plain strings and are sent as String
        attributes.
        """
        kwargs: Dict[str, Any] = {
            "QueueUrl": queue_url,
            "MessageBody": body,
            "DelaySeconds": max(0, min(int(delay_seconds), SQS_MAX_DELAY_SECONDS)),
        }
        if message_attributes:
            kwargs["MessageAttributes"] = {
                name: {"DataType": "String", "StringValue": value}
                for name, value in message_attributes.items()
            }
        return self._execute("send_message", **kwargs)

    def receive_messages(
        self,
        queue_url: str,
        max_messages: int = 10,
        wait_time_seconds: int = 0,
    ) -> OperationResult:
        """Receive up to ``max_messages`` messages with all attributes.

        Returns:
            OperationResult whose data is the list of raw messages
        """
        result = self._execute(
            "receive_message",
            QueueUrl=queue_url,
            MaxNumberOfMessages=max(1, min(max_messages, 10)),
            WaitTimeSeconds=wait_time_seconds,
            AttributeNames=["All"],
            MessageAttributeNames=["All"],
        )
        if not result.is_success:
            return result
        return OperationResult.success(
            data=(result.data or {}).get("Messages", []),
            message=result.message,
        )

    def change_message_visibility(
        self, queue_url: str, receipt_handle: str, visibility_timeout: int
    ) -> OperationResult:
        """Change the visibility timeout of an in-flight message."""
        return self._execute(
            "change_message_visibility",
            QueueUrl=queue_url,
            ReceiptHandle=receipt_handle,
            VisibilityTimeout=visibility_timeout,
        )

    def delete_message(self, queue_url: str, receipt_handle: str) -> OperationResult:
        """Delete (acknowledge) a message."""
        return self._execute(
            "delete_message", QueueUrl=queue_url, ReceiptHandle=receipt_handle
        )

    def get_queue_attributes(
        self, queue_url: str, attribute_names: List[str]
    ) -> OperationResult:
        """Read queue attributes.

        Returns:
            OperationResult whose data is the ``Attributes`` mapping
        """
        result = self._execute(
            "get_queue_attributes",
            QueueUrl=queue_url,
            AttributeNames=attribute_names,
        )
        if not result.is_success:
            return result
        return OperationResult.success(
            data=(result.data or {}).get("Attributes", {}),
            message=result.message,
        )
