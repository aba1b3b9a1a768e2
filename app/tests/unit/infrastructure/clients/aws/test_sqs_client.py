"""Tests for SQSClient."""

import pytest

from infrastructure.clients.aws import executor
from infrastructure.clients.aws.session_provider import SessionProvider
from infrastructure.clients.aws.sqs import SQSClient
from infrastructure.operations.status import OperationStatus
from tests.factories.aws import make_client_error

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/tasks"


@pytest.fixture
def sqs_client():
    """SQSClient with a plain SessionProvider."""
    return SQSClient(session_provider=SessionProvider(region="us-east-1"))


@pytest.mark.unit
class TestSQSClient:
    """Test suite for SQSClient."""

    def test_send_message_caps_delay_and_encodes_attributes(
        self, monkeypatch, make_fake_client, sqs_client
    ):
        """Delays above 900 seconds are capped and attributes sent as strings."""
        client = make_fake_client(api_responses={"send_message": {"MessageId": "m-1"}})
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        result = sqs_client.send_message(
            QUEUE_URL, "{}", delay_seconds=5000, message_attributes={"a": "b"}
        )

        assert result.data == {"MessageId": "m-1"}
        _, kwargs = client.calls[0]
        assert kwargs["DelaySeconds"] == 900
        assert kwargs["MessageAttributes"] == {
            "a": {"DataType": "String", "StringValue": "b"}
        }

    def test_receive_messages_returns_message_list(
        self, monkeypatch, make_fake_client, sqs_client
    ):
        """receive_messages unwraps the Messages list and clamps the batch size."""
        client = make_fake_client(
            api_responses={"receive_message": {"Messages": [{"MessageId": "m-1"}]}}
        )
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        result = sqs_client.receive_messages(QUEUE_URL, max_messages=50)

        assert result.data == [{"MessageId": "m-1"}]
        _, kwargs = client.calls[0]
        assert kwargs["MaxNumberOfMessages"] == 10
        assert kwargs["AttributeNames"] == ["All"]

    def test_receive_messages_empty_queue(self, monkeypatch, make_fake_client, sqs_client):
        """An empty receive returns an empty list."""
        client = make_fake_client(api_responses={"receive_message": {}})
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        assert sqs_client.receive_messages(QUEUE_URL).data == []

    def test_get_queue_attributes(self, monkeypatch, make_fake_client, sqs_client):
        """get_queue_attributes unwraps the Attributes mapping."""
        client = make_fake_client(
            api_responses={
                "get_queue_attributes": {"Attributes": {"VisibilityTimeout": "60"}}
            }
        )
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        result = sqs_client.get_queue_attributes(QUEUE_URL, ["VisibilityTimeout"])

        assert result.data == {"VisibilityTimeout": "60"}

    def test_invalid_receipt_handle_is_permanent(
        self, monkeypatch, make_fake_client, sqs_client
    ):
        """A rejected receipt handle is reported as a permanent error."""

        def invalid(**kwargs):
            raise make_client_error("ReceiptHandleIsInvalid")

        client = make_fake_client(api_responses={"delete_message": invalid})
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        result = sqs_client.delete_message(QUEUE_URL, "bad-handle")

        assert result.status == OperationStatus.PERMANENT_ERROR
