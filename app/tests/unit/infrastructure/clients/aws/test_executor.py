import pytest
from botocore.exceptions import EndpointConnectionError

from infrastructure.clients.aws import executor
from infrastructure.operations.status import OperationStatus
from tests.factories.aws import make_client_error


@pytest.mark.unit
class TestExecuteAwsApiCall:
    def test_calculate_retry_delay(self):
        assert executor._calculate_retry_delay(0) == pytest.approx(0.5)
        assert executor._calculate_retry_delay(1) == pytest.approx(1.0)
        assert executor._calculate_retry_delay(3, backoff_factor=1.0) == pytest.approx(
            8.0
        )

    def test_success_returns_response(self, monkeypatch, make_fake_client):
        client = make_fake_client(api_responses={"get_item": {"Item": {"pk": {"S": "a"}}}})
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        res = executor.execute_aws_api_call(
            "dynamodb", "get_item", TableName="tasks", Key={"pk": {"S": "a"}}
        )

        assert res.is_success
        assert res.data == {"Item": {"pk": {"S": "a"}}}
        assert client.calls == [
            ("get_item", {"TableName": "tasks", "Key": {"pk": {"S": "a"}}})
        ]

    def test_throttling_is_retried(self, monkeypatch, make_fake_client, no_sleep):
        calls = {"count": 0}

        def flaky(**kwargs):
            calls["count"] += 1
            if calls["count"] < 3:
                raise make_client_error("ThrottlingException", "slow down")
            return {"ok": True}

        client = make_fake_client(api_responses={"send_message": flaky})
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        res = executor.execute_aws_api_call("sqs", "send_message", max_retries=3)

        assert res.is_success
        assert calls["count"] == 3
        assert no_sleep == [pytest.approx(0.5), pytest.approx(1.0)]

    def test_throttling_gives_up_after_max_retries(
        self, monkeypatch, make_fake_client, no_sleep
    ):
        def always_throttled(**kwargs):
            raise make_client_error("ProvisionedThroughputExceededException")

        client = make_fake_client(api_responses={"put_item": always_throttled})
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        res = executor.execute_aws_api_call("dynamodb", "put_item", max_retries=2)

        assert res.status == OperationStatus.TRANSIENT_ERROR
        assert res.error_code == "RATE_LIMITED"
        assert len(client.calls) == 3
        assert len(no_sleep) == 2

    def test_conditional_check_failure_is_not_retried(
        self, monkeypatch, make_fake_client, no_sleep
    ):
        def conditional(**kwargs):
            raise make_client_error("ConditionalCheckFailedException", "exists")

        client = make_fake_client(api_responses={"put_item": conditional})
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        res = executor.execute_aws_api_call("dynamodb", "put_item")

        assert res.status == OperationStatus.PRECONDITION_FAILED
        assert res.error_code == "CONDITIONAL_CHECK_FAILED"
        assert len(client.calls) == 1
        assert no_sleep == []

    def test_connection_error_is_transient(self, monkeypatch, make_fake_client):
        def unreachable(**kwargs):
            raise EndpointConnectionError(endpoint_url="http://localhost:4566")

        client = make_fake_client(api_responses={"receive_message": unreachable})
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        res = executor.execute_aws_api_call("sqs", "receive_message", max_retries=0)

        assert res.status == OperationStatus.TRANSIENT_ERROR
        assert res.error_code == "CONNECTION_ERROR"

    def test_force_paginate_collects_keys(self, monkeypatch, make_fake_client):
        client = make_fake_client(
            paginated_pages=[
                {"Items": [{"pk": {"S": "a"}}]},
                {"Items": [{"pk": {"S": "b"}}]},
                {},
            ]
        )
        monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)

        res = executor.execute_aws_api_call(
            "dynamodb", "scan", keys=["Items"], force_paginate=True, TableName="t"
        )

        assert res.is_success
        assert res.data == [{"pk": {"S": "a"}}, {"pk": {"S": "b"}}]

    def test_client_configuration_is_forwarded(self, monkeypatch, make_fake_client):
        seen = {}

        def fake_get_client(service_name, session_config=None, client_config=None):
            seen.update(
                service=service_name,
                session_config=session_config,
                client_config=client_config,
            )
            return make_fake_client(api_responses={"delete_message": {}})

        monkeypatch.setattr(executor, "get_boto3_client", fake_get_client)

        executor.execute_aws_api_call(
            "sqs",
            "delete_message",
            session_config={"region_name": "ca-central-1"},
            client_config={"endpoint_url": "http://localhost:4566"},
        )

        assert seen == {
            "service": "sqs",
            "session_config": {"region_name": "ca-central-1"},
            "client_config": {"endpoint_url": "http://localhost:4566"},
        }
