import pytest

from infrastructure.clients.aws import AWSClients
from infrastructure.clients.aws.dynamodb import DynamoDBClient
from infrastructure.clients.aws.sqs import SQSClient


@pytest.mark.unit
class TestAWSClientsFacade:
    """Tests for the AWSClients facade."""

    def test_exposes_service_clients(self, aws_factory):
        assert isinstance(aws_factory.dynamodb, DynamoDBClient)
        assert isinstance(aws_factory.sqs, SQSClient)

    def test_clients_share_session_provider(self, aws_factory):
        assert aws_factory.dynamodb._session_provider is aws_factory.sqs._session_provider

    def test_session_provider_reflects_settings(self, mock_aws_settings):
        mock_aws_settings.AWS_REGION = "ca-central-1"
        mock_aws_settings.ENDPOINT_URL = "http://localhost:4566"
        mock_aws_settings.MAX_API_RETRIES = 1

        clients = AWSClients(aws_settings=mock_aws_settings)

        provider = clients._session_provider
        assert provider.region == "ca-central-1"
        assert provider.endpoint_url == "http://localhost:4566"
        assert provider.max_retries == 1
