"""AWS Clients facade.

Composes the per-service clients around one SessionProvider.
"""

import structlog

from infrastructure.clients.aws.dynamodb import DynamoDBClient
from infrastructure.clients.aws.session_provider import SessionProvider
from infrastructure.clients.aws.sqs import SQSClient
from infrastructure.configuration.integrations.aws import AwsSettings

logger = structlog.get_logger()


class AWSClients:
    """Facade exposing ``dynamodb`` and ``sqs`` clients as attributes.

    Usage:
        aws = AWSClients(aws_settings=settings.aws)
        result = aws.dynamodb.get_item("tasks", {"task_id": {"S": "t-1"}})
    """

    def __init__(self, aws_settings: AwsSettings) -> None:
        self._session_provider = SessionProvider(
            region=aws_settings.AWS_REGION,
            endpoint_url=aws_settings.ENDPOINT_URL,
            max_retries=aws_settings.MAX_API_RETRIES,
        )
        self.dynamodb: DynamoDBClient = DynamoDBClient(self._session_provider)
        self.sqs: SQSClient = SQSClient(self._session_provider)
        logger.debug(
            "aws_clients_initialized",
            region=aws_settings.AWS_REGION,
            endpoint_url=aws_settings.ENDPOINT_URL,
        )
