"""Infrastructure AWS clients public API.

``AWSClients`` composes the DynamoDB and SQS clients around a shared
``SessionProvider``; every call returns an ``OperationResult``.
"""

from infrastructure.clients.aws.dynamodb import DynamoDBClient
from infrastructure.clients.aws.facade import AWSClients
from infrastructure.clients.aws.session_provider import SessionProvider
from infrastructure.clients.aws.sqs import SQSClient

__all__ = [
    "AWSClients",
    "SessionProvider",
    "DynamoDBClient",
    "SQSClient",
]
