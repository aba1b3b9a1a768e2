"""DynamoDB client for AWS operations.

Thin wrappers over get_item, put_item and scan returning OperationResult.
"""

from typing import Any, Dict

import structlog

from infrastructure.clients.aws.session_provider import SessionProvider
from infrastructure.operations.result import OperationResult

logger = structlog.get_logger()


class DynamoDBClient:
    """Client for DynamoDB operations.

    Args:
        session_provider: SessionProvider instance for region/endpoint config
    """

    def __init__(self, session_provider: SessionProvider) -> None:
        self._session_provider = session_provider
        self._service_name = "dynamodb"

    def get_item(
        self, table_name: str, Key: Dict[str, Any], **kwargs
    ) -> OperationResult:
        """Get an item from DynamoDB.

        Args:
            table_name: Name of the DynamoDB table
            Key: Primary key of the item (e.g., {"task_id": {"S": "123"}})
            **kwargs: Additional get_item parameters (ConsistentRead, ...)

        Returns:
            OperationResult with the raw response; ``data["Item"]`` is absent
            when the item does not exist
        """
        return self._session_provider.execute(
            self._service_name, "get_item", TableName=table_name, Key=Key, **kwargs
        )

    def put_item(
        self, table_name: str, Item: Dict[str, Any], **kwargs
    ) -> OperationResult:
        """Put an item into DynamoDB.

        A failed ``ConditionExpression`` is returned as PRECONDITION_FAILED.
        """
        return self._session_provider.execute(
            self._service_name, "put_item", TableName=table_name, Item=Item, **kwargs
        )

    def scan(self, table_name: str, **kwargs) -> OperationResult:
        """Scan every item of a table, following pagination.

        Returns:
            OperationResult whose data is the list of raw items
        """
        return self._session_provider.execute(
            self._service_name,
            "scan",
            keys=["Items"],
            force_paginate=True,
            TableName=table_name,
            **kwargs,
        )
