"""DynamoDB-backed durable store for multi-instance deployments.

Table Schema:
    PK: configurable partition key (String)
    document: the record serialized as JSON (String)
    version: optimistic concurrency counter (Number)
    ttl: expiry in epoch seconds, read by DynamoDB TTL (Number, optional)

Creates use ``attribute_not_exists`` so at most one writer wins. Updates are
read-modify-write cycles guarded by ``version = :expected``; a lost race
re-reads and re-applies the mutator a bounded number of times.
"""

import copy
import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from infrastructure.clients.aws.dynamodb import DynamoDBClient
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus
from infrastructure.persistence.store import Item, Mutator, Precondition

logger = structlog.get_logger()

DOCUMENT_ATTRIBUTE = "document"
VERSION_ATTRIBUTE = "version"
TTL_ATTRIBUTE = "ttl"


class DynamoDBDurableStore:
    """DurableStore implementation on a single DynamoDB table.

    Args:
        dynamodb: DynamoDB client from the AWS clients facade
        table_name: DynamoDB table name
        partition_key: Name of the table's string partition key
        max_cas_attempts: Read-modify-write attempts before an update gives up
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        dynamodb: DynamoDBClient,
        table_name: str,
        partition_key: str = "pk",
        max_cas_attempts: int = 3,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._dynamodb = dynamodb
        self.table_name = table_name
        self.partition_key = partition_key
        self.max_cas_attempts = max_cas_attempts
        self._clock = clock
        self._log = logger.bind(component="dynamodb_store", table_name=table_name)

    def _key(self, key: str) -> Dict[str, Any]:
        return {self.partition_key: {"S": key}}

    def _encode(
        self, key: str, item: Item, version: int, expires_at: Optional[int]
    ) -> Dict[str, Any]:
        encoded: Dict[str, Any] = {
            self.partition_key: {"S": key},
            DOCUMENT_ATTRIBUTE: {"S": json.dumps(item)},
            VERSION_ATTRIBUTE: {"N": str(version)},
        }
        if expires_at is not None:
            encoded[TTL_ATTRIBUTE] = {"N": str(expires_at)}
        return encoded

    def _decode(
        self, raw: Dict[str, Any]
    ) -> Optional[Tuple[Item, int, Optional[int]]]:
        """Return (item, version, expires_at), or None if the item has expired."""
        expires_at = None
        if TTL_ATTRIBUTE in raw:
            expires_at = int(raw[TTL_ATTRIBUTE]["N"])
            # DynamoDB deletes expired items lazily
            if expires_at <= self._clock():
                return None
        item = json.loads(raw[DOCUMENT_ATTRIBUTE]["S"])
        version = int(raw.get(VERSION_ATTRIBUTE, {"N": "0"})["N"])
        return item, version, expires_at

    def _read_raw(self, key: str) -> OperationResult:
        result = self._dynamodb.get_item(
            self.table_name, Key=self._key(key), ConsistentRead=True
        )
        if result.status == OperationStatus.NOT_FOUND:
            # ResourceNotFoundException means the table itself is missing
            return OperationResult.permanent_error(
                f"DynamoDB table {self.table_name} not found",
                error_code="TABLE_NOT_FOUND",
            )
        if not result.is_success:
            return result

        raw = (result.data or {}).get("Item")
        decoded = self._decode(raw) if raw else None
        if decoded is None:
            return OperationResult.not_found(f"Record {key} not found")
        return OperationResult.success(data=decoded)

    def conditional_create(
        self, key: str, item: Item, ttl_seconds: Optional[int] = None
    ) -> OperationResult:
        now = int(self._clock())
        expires_at = now + ttl_seconds if ttl_seconds else None
        result = self._dynamodb.put_item(
            self.table_name,
            Item=self._encode(key, item, 1, expires_at),
            # An expired item that DynamoDB has not yet deleted may be replaced
            ConditionExpression="attribute_not_exists(#pk) OR #ttl < :now",
            ExpressionAttributeNames={
                "#pk": self.partition_key,
                "#ttl": TTL_ATTRIBUTE,
            },
            ExpressionAttributeValues={":now": {"N": str(now)}},
        )
        if result.status == OperationStatus.PRECONDITION_FAILED:
            return OperationResult.already_exists(
                f"Record {key} already exists in {self.table_name}"
            )
        if not result.is_success:
            return result

        self._log.debug("store_record_created", key=key)
        return OperationResult.success(data=copy.deepcopy(item))

    def read(self, key: str) -> OperationResult:
        result = self._read_raw(key)
        if not result.is_success:
            return result
        item, _, _ = result.data
        return OperationResult.success(data=item)

    def conditional_update(
        self,
        key: str,
        mutator: Mutator,
        precondition: Optional[Precondition] = None,
    ) -> OperationResult:
        for attempt in range(1, self.max_cas_attempts + 1):
            current = self._read_raw(key)
            if not current.is_success:
                return current

            item, version, expires_at = current.data
            if precondition is not None and not precondition(copy.deepcopy(item)):
                return OperationResult.precondition_failed(
                    f"Precondition failed for record {key}"
                )

            updated = mutator(copy.deepcopy(item))
            result = self._dynamodb.put_item(
                self.table_name,
                Item=self._encode(key, updated, version + 1, expires_at),
                ConditionExpression="#v = :expected",
                ExpressionAttributeNames={"#v": VERSION_ATTRIBUTE},
                ExpressionAttributeValues={":expected": {"N": str(version)}},
            )
            if result.is_success:
                self._log.debug("store_record_updated", key=key, version=version + 1)
                return OperationResult.success(data=updated)
            if result.status != OperationStatus.PRECONDITION_FAILED:
                return result

            self._log.info(
                "store_version_conflict",
                key=key,
                attempt=attempt,
                expected_version=version,
            )

        return OperationResult.precondition_failed(
            f"Record {key} kept changing during update",
            error_code="VERSION_CONFLICT",
        )

    def scan(self) -> OperationResult:
        result = self._dynamodb.scan(self.table_name, ConsistentRead=True)
        if not result.is_success:
            return result

        items: List[Item] = []
        for raw in result.data or []:
            decoded = self._decode(raw)
            if decoded is not None:
                items.append(decoded[0])
        return OperationResult.success(data=items)
