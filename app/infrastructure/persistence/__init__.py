"""Durable key-value storage with conditional writes.

Exports:
    DurableStore: Protocol consumed by task lifecycle and idempotency guard
    InMemoryDurableStore: Thread-safe in-process implementation
    DynamoDBDurableStore: DynamoDB implementation
"""

from infrastructure.persistence.dynamodb_store import DynamoDBDurableStore
from infrastructure.persistence.store import DurableStore, InMemoryDurableStore

__all__ = [
    "DurableStore",
    "DynamoDBDurableStore",
    "InMemoryDurableStore",
]
