"""Durable key-value store interface and in-memory implementation.

The store is the only coordination point between concurrent workers. It
offers conditional writes: a create that fails if the key is present, and
an update that applies a mutator only if the record still exists and still
satisfies the caller's precondition.

Items are JSON-compatible dicts. Every call returns an OperationResult:

    conditional_create -> SUCCESS | ALREADY_EXISTS
    read               -> SUCCESS (data=item) | NOT_FOUND
    conditional_update -> SUCCESS (data=new item) | NOT_FOUND | PRECONDITION_FAILED
    scan               -> SUCCESS (data=list of items)
"""

import copy
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.operations.result import OperationResult

logger = get_module_logger()

Item = Dict[str, Any]
Mutator = Callable[[Item], Item]
Precondition = Callable[[Item], bool]


class DurableStore(Protocol):
    """Storage interface for task and idempotency records."""

    def conditional_create(
        self, key: str, item: Item, ttl_seconds: Optional[int] = None
    ) -> OperationResult:
        """Create ``item`` under ``key`` only if no live record exists.

        Args:
            key: Record key
            item: JSON-compatible record
            ttl_seconds: Optional time-to-live; expired records are treated as absent
        """
        ...

    def read(self, key: str) -> OperationResult:
        """Read the live record stored under ``key``."""
        ...

    def conditional_update(
        self,
        key: str,
        mutator: Mutator,
        precondition: Optional[Precondition] = None,
    ) -> OperationResult:
        """Replace the record with ``mutator(current)``.

        The write is atomic with respect to other writers of the same key.
        ``precondition`` is evaluated against the current record first; if it
        returns False nothing is written.
        """
        ...

    def scan(self) -> OperationResult:
        """Return every live record."""
        ...


@dataclass
class _StoredItem:
    item: Item
    version: int
    expires_at: Optional[float]


class InMemoryDurableStore:
    """Thread-safe in-memory implementation of DurableStore.

    Suitable for development, tests and single-process deployments. Time-to-live
    is honored on every access.

    Args:
        name: Name used in logs
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self, name: str = "memory", clock: Callable[[], float] = time.time
    ) -> None:
        self.name = name
        self._clock = clock
        self._items: Dict[str, _StoredItem] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> Optional[_StoredItem]:
        stored = self._items.get(key)
        if stored is None:
            return None
        if stored.expires_at is not None and stored.expires_at <= self._clock():
            del self._items[key]
            return None
        return stored

    def conditional_create(
        self, key: str, item: Item, ttl_seconds: Optional[int] = None
    ) -> OperationResult:
        with self._lock:
            if self._live(key) is not None:
                return OperationResult.already_exists(
                    f"Record {key} already exists in {self.name}"
                )
            expires_at = self._clock() + ttl_seconds if ttl_seconds else None
            self._items[key] = _StoredItem(
                item=copy.deepcopy(item), version=1, expires_at=expires_at
            )
        logger.debug("store_record_created", store=self.name, key=key)
        return OperationResult.success(data=copy.deepcopy(item))

    def read(self, key: str) -> OperationResult:
        with self._lock:
            stored = self._live(key)
            if stored is None:
                return OperationResult.not_found(f"Record {key} not found")
            return OperationResult.success(data=copy.deepcopy(stored.item))

    def conditional_update(
        self,
        key: str,
        mutator: Mutator,
        precondition: Optional[Precondition] = None,
    ) -> OperationResult:
        with self._lock:
            stored = self._live(key)
            if stored is None:
                return OperationResult.not_found(f"Record {key} not found")
            current = copy.deepcopy(stored.item)
            if precondition is not None and not precondition(current):
                return OperationResult.precondition_failed(
                    f"Precondition failed for record {key}"
                )
            updated = mutator(current)
            stored.item = copy.deepcopy(updated)
            stored.version += 1
        logger.debug("store_record_updated", store=self.name, key=key)
        return OperationResult.success(data=copy.deepcopy(updated))

    def scan(self) -> OperationResult:
        items: List[Item] = []
        with self._lock:
            for key in list(self._items):
                stored = self._live(key)
                if stored is not None:
                    items.append(copy.deepcopy(stored.item))
        return OperationResult.success(data=items)

    def clear(self) -> None:
        """Remove every record (for testing)."""
        with self._lock:
            self._items.clear()
