"""Request fingerprints and idempotency keys.

A fingerprint is the SHA-256 of the request body serialized as canonical
JSON (sorted keys, no insignificant whitespace), so two requests that
differ only in key order or formatting share a fingerprint.
"""

import hashlib
import json
from typing import Any


def canonical_json(body: Any) -> str:
    """Serialize ``body`` deterministically."""
    return json.dumps(
        body, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )


def compute_fingerprint(body: Any) -> str:
    """Return the hex SHA-256 of the canonical JSON form of ``body``."""
    return hashlib.sha256(canonical_json(body).encode("utf-8")).hexdigest()


class IdempotencyKeyBuilder:
    """Build namespaced idempotency keys.

    Example:
        >>> builder = IdempotencyKeyBuilder(namespace="tasks")
        >>> builder.build("submit_task", key="order-42")
        'tasks:submit_task:...'
    """

    def __init__(self, namespace: str):
        if not namespace:
            raise ValueError("namespace is required")
        self.namespace = namespace

    def build(self, operation: str, **components: Any) -> str:
        """Build a key from the operation name and its identifying components."""
        digest = compute_fingerprint(
            {"namespace": self.namespace, "operation": operation, **components}
        )
        return f"{self.namespace}:{operation}:{digest[:16]}"
