"""Idempotency guarding for task submissions.

Exports:
    IdempotencyGuard: check/store pair over a durable store
    IdempotencyCheck, IdempotencyDecision: check outcomes
    IdempotencyRecord: stored record
    IdempotencyStoreError: store failure other than a lost race
    IdempotencyKeyBuilder, compute_fingerprint: key and fingerprint helpers
"""

from infrastructure.idempotency.fingerprint import (
    IdempotencyKeyBuilder,
    canonical_json,
    compute_fingerprint,
)
from infrastructure.idempotency.guard import IdempotencyGuard, IdempotencyStoreError
from infrastructure.idempotency.models import (
    IdempotencyCheck,
    IdempotencyDecision,
    IdempotencyRecord,
)

__all__ = [
    "IdempotencyCheck",
    "IdempotencyDecision",
    "IdempotencyGuard",
    "IdempotencyKeyBuilder",
    "IdempotencyRecord",
    "IdempotencyStoreError",
    "canonical_json",
    "compute_fingerprint",
]
