"""Idempotency record and check result models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from infrastructure.models import InfrastructureModel


class IdempotencyRecord(InfrastructureModel):
    """A previously accepted submission.

    Created once per key and never mutated afterwards. Expiry is logical:
    the store's TTL removes the record eventually.
    """

    key: str
    request_fingerprint: str
    cached_response: Dict[str, Any]
    expires_at: datetime
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """True once ``now`` has reached ``expires_at``."""
        return now >= self.expires_at


class IdempotencyDecision(Enum):
    """Outcome of an idempotency check."""

    PROCEED = "proceed"
    CONFLICT = "conflict"
    CACHED_RESPONSE = "cached_response"


@dataclass(frozen=True)
class IdempotencyCheck:
    """Result of ``IdempotencyGuard.check``.

    ``cached_response`` is only set for CACHED_RESPONSE and must be returned
    to the caller unchanged.
    """

    decision: IdempotencyDecision
    cached_response: Optional[Dict[str, Any]] = None

    @classmethod
    def proceed(cls) -> "IdempotencyCheck":
        return cls(IdempotencyDecision.PROCEED)

    @classmethod
    def conflict(cls) -> "IdempotencyCheck":
        return cls(IdempotencyDecision.CONFLICT)

    @classmethod
    def cached(cls, response: Dict[str, Any]) -> "IdempotencyCheck":
        return cls(IdempotencyDecision.CACHED_RESPONSE, cached_response=response)
