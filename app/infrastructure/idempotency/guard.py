"""Idempotency guard.

Deduplicates submissions with two explicit calls placed by the caller:

    check = guard.check(key, fingerprint)
    if check.decision is IdempotencyDecision.PROCEED:
        response = process(...)
        guard.store(key, fingerprint, response)

``store`` uses a conditional create. Losing that race to a concurrent
request is expected: the winner's record is authoritative and the loser's
response is simply not cached.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from infrastructure.logging import get_module_logger
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus
from infrastructure.persistence.store import DurableStore
from infrastructure.idempotency.models import IdempotencyCheck, IdempotencyRecord

logger = get_module_logger()
_default_logger = logger

DEFAULT_TTL_SECONDS = 3600


class IdempotencyStoreError(Exception):
    """Raised when the idempotency store fails other than by losing a race."""

    def __init__(self, message: str, response: Optional[OperationResult] = None):
        super().__init__(message)
        self.response = response


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IdempotencyGuard:
    """Check and record idempotent submissions against a durable store.

    Args:
        store: Durable store holding idempotency records
        default_ttl_seconds: TTL used when ``store`` is called without one
        clock: Returns the current UTC time
        logger: Optional bound logger
    """

    def __init__(
        self,
        store: DurableStore,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
        logger: Optional[Any] = None,
    ) -> None:
        if default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be positive")
        self._store = store
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._log = (logger or _default_logger).bind(component="idempotency_guard")

    def check(self, key: str, fingerprint: str) -> IdempotencyCheck:
        """Classify a submission under ``key``.

        Returns:
            PROCEED if no live record exists, CONFLICT if the live record was
            stored for a different fingerprint, CACHED_RESPONSE otherwise.

        Raises:
            IdempotencyStoreError: If the store cannot be read or holds an
                unreadable record.
        """
        result = self._store.read(key)
        if result.status == OperationStatus.NOT_FOUND:
            self._log.debug("idempotency_miss", idempotency_key=key)
            return IdempotencyCheck.proceed()
        if not result.is_success:
            raise IdempotencyStoreError(
                f"Failed to read idempotency record {key}: {result.message}",
                response=result,
            )

        try:
            record = IdempotencyRecord.model_validate(result.data)
        except ValidationError as e:
            raise IdempotencyStoreError(
                f"Idempotency record {key} is malformed: {e}"
            ) from e

        if record.is_expired(self._clock()):
            self._log.info(
                "idempotency_record_expired",
                idempotency_key=key,
                expired_at=record.expires_at.isoformat(),
            )
            return IdempotencyCheck.proceed()

        if record.request_fingerprint != fingerprint:
            self._log.warning("idempotency_conflict", idempotency_key=key)
            return IdempotencyCheck.conflict()

        self._log.info("idempotency_replay", idempotency_key=key)
        return IdempotencyCheck.cached(record.cached_response)

    def store(
        self,
        key: str,
        fingerprint: str,
        response: Dict[str, Any],
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """Record ``response`` as the result of the submission under ``key``.

        Returns:
            True if this call created the record, False if another request
            created it first.

        Raises:
            ValueError: If ``ttl_seconds`` is given and not positive.
            IdempotencyStoreError: If the write fails for any other reason.
        """
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        now = self._clock()
        record = IdempotencyRecord(
            key=key,
            request_fingerprint=fingerprint,
            cached_response=response,
            expires_at=now + timedelta(seconds=ttl),
            created_at=now,
        )

        result = self._store.conditional_create(
            key, record.model_dump(mode="json"), ttl_seconds=ttl
        )
        if result.status == OperationStatus.ALREADY_EXISTS:
            self._log.info("idempotency_store_race_lost", idempotency_key=key)
            return False
        if not result.is_success:
            raise IdempotencyStoreError(
                f"Failed to store idempotency record {key}: {result.message}",
                response=result,
            )

        self._log.debug("idempotency_record_stored", idempotency_key=key, ttl_seconds=ttl)
        return True
