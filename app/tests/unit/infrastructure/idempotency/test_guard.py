from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from infrastructure.idempotency import (
    IdempotencyDecision,
    IdempotencyGuard,
    IdempotencyRecord,
    IdempotencyStoreError,
)
from infrastructure.operations.result import OperationResult

RESPONSE = {"task_id": "t-1", "status": "queued"}


@pytest.mark.unit
class TestIdempotencyGuardCheck:
    """Tests for IdempotencyGuard.check."""

    def test_unknown_key_proceeds(self, guard):
        check = guard.check("k", "fp")

        assert check.decision is IdempotencyDecision.PROCEED
        assert check.cached_response is None

    def test_same_fingerprint_replays_response(self, guard):
        guard.store("k", "fp", RESPONSE)

        check = guard.check("k", "fp")

        assert check.decision is IdempotencyDecision.CACHED_RESPONSE
        assert check.cached_response == RESPONSE

    def test_different_fingerprint_conflicts(self, guard):
        guard.store("k", "fp", RESPONSE)

        assert guard.check("k", "other").decision is IdempotencyDecision.CONFLICT

    def test_expired_record_proceeds(self, idempotency_store, clock):
        # The store keeps the record longer than the guard honors it
        guard = IdempotencyGuard(idempotency_store, clock=clock.now)
        guard.store("k", "fp", RESPONSE, ttl_seconds=60)
        idempotency_store._items["k"].expires_at = None

        clock.advance(60)

        assert guard.check("k", "fp").decision is IdempotencyDecision.PROCEED

    def test_store_ttl_removes_record(self, guard, clock):
        guard.store("k", "fp", RESPONSE, ttl_seconds=10)
        clock.advance(11)

        assert guard.check("k", "fp").decision is IdempotencyDecision.PROCEED

    def test_store_read_failure_raises(self):
        store = MagicMock()
        store.read.return_value = OperationResult.transient_error("down")

        with pytest.raises(IdempotencyStoreError) as exc_info:
            IdempotencyGuard(store).check("k", "fp")

        assert exc_info.value.response is store.read.return_value

    def test_malformed_record_raises(self, idempotency_store, guard):
        idempotency_store.conditional_create("k", {"key": "k"})

        with pytest.raises(IdempotencyStoreError):
            guard.check("k", "fp")


@pytest.mark.unit
class TestIdempotencyGuardStore:
    """Tests for IdempotencyGuard.store."""

    def test_store_writes_record(self, guard, idempotency_store, clock):
        assert guard.store("k", "fp", RESPONSE) is True

        record = IdempotencyRecord.model_validate(idempotency_store.read("k").data)
        assert record.request_fingerprint == "fp"
        assert record.cached_response == RESPONSE
        assert record.created_at == clock.now()
        assert (record.expires_at - record.created_at).total_seconds() == 3600

    def test_race_lost_keeps_first_record(self, guard):
        assert guard.store("k", "fp", RESPONSE) is True
        assert guard.store("k", "fp", {"other": True}) is False

        assert guard.check("k", "fp").cached_response == RESPONSE

    def test_concurrent_stores_have_one_winner(self, guard):
        responses = [{"task_id": "t-1", "worker": i} for i in range(16)]

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(
                executor.map(lambda r: guard.store("k", "fp", r), responses)
            )

        assert results.count(True) == 1
        assert results.count(False) == len(responses) - 1
        winner = responses[results.index(True)]
        assert guard.check("k", "fp").cached_response == winner

    def test_store_failure_raises(self):
        store = MagicMock()
        store.conditional_create.return_value = OperationResult.transient_error("down")

        with pytest.raises(IdempotencyStoreError):
            IdempotencyGuard(store).store("k", "fp", RESPONSE)

    def test_invalid_default_ttl(self, idempotency_store):
        with pytest.raises(ValueError):
            IdempotencyGuard(idempotency_store, default_ttl_seconds=0)

    def test_explicit_ttl(self, guard, idempotency_store):
        guard.store("k", "fp", RESPONSE, ttl_seconds=60)

        record = IdempotencyRecord.model_validate(idempotency_store.read("k").data)
        assert (record.expires_at - record.created_at).total_seconds() == 60

    @pytest.mark.parametrize("ttl_seconds", [0, -5])
    def test_non_positive_ttl_rejected(self, guard, idempotency_store, ttl_seconds):
        with pytest.raises(ValueError):
            guard.store("k", "fp", RESPONSE, ttl_seconds=ttl_seconds)

        assert idempotency_store.read("k").is_success is False
