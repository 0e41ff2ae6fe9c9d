"""
Tests for supper_batch.services.accumulator -- bounded batches.
"""

import pytest

from supper_kernel.exceptions import (
    CommitFailedError,
    CommitLimitExceededError,
    InvalidBatchLimitsError,
)
from supper_kernel.store import CommitResult, DocumentPath, SetOperation, UpdateOperation

from supper_batch.services.accumulator import BatchAccumulator


class RecordingStore:
    """Store double that records every commit."""

    def __init__(self, max_operations_per_commit: int = 500):
        self.max_operations_per_commit = max_operations_per_commit
        self.commits: list[tuple] = []

    def scan(self, collection, field, value):
        return iter(())

    def get(self, path):
        return None

    def commit(self, operations):
        self.commits.append(tuple(operations))
        return CommitResult(operations=len(operations), applied=len(operations))


def _op(i: int) -> SetOperation:
    return SetOperation(path=DocumentPath.of("c", f"d{i}"), data={"i": i})


class TestLimits:
    def test_defaults_to_store_ceiling(self):
        acc = BatchAccumulator(RecordingStore(500))
        assert acc.operation_limit == 500
        assert acc.flush_threshold == 490

    def test_margin_below_entity_width_rejected(self):
        with pytest.raises(InvalidBatchLimitsError) as exc_info:
            BatchAccumulator(RecordingStore(), safety_margin=1)
        assert exc_info.value.safety_margin == 1

    def test_margin_not_below_limit_rejected(self):
        with pytest.raises(InvalidBatchLimitsError):
            BatchAccumulator(RecordingStore(10), operation_limit=10, safety_margin=10)

    def test_limit_above_store_ceiling_rejected(self):
        with pytest.raises(InvalidBatchLimitsError):
            BatchAccumulator(RecordingStore(500), operation_limit=600)


class TestFlush:
    def test_should_flush_at_threshold(self):
        acc = BatchAccumulator(RecordingStore(), operation_limit=10, safety_margin=2)
        for i in range(7):
            acc.append(_op(i))
        assert not acc.should_flush()
        acc.append(_op(7))
        assert acc.should_flush()

    def test_flush_commits_once_and_clears(self):
        store = RecordingStore()
        acc = BatchAccumulator(store, operation_limit=10, safety_margin=2)
        ops = [_op(0), UpdateOperation(path=DocumentPath.of("c", "d0"), fields={})]
        for op in ops:
            acc.append(op)

        result = acc.flush()

        assert result.operations == 2
        assert store.commits == [tuple(ops)]
        assert acc.pending_count == 0
        assert acc.batches_committed == 1
        assert acc.operations_committed == 2

    def test_empty_flush_is_noop(self):
        store = RecordingStore()
        acc = BatchAccumulator(store)
        assert acc.flush() is None
        assert store.commits == []

    def test_append_past_ceiling_raises(self):
        acc = BatchAccumulator(RecordingStore(), operation_limit=4, safety_margin=2)
        for i in range(4):
            acc.append(_op(i))
        with pytest.raises(CommitLimitExceededError):
            acc.append(_op(4))

    def test_failed_flush_keeps_batch_pending(self):
        class FailingStore(RecordingStore):
            def commit(self, operations):
                raise CommitFailedError(len(operations), "unavailable")

        acc = BatchAccumulator(FailingStore())
        acc.append(_op(0))
        with pytest.raises(CommitFailedError):
            acc.flush()
        assert acc.pending_count == 1
        assert acc.batches_committed == 0
