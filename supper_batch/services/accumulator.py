"""
BatchAccumulator -- bounded pending batch with threshold flushing.

Contract:
    - ``append(op)`` adds one write and increments the pending count by 1.
    - ``should_flush()`` is True once the pending count reaches
      ``operation_limit - safety_margin``.
    - ``flush()`` commits the pending writes as ONE store commit, then
      starts a fresh batch.  Commit errors propagate uncaught.

Invariants enforced:
    - The pending batch never holds more than ``operation_limit``
      operations: ``append()`` past the ceiling raises instead.
    - ``safety_margin >= MAX_OPERATIONS_PER_ENTITY``, because the flush
      check only runs between entities and one entity adds up to that many
      operations after the last check.

Non-goals:
    - No retry.  A failed flush leaves the batch pending and the run fails.
"""

from __future__ import annotations

from supper_kernel.exceptions import CommitLimitExceededError, InvalidBatchLimitsError
from supper_kernel.logging_config import get_logger
from supper_kernel.store.base import DocumentStore
from supper_kernel.store.types import CommitResult, WriteOperation

from supper_batch.domain.types import MAX_OPERATIONS_PER_ENTITY

logger = get_logger("batch.accumulator")

DEFAULT_SAFETY_MARGIN = 10


class BatchAccumulator:
    """Run-scoped pending batch.  Owned by exactly one driver run."""

    def __init__(
        self,
        store: DocumentStore,
        operation_limit: int | None = None,
        safety_margin: int = DEFAULT_SAFETY_MARGIN,
    ):
        limit = operation_limit if operation_limit is not None else store.max_operations_per_commit
        if safety_margin < MAX_OPERATIONS_PER_ENTITY:
            raise InvalidBatchLimitsError(
                limit, safety_margin,
                f"margin must be at least {MAX_OPERATIONS_PER_ENTITY} "
                "(operations one entity can add between flush checks)",
            )
        if limit - safety_margin <= 0:
            raise InvalidBatchLimitsError(
                limit, safety_margin, "limit must exceed the safety margin",
            )
        if limit > store.max_operations_per_commit:
            raise InvalidBatchLimitsError(
                limit, safety_margin,
                f"limit exceeds the store ceiling of {store.max_operations_per_commit}",
            )

        self._store = store
        self._limit = limit
        self._margin = safety_margin
        self._pending: list[WriteOperation] = []
        self._batches_committed = 0
        self._operations_committed = 0
        self._missing_targets = 0

    # -------------------------------------------------------------------------
    # Batch operations
    # -------------------------------------------------------------------------

    def append(self, op: WriteOperation) -> None:
        if len(self._pending) >= self._limit:
            raise CommitLimitExceededError(len(self._pending) + 1, self._limit)
        self._pending.append(op)

    def should_flush(self) -> bool:
        return len(self._pending) >= self.flush_threshold

    def flush(self) -> CommitResult | None:
        """Commit and clear the pending batch.  No-op (None) when empty."""
        if not self._pending:
            return None

        result = self._store.commit(tuple(self._pending))

        self._batches_committed += 1
        self._operations_committed += result.operations
        self._missing_targets += len(result.missing)
        logger.info(
            "batch_committed",
            extra={
                "batch_number": self._batches_committed,
                "operations": result.operations,
                "missing": len(result.missing),
            },
        )
        self._pending = []
        return result

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def flush_threshold(self) -> int:
        return self._limit - self._margin

    @property
    def operation_limit(self) -> int:
        return self._limit

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def batches_committed(self) -> int:
        return self._batches_committed

    @property
    def operations_committed(self) -> int:
        return self._operations_committed

    @property
    def missing_targets(self) -> int:
        return self._missing_targets
