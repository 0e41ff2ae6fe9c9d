"""
RolloverDriver -- bounded batch rollover of one plan.

Contract:
    ``run(invoked_at)`` closes the period before ``invoked_at``: it scans
    the plan's active entities, appends an archive write (when the entity
    had activity) followed by a reset write for each, flushes whenever the
    accumulator reaches its threshold, flushes the remainder, and returns
    a ``RolloverResult``.

State machine:
    INIT -> SCANNING -> (DECIDING -> ACCUMULATING)* -> FINAL_FLUSH -> DONE
    Any scan or commit failure moves to FAILED.

Invariants enforced:
    - Archive-then-reset: an entity's archive write is appended before its
      reset write, and both land in the same commit because the flush
      check only runs between entities.
    - Completeness: every well-formed active entity gets exactly one reset.
    - Batch bound: see BatchAccumulator.
    - No retry loop: FAILED is returned, never retried here.  Every retry
      re-scans from scratch; replayed archive (overwrite) and reset
      (set-to-zero) writes are idempotent.

Failure modes:
    - Malformed entity (blank id, non-numeric counter): skipped with a
      warning, run continues.
    - ScanFailedError: FAILED(scan_failed), nothing committed.
    - CommitFailedError / CommitLimitExceededError: FAILED(commit_failed);
      batches committed earlier in the run stay committed.
"""

from __future__ import annotations

import time
from datetime import datetime
from uuid import uuid4

from supper_kernel.clock import Clock, SystemClock
from supper_kernel.exceptions import MalformedSnapshotError, ScanFailedError, StoreError
from supper_kernel.logging_config import LogContext, get_logger
from supper_kernel.store.base import DocumentStore
from supper_kernel.store.types import DocumentSnapshot

from supper_batch.domain.decisions import decide_archive, decide_reset
from supper_batch.domain.periods import previous_period_key
from supper_batch.domain.plan import RolloverPlan
from supper_batch.domain.types import (
    ArchiveWrite,
    EntitySnapshot,
    ResetWrite,
    RolloverErrorKind,
    RolloverResult,
    RolloverState,
    RolloverSummary,
)
from supper_batch.services.accumulator import DEFAULT_SAFETY_MARGIN, BatchAccumulator
from supper_batch.services.source import EntitySource

logger = get_logger("batch.driver")


class _RunCounters:
    """Mutable tallies for one run; committed counts move on each flush."""

    def __init__(self) -> None:
        self.pending_entities = 0
        self.pending_archives = 0
        self.entities_processed = 0
        self.archives_written = 0
        self.entities_skipped = 0

    def mark_committed(self) -> None:
        self.entities_processed += self.pending_entities
        self.archives_written += self.pending_archives
        self.pending_entities = 0
        self.pending_archives = 0

    def summary(self, accumulator: BatchAccumulator) -> RolloverSummary:
        return RolloverSummary(
            entities_processed=self.entities_processed,
            archives_written=self.archives_written,
            entities_skipped=self.entities_skipped,
            batches_committed=accumulator.batches_committed,
            operations_committed=accumulator.operations_committed,
            missing_targets=accumulator.missing_targets,
        )


class RolloverDriver:
    """Runs one ``RolloverPlan`` against an injected document store.

    Non-goals:
        - Does NOT retry -- the scheduler owns the retry budget.
        - Does NOT take a lock -- overlapping runs rely on idempotent writes.
    """

    def __init__(
        self,
        store: DocumentStore,
        plan: RolloverPlan,
        clock: Clock | None = None,
        operation_limit: int | None = None,
        safety_margin: int = DEFAULT_SAFETY_MARGIN,
    ):
        self._store = store
        self._plan = plan
        self._clock = clock or SystemClock()
        self._operation_limit = operation_limit
        self._safety_margin = safety_margin
        self._state = RolloverState.INIT
        # Reject impossible limits at wiring time rather than mid-schedule.
        self._new_accumulator()

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self, invoked_at: datetime | None = None) -> RolloverResult:
        run_id = str(uuid4())
        start = time.monotonic()
        started_at = self._clock.now()

        self._state = RolloverState.INIT
        period_key = previous_period_key(invoked_at or started_at, self._plan.granularity)
        accumulator = self._new_accumulator()
        counters = _RunCounters()

        with LogContext.bind(run_id=run_id, plan=self._plan.name, period_key=period_key):
            logger.info(
                "rollover_started",
                extra={
                    "invoked_at": invoked_at or started_at,
                    "flush_threshold": accumulator.flush_threshold,
                },
            )
            try:
                self._state = RolloverState.SCANNING
                documents = EntitySource(self._store, self._plan).open()

                for document in documents:
                    self._state = RolloverState.DECIDING
                    writes = self._decide(document, period_key)
                    if writes is None:
                        counters.entities_skipped += 1
                        continue

                    self._state = RolloverState.ACCUMULATING
                    archive, reset = writes
                    if archive is not None:
                        accumulator.append(archive)
                        counters.pending_archives += 1
                    accumulator.append(reset)
                    counters.pending_entities += 1

                    if accumulator.should_flush():
                        accumulator.flush()
                        counters.mark_committed()
                        logger.info(
                            "rollover_progress",
                            extra={"entities_processed": counters.entities_processed},
                        )

                self._state = RolloverState.FINAL_FLUSH
                accumulator.flush()
                counters.mark_committed()

            except ScanFailedError as exc:
                return self._fail(
                    run_id, period_key, RolloverErrorKind.SCAN_FAILED, exc,
                    counters.summary(accumulator), started_at, start,
                )
            except StoreError as exc:
                return self._fail(
                    run_id, period_key, RolloverErrorKind.COMMIT_FAILED, exc,
                    counters.summary(accumulator), started_at, start,
                )
            except Exception as exc:
                return self._fail(
                    run_id, period_key, RolloverErrorKind.UNEXPECTED, exc,
                    counters.summary(accumulator), started_at, start,
                )

            self._state = RolloverState.DONE
            summary = counters.summary(accumulator)
            duration_ms = int((time.monotonic() - start) * 1000)
            logger.info(
                "rollover_completed",
                extra={
                    "entities_processed": summary.entities_processed,
                    "archives_written": summary.archives_written,
                    "entities_skipped": summary.entities_skipped,
                    "batches_committed": summary.batches_committed,
                    "duration_ms": duration_ms,
                },
            )
            return RolloverResult(
                run_id=run_id,
                plan=self._plan.name,
                status=RolloverState.DONE,
                period_key=period_key,
                summary=summary,
                started_at=started_at,
                completed_at=self._clock.now(),
                duration_ms=duration_ms,
            )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def plan(self) -> RolloverPlan:
        return self._plan

    @property
    def state(self) -> RolloverState:
        """State reached by the most recent (or current) run."""
        return self._state

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _new_accumulator(self) -> BatchAccumulator:
        return BatchAccumulator(
            self._store,
            operation_limit=self._operation_limit,
            safety_margin=self._safety_margin,
        )

    def _decide(
        self, document: DocumentSnapshot, period_key: str,
    ) -> tuple[ArchiveWrite | None, ResetWrite] | None:
        """Archive/reset writes for one entity, or None to skip it."""
        try:
            entity = EntitySnapshot.from_document(
                document, self._plan.counter_fields, self._plan.active_field,
            )
            return (
                decide_archive(entity, period_key, self._plan),
                decide_reset(entity, self._plan),
            )
        except MalformedSnapshotError as exc:
            logger.warning(
                "entity_skipped_malformed",
                extra={"path": str(document.path), "reason": exc.reason},
            )
        except Exception:
            logger.warning(
                "entity_skipped_decision_error",
                extra={"path": str(document.path)},
                exc_info=True,
            )
        return None

    def _fail(
        self,
        run_id: str,
        period_key: str,
        kind: RolloverErrorKind,
        exc: Exception,
        summary: RolloverSummary,
        started_at: datetime,
        start: float,
    ) -> RolloverResult:
        failed_in = self._state
        self._state = RolloverState.FAILED
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.error(
            "rollover_failed",
            extra={
                "error_kind": kind.value,
                "failed_in": failed_in.value,
                "entities_processed": summary.entities_processed,
                "batches_committed": summary.batches_committed,
            },
            exc_info=exc,
        )
        return RolloverResult(
            run_id=run_id,
            plan=self._plan.name,
            status=RolloverState.FAILED,
            period_key=period_key,
            summary=summary,
            error_kind=kind,
            error_message=str(exc),
            started_at=started_at,
            completed_at=self._clock.now(),
            duration_ms=duration_ms,
        )
