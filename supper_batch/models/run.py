"""
ORM model for rollover run history.

Contract:
    RolloverRunModel records one attempt of one plan: period key, attempt
    number, final state, counts and error.  ``from_result()`` /
    ``to_result()`` convert to and from ``RolloverResult``.

Architecture: supper_batch/models.  Imports from supper_kernel.db.base only
    (plus domain types for conversion).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from supper_kernel.db.base import TrackedBase

from supper_batch.domain.types import (
    RolloverErrorKind,
    RolloverResult,
    RolloverState,
    RolloverSummary,
)


class RolloverRunModel(TrackedBase):
    """One persisted rollover attempt."""

    __tablename__ = "rollover_runs"

    __table_args__ = (
        Index("ix_rollover_runs_plan_period", "plan", "period_key"),
        Index("ix_rollover_runs_status", "status"),
    )

    run_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    plan: Mapped[str] = mapped_column(String(200), nullable=False)
    period_key: Mapped[str | None] = mapped_column(String(20), nullable=True)
    attempt: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    entities_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    archives_written: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    entities_skipped: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batches_committed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    operations_committed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    missing_targets: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_kind: Mapped[str | None] = mapped_column(String(50), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    duration_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def to_result(self) -> RolloverResult:
        return RolloverResult(
            run_id=self.run_id,
            plan=self.plan,
            status=RolloverState(self.status),
            period_key=self.period_key,
            summary=RolloverSummary(
                entities_processed=self.entities_processed,
                archives_written=self.archives_written,
                entities_skipped=self.entities_skipped,
                batches_committed=self.batches_committed,
                operations_committed=self.operations_committed,
                missing_targets=self.missing_targets,
            ),
            error_kind=RolloverErrorKind(self.error_kind) if self.error_kind else None,
            error_message=self.error_message,
            started_at=self.started_at,
            completed_at=self.completed_at,
            duration_ms=self.duration_ms,
        )

    @classmethod
    def from_result(cls, result: RolloverResult, attempt: int = 1) -> RolloverRunModel:
        summary = result.summary
        return cls(
            run_id=result.run_id,
            plan=result.plan,
            period_key=result.period_key,
            attempt=attempt,
            status=result.status.value,
            entities_processed=summary.entities_processed,
            archives_written=summary.archives_written,
            entities_skipped=summary.entities_skipped,
            batches_committed=summary.batches_committed,
            operations_committed=summary.operations_committed,
            missing_targets=summary.missing_targets,
            error_kind=result.error_kind.value if result.error_kind else None,
            error_message=result.error_message,
            started_at=result.started_at,
            completed_at=result.completed_at,
            duration_ms=result.duration_ms,
        )
