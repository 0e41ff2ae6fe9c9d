"""
RunHistory -- persisted trail of rollover attempts.

Contract:
    ``record()`` writes one RolloverRunModel in its own transaction, never
    sharing a commit with rollover writes.  ``recent()`` lists attempts
    newest first.

Failure modes:
    - A history write failure is logged and swallowed: losing an audit row
      must not turn a successful rollover into a retry.
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supper_kernel.logging_config import get_logger

from supper_batch.domain.types import RolloverResult
from supper_batch.models.run import RolloverRunModel

logger = get_logger("batch.history")


class RunHistory:

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def record(self, result: RolloverResult, attempt: int = 1) -> bool:
        """Persist ``result``; returns False when the write failed."""
        try:
            with self._session_factory() as session, session.begin():
                session.add(RolloverRunModel.from_result(result, attempt=attempt))
        except SQLAlchemyError:
            logger.exception(
                "run_history_write_failed",
                extra={"run_id": result.run_id, "status": result.status.value},
            )
            return False
        return True

    def recent(self, plan: str | None = None, limit: int = 20) -> tuple[RolloverResult, ...]:
        query = select(RolloverRunModel)
        if plan is not None:
            query = query.where(RolloverRunModel.plan == plan)
        query = query.order_by(
            RolloverRunModel.started_at.desc(), RolloverRunModel.attempt.desc(),
        ).limit(limit)
        with self._session_factory() as session:
            return tuple(m.to_result() for m in session.execute(query).scalars().all())

    def attempts(self, plan: str, period_key: str) -> int:
        """Number of recorded attempts for one plan and period."""
        with self._session_factory() as session:
            rows = session.execute(
                select(RolloverRunModel.id).where(
                    RolloverRunModel.plan == plan,
                    RolloverRunModel.period_key == period_key,
                )
            ).all()
            return len(rows)
