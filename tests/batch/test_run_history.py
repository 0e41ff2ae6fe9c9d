"""
Tests for supper_batch.services.history and the rollover_runs model.
"""

from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError

from supper_batch.domain.types import (
    RolloverErrorKind,
    RolloverResult,
    RolloverState,
    RolloverSummary,
)
from supper_batch.services.history import RunHistory


def _result(run_id="run-1", plan="daily_business_stats", period_key="2024-05-01",
            status=RolloverState.DONE, day=2, **kwargs) -> RolloverResult:
    return RolloverResult(
        run_id=run_id,
        plan=plan,
        status=status,
        period_key=period_key,
        summary=RolloverSummary(
            entities_processed=3, archives_written=2, batches_committed=1,
            operations_committed=5, missing_targets=1,
        ),
        started_at=datetime(2024, 5, day, 0, 0),
        completed_at=datetime(2024, 5, day, 0, 1),
        duration_ms=60000,
        **kwargs,
    )


class TestRunHistory:
    def test_record_round_trip(self, session_factory):
        history = RunHistory(session_factory)
        assert history.record(_result(), attempt=2)

        (stored,) = history.recent()
        assert stored.run_id == "run-1"
        assert stored.status == RolloverState.DONE
        assert stored.summary == _result().summary
        assert stored.duration_ms == 60000

    def test_failed_result_keeps_error(self, session_factory):
        history = RunHistory(session_factory)
        history.record(_result(
            status=RolloverState.FAILED,
            error_kind=RolloverErrorKind.COMMIT_FAILED,
            error_message="deadline exceeded",
        ))

        (stored,) = history.recent()
        assert stored.error_kind == RolloverErrorKind.COMMIT_FAILED
        assert stored.error_message == "deadline exceeded"

    def test_recent_newest_first_and_filtered(self, session_factory):
        history = RunHistory(session_factory)
        history.record(_result(run_id="old", day=1, period_key="2024-04-30"))
        history.record(_result(run_id="new", day=2))
        history.record(_result(run_id="monthly", plan="monthly_business_stats", day=1,
                               period_key="2024-04"))

        assert [r.run_id for r in history.recent(plan="daily_business_stats")] == ["new", "old"]
        assert len(history.recent(limit=1)) == 1

    def test_attempts_counted_per_period(self, session_factory):
        history = RunHistory(session_factory)
        history.record(_result(run_id="a"), attempt=1)
        history.record(_result(run_id="b"), attempt=2)
        history.record(_result(run_id="c", period_key="2024-05-02"))

        assert history.attempts("daily_business_stats", "2024-05-01") == 2

    def test_write_failure_is_swallowed(self, captured_logs):
        def broken_factory():
            raise OperationalError("INSERT", {}, Exception("read-only database"))

        assert RunHistory(broken_factory).record(_result()) is False
        failures = [r for r in captured_logs() if r["message"] == "run_history_write_failed"]
        assert failures and failures[0]["run_id"] == "run-1"
