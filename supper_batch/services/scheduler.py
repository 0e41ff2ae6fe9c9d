"""
RolloverScheduler -- in-process cron scheduler with a retry budget.

Contract:
    Polls on a fixed interval.  Each ``ScheduleEntry`` keeps a
    ``next_run_at``; a tick fires the entry once ``now >= next_run_at``,
    even when an earlier run held the loop past that minute, then advances
    ``next_run_at`` to the first cron match after ``now``.  A fired entry
    runs its driver and, while the result is FAILED, re-runs it up to
    ``retry_count`` more times with exponential backoff
    (``backoff_seconds * 2**(attempt - 1)``).  Every attempt of one firing
    passes the scheduled instant as ``invoked_at``, so late firings and
    retries close the scheduled period.

Invariants enforced:
    - All timestamps from the injected Clock.
    - Cron evaluation is pure (CronExpression).
    - Graceful shutdown: the stop signal is honoured between attempts and
      interrupts backoff waits.

Non-goals:
    - NOT a distributed scheduler (no leader election, no lock).
    - No catch-up of occurrences missed while the process was down; a late
      entry fires once, for its earliest pending occurrence.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from supper_kernel.clock import Clock, SystemClock
from supper_kernel.logging_config import get_logger

from supper_batch.domain.schedule import CronExpression
from supper_batch.domain.types import RolloverResult
from supper_batch.services.driver import RolloverDriver
from supper_batch.services.history import RunHistory

logger = get_logger("batch.scheduler")


@dataclass(frozen=True)
class ScheduleEntry:
    driver: RolloverDriver
    cron: CronExpression
    retry_count: int = 3
    backoff_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {self.retry_count}")
        if self.backoff_seconds < 0:
            raise ValueError(f"backoff_seconds must be >= 0, got {self.backoff_seconds}")

    @property
    def name(self) -> str:
        return self.driver.plan.name

    def backoff_for(self, attempt: int) -> float:
        """Delay after failed attempt number ``attempt`` (1-based)."""
        return self.backoff_seconds * (2 ** (attempt - 1))


class RolloverScheduler:
    """Cron-driven invoker of rollover drivers.

    Contract:
        - ``tick()`` fires due entries (public for testing).
        - ``run_with_retry()`` runs one entry with its retry budget.
        - ``start()`` / ``stop()`` for background thread operation.
    """

    def __init__(
        self,
        entries: Sequence[ScheduleEntry],
        clock: Clock | None = None,
        history: RunHistory | None = None,
        tick_interval_seconds: float = 30,
    ):
        names = [entry.name for entry in entries]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate schedule entries: {sorted(names)}")
        self._entries = tuple(entries)
        self._clock = clock or SystemClock()
        self._history = history
        self._tick_interval = tick_interval_seconds
        self._next_run_at: dict[str, datetime] = {}
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> list[RolloverResult]:
        """Fire every entry whose ``next_run_at`` has been reached.

        Each entry is checked against the clock as it is reached, so an
        entry that fell due while an earlier one ran still fires this tick.
        Returns the final result of each entry fired by this tick.
        """
        results: list[RolloverResult] = []

        tick_started = self._clock.now()
        for entry in self._entries:
            # First sight of an entry: the minute the tick started in counts.
            if entry.name not in self._next_run_at:
                self._next_run_at[entry.name] = entry.cron.first_at_or_after(tick_started)

        for entry in self._entries:
            if self._stop_event.is_set():
                break
            now = self._clock.now()
            scheduled_for = self._next_run_at[entry.name]
            if now < scheduled_for:
                continue

            self._next_run_at[entry.name] = entry.cron.next_after(now)
            logger.info(
                "schedule_fired",
                extra={
                    "schedule": entry.name,
                    "cron": entry.cron.expression,
                    "scheduled_for": scheduled_for,
                    "lateness_seconds": (now - scheduled_for).total_seconds(),
                },
            )
            try:
                results.append(self.run_with_retry(entry, invoked_at=scheduled_for))
            except Exception:
                logger.exception("schedule_fire_failed", extra={"schedule": entry.name})

        return results

    def run_with_retry(
        self, entry: ScheduleEntry, invoked_at: datetime | None = None,
    ) -> RolloverResult:
        """Run ``entry`` until DONE or ``1 + retry_count`` attempts are used."""
        invoked_at = invoked_at or self._clock.now()
        max_attempts = 1 + entry.retry_count
        attempt = 0

        while True:
            attempt += 1
            result = entry.driver.run(invoked_at)
            if self._history is not None:
                self._history.record(result, attempt=attempt)

            if result.ok:
                if attempt > 1:
                    logger.info(
                        "rollover_succeeded_after_retry",
                        extra={"schedule": entry.name, "attempt": attempt},
                    )
                return result

            if attempt >= max_attempts:
                logger.error(
                    "rollover_retries_exhausted",
                    extra={
                        "schedule": entry.name,
                        "attempts": attempt,
                        "error_kind": result.error_kind.value if result.error_kind else None,
                    },
                )
                return result

            delay = entry.backoff_for(attempt)
            logger.warning(
                "rollover_retry_scheduled",
                extra={
                    "schedule": entry.name,
                    "attempt": attempt,
                    "next_attempt": attempt + 1,
                    "delay_seconds": delay,
                },
            )
            if self._stop_event.wait(timeout=delay):
                logger.info("rollover_retry_abandoned", extra={"schedule": entry.name})
                return result

    def next_fire_times(self, after: datetime | None = None) -> dict[str, datetime]:
        after = after or self._clock.now()
        return {entry.name: entry.cron.next_after(after) for entry in self._entries}

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="rollover-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={
                "tick_interval": self._tick_interval,
                "schedules": [entry.name for entry in self._entries],
            },
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the scheduler thread to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def entries(self) -> tuple[ScheduleEntry, ...]:
        return self._entries

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_exception")
            self._stop_event.wait(timeout=self._tick_interval)
