"""
Pure cron evaluation for rollover schedules.

Contract:
    ``CronExpression.parse()`` accepts the 5-field form
    ``minute hour day_of_month month day_of_week`` with ``*``, lists,
    ranges and steps.  ``matches()`` and ``next_after()`` are pure: the
    caller supplies the instant, nothing here reads a clock.

Architecture: supper_batch/domain.  ZERO I/O.

Day-of-week uses cron numbering (0 = Sunday).  All instants are compared
in UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

_FIELD_BOUNDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day_of_month", 1, 31),
    ("month", 1, 12),
    ("day_of_week", 0, 6),
)

# Bounded search: one leap year of minutes.
_MAX_SEARCH_MINUTES = 366 * 24 * 60


def _expand(term: str, low: int, high: int, name: str) -> set[int]:
    step = 1
    if "/" in term:
        term, step_text = term.split("/", 1)
        step = int(step_text)
        if step <= 0:
            raise ValueError(f"cron {name}: step must be positive, got {step}")

    if term == "*":
        start, end = low, high
    elif "-" in term:
        start_text, end_text = term.split("-", 1)
        start, end = int(start_text), int(end_text)
        if start > end:
            raise ValueError(f"cron {name}: range {start}-{end} is reversed")
    else:
        start = int(term)
        # "5/15" means from 5 to the top of the range
        end = high if step != 1 else start

    if start < low or end > high:
        raise ValueError(f"cron {name}: {start}-{end} outside [{low}, {high}]")
    return set(range(start, end + 1, step))


@dataclass(frozen=True)
class CronExpression:
    expression: str
    minutes: frozenset[int]
    hours: frozenset[int]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]

    @classmethod
    def parse(cls, expression: str) -> CronExpression:
        """Parse a 5-field cron expression.

        Raises:
            ValueError: wrong field count, bad number, or out-of-range value.
        """
        parts = expression.split()
        if len(parts) != len(_FIELD_BOUNDS):
            raise ValueError(
                f"Cron expression must have 5 fields, got {len(parts)}: '{expression}'"
            )

        expanded = []
        for text, (name, low, high) in zip(parts, _FIELD_BOUNDS):
            values: set[int] = set()
            for term in text.split(","):
                values |= _expand(term.strip(), low, high, name)
            expanded.append(frozenset(values))

        return cls(expression.strip(), *expanded)

    def matches(self, instant: datetime) -> bool:
        instant = _as_utc(instant)
        cron_dow = (instant.weekday() + 1) % 7
        return (
            instant.minute in self.minutes
            and instant.hour in self.hours
            and instant.day in self.days_of_month
            and instant.month in self.months
            and cron_dow in self.days_of_week
        )

    def next_after(self, instant: datetime) -> datetime:
        """First matching minute strictly after ``instant``.

        Raises:
            ValueError: if nothing matches within a year (e.g. ``0 0 31 2 *``).
        """
        candidate = _as_utc(instant).replace(second=0, microsecond=0)
        for _ in range(_MAX_SEARCH_MINUTES):
            candidate += timedelta(minutes=1)
            if self.matches(candidate):
                return candidate
        raise ValueError(
            f"Cron '{self.expression}' has no match within a year after {instant}"
        )

    def first_at_or_after(self, instant: datetime) -> datetime:
        """First matching minute whose start is at or after ``instant``'s minute."""
        minute = _as_utc(instant).replace(second=0, microsecond=0)
        return self.next_after(minute - timedelta(minutes=1))


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


