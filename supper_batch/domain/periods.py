"""
Pure period-key computation.

Contract:
    ``previous_period_key(invoked_at, granularity)`` names the period that
    just closed relative to ``invoked_at``: the previous calendar day
    (``YYYY-MM-DD``) or the previous calendar month (``YYYY-MM``).  Times
    are evaluated in UTC; naive datetimes are taken to be UTC already.

Architecture: supper_batch/domain.  ZERO I/O, no clock access.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from enum import Enum


class PeriodGranularity(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"


def _utc_date(value: datetime) -> date:
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(timezone.utc).date()


def previous_day(day: date) -> date:
    return day - timedelta(days=1)


def previous_month(day: date) -> tuple[int, int]:
    """(year, month) of the calendar month before ``day``'s month."""
    if day.month == 1:
        return day.year - 1, 12
    return day.year, day.month - 1


def previous_period_key(invoked_at: datetime, granularity: PeriodGranularity) -> str:
    """Key of the period closed by a run invoked at ``invoked_at``.

    >>> previous_period_key(datetime(2024, 5, 2, 0, 0), PeriodGranularity.DAILY)
    '2024-05-01'
    >>> previous_period_key(datetime(2024, 3, 31, 0, 5), PeriodGranularity.MONTHLY)
    '2024-02'
    """
    today = _utc_date(invoked_at)
    if granularity == PeriodGranularity.DAILY:
        return previous_day(today).isoformat()
    if granularity == PeriodGranularity.MONTHLY:
        year, month = previous_month(today)
        return f"{year:04d}-{month:02d}"
    raise ValueError(f"Unsupported period granularity: {granularity!r}")
