"""
Tests for supper_batch.domain.schedule -- pure cron evaluation.
"""

from datetime import datetime, timezone

import pytest

from supper_batch.domain.schedule import CronExpression


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestParse:
    def test_daily_midnight(self):
        cron = CronExpression.parse("0 0 * * *")
        assert cron.minutes == frozenset({0})
        assert cron.hours == frozenset({0})
        assert cron.days_of_month == frozenset(range(1, 32))

    def test_lists_ranges_steps(self):
        cron = CronExpression.parse("*/15 9-11 1,15 * 1-5")
        assert cron.minutes == frozenset({0, 15, 30, 45})
        assert cron.hours == frozenset({9, 10, 11})
        assert cron.days_of_month == frozenset({1, 15})
        assert cron.days_of_week == frozenset({1, 2, 3, 4, 5})

    def test_start_with_step(self):
        assert CronExpression.parse("5/20 * * * *").minutes == frozenset({5, 25, 45})

    @pytest.mark.parametrize("expression", [
        "0 0 * *",
        "60 0 * * *",
        "0 24 * * *",
        "0 0 0 * *",
        "0 0 * 13 *",
        "0 0 * * 7",
        "5-1 * * * *",
        "*/0 * * * *",
        "a * * * *",
    ])
    def test_invalid_expressions(self, expression):
        with pytest.raises(ValueError):
            CronExpression.parse(expression)


class TestMatching:
    def test_matches_exact_minute(self):
        cron = CronExpression.parse("5 0 1 * *")
        assert cron.matches(_utc(2024, 5, 1, 0, 5))
        assert not cron.matches(_utc(2024, 5, 1, 0, 6))
        assert not cron.matches(_utc(2024, 5, 2, 0, 5))

    def test_day_of_week_sunday_is_zero(self):
        cron = CronExpression.parse("0 12 * * 0")
        assert cron.matches(_utc(2024, 5, 5, 12, 0))  # Sunday
        assert not cron.matches(_utc(2024, 5, 6, 12, 0))

    def test_next_after_daily(self):
        cron = CronExpression.parse("0 0 * * *")
        assert cron.next_after(_utc(2024, 5, 1, 13, 45)) == _utc(2024, 5, 2, 0, 0)

    def test_next_after_is_strict(self):
        cron = CronExpression.parse("0 0 * * *")
        assert cron.next_after(_utc(2024, 5, 2, 0, 0)) == _utc(2024, 5, 3, 0, 0)

    def test_next_after_monthly_crosses_year(self):
        cron = CronExpression.parse("5 0 1 * *")
        assert cron.next_after(_utc(2024, 12, 15)) == _utc(2025, 1, 1, 0, 5)

    def test_first_at_or_after_includes_current_minute(self):
        cron = CronExpression.parse("0 0 * * *")
        assert cron.first_at_or_after(_utc(2024, 5, 2, 0, 0, 42)) == _utc(2024, 5, 2, 0, 0)

    def test_first_at_or_after_later_minute(self):
        cron = CronExpression.parse("5 0 1 * *")
        assert cron.first_at_or_after(_utc(2024, 6, 1, 0, 6)) == _utc(2024, 7, 1, 0, 5)
