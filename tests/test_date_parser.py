"""Tests for date parsing and month arithmetic."""

import pytest
from datetime import date, timedelta
from dateutil.relativedelta import relativedelta

from finledger.utils.date_parser import add_months, day_in_month, next_period, parse_date


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    assert parse_date("2024-01-15") == date(2024, 1, 15)


def test_parse_today():
    assert parse_date("today") == date.today()


def test_parse_yesterday():
    assert parse_date("yesterday") == date.today() - timedelta(days=1)


def test_parse_tomorrow():
    assert parse_date("tomorrow") == date.today() + timedelta(days=1)


def test_parse_last_month():
    """'last month' is the first day of the previous month."""
    expected = (date.today() - relativedelta(months=1)).replace(day=1)
    assert parse_date("last month") == expected


def test_parse_is_case_insensitive():
    assert parse_date("  TODAY ") == date.today()


def test_parse_invalid_date():
    with pytest.raises(ValueError):
        parse_date("not a date")


class TestAddMonths:
    """Tests for calendar month addition."""

    def test_same_day_next_month(self):
        assert add_months(date(2025, 1, 15), 1) == date(2025, 2, 15)

    def test_month_end_clamped(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)

    def test_measured_from_start_does_not_drift(self):
        assert add_months(date(2025, 1, 31), 2) == date(2025, 3, 31)

    def test_leap_year(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_year_rollover(self):
        assert add_months(date(2025, 11, 30), 3) == date(2026, 2, 28)

    def test_negative_months(self):
        assert add_months(date(2025, 3, 31), -1) == date(2025, 2, 28)


def test_day_in_month_clamps():
    assert day_in_month(2025, 2, 31) == date(2025, 2, 28)
    assert day_in_month(2025, 4, 15) == date(2025, 4, 15)


def test_next_period():
    assert next_period(5, 2025) == (6, 2025)
    assert next_period(12, 2025) == (1, 2026)
