from datetime import date

import pytest

from production_tracker.errors import ValidationError
from production_tracker.ranges import parse_day, resolve_range


def test_week_starts_monday():
    # 2026-10-22 is a Thursday
    assert resolve_range("week", date(2026, 10, 22)) == (date(2026, 10, 19), date(2026, 10, 25))
    assert resolve_range("week", date(2026, 10, 19)) == (date(2026, 10, 19), date(2026, 10, 25))


def test_month_and_today():
    assert resolve_range("month", date(2028, 2, 10)) == (date(2028, 2, 1), date(2028, 2, 29))
    assert resolve_range("today", date(2026, 1, 5)) == (date(2026, 1, 5), date(2026, 1, 5))


def test_unknown_range():
    with pytest.raises(ValidationError):
        resolve_range("year")


def test_parse_day():
    assert parse_day("2026-10-19") == date(2026, 10, 19)
    assert parse_day("", default=date(2026, 1, 1)) == date(2026, 1, 1)
    with pytest.raises(ValidationError):
        parse_day("19/10/2026")
    with pytest.raises(ValidationError):
        parse_day(None)
