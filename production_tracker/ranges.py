"""Calendar helpers for the dashboard's date pickers.

Days travel as ``YYYY-MM-DD`` strings in the server's local time.  Weeks
start on Monday, months are calendar months.
"""

import calendar
from datetime import date, timedelta

from .errors import ValidationError

RANGE_KINDS = ("today", "week", "month")


def parse_day(text, default: date | None = None) -> date:
    if not text:
        if default is not None:
            return default
        raise ValidationError("Date is required")
    try:
        return date.fromisoformat(str(text).strip())
    except ValueError:
        raise ValidationError(f"Invalid date {text!r}; expected YYYY-MM-DD") from None


def resolve_range(kind: str, today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    if kind == "today":
        return today, today
    if kind == "week":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if kind == "month":
        last = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last)
    raise ValidationError(f"Unknown range {kind!r}; expected one of {', '.join(RANGE_KINDS)}")
