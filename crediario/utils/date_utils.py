"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, time


def add_months(from_date: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's end"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def is_past_due(due_date: date, now: datetime) -> bool:
    """A due date falls due at the start of its day; any later instant is past it"""
    return datetime.combine(due_date, time.min, tzinfo=now.tzinfo) < now
