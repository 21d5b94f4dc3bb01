"""
Time helpers.

All timestamps are stored and compared as timezone-aware UTC datetimes.
SQLite drops tzinfo on the way back out, so values read from the database
go through as_utc() before being compared with utcnow().
"""

import calendar
from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def add_months(value: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the end of the target month.

    Example:
        add_months(datetime(2024, 12, 31), 2) -> datetime(2025, 2, 28)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
