"""
Date helpers.

All timestamps are stored as naive UTC datetimes.  Services read the clock
through ``utcnow()`` so tests can pin it with monkeypatch.
"""
from datetime import datetime, timezone

from dateutil.relativedelta import relativedelta


def utcnow():
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_month(moment):
    """Midnight on the first day of *moment*'s month."""
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def month_bounds(moment):
    """``(start, end)`` of *moment*'s month; *end* is the first instant of the next month."""
    start = start_of_month(moment)
    return start, start + relativedelta(months=1)


def year_bounds(year):
    start = datetime(year, 1, 1)
    return start, start + relativedelta(years=1)


def days_between(later, earlier):
    """Absolute distance between two datetimes in (fractional) days."""
    return abs((later - earlier).total_seconds()) / 86400


def isoformat(value):
    """ISO string for dates/datetimes, ``None`` passes through."""
    return value.isoformat() if value is not None else None
