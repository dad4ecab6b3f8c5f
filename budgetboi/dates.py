from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import Iterator

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta


def parse_day(value: str | date) -> date:
    """Parse an ISO date (or timestamp) and drop any time-of-day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return isoparse(value).date()


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    return start_of_month(day) + relativedelta(months=1) - timedelta(days=1)


def start_of_year(day: date) -> date:
    return date(day.year, 1, 1)


def end_of_year(day: date) -> date:
    return date(day.year, 12, 31)


def iter_days(start: date, end: date) -> Iterator[date]:
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def iter_months(start: date, end: date) -> Iterator[date]:
    """Yield the first day of every month from start's month through end."""
    cursor = start_of_month(start)
    while cursor <= end:
        yield cursor
        cursor += relativedelta(months=1)


def short_label(day: date) -> str:
    # "Jan 5", no zero padding
    return f"{day:%b} {day.day}"
