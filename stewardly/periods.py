"""
Period keys.

A period is one calendar month written as ``YYYY-MM``. It is the key that
ties locks, snapshots, income and transactions together.
"""

import re
from datetime import date, datetime, timezone
from typing import Iterator, Optional, Union

PERIOD_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

DateLike = Union[date, datetime, str]


class InvalidPeriodError(ValueError):
    """Raised when a value is not a canonical ``YYYY-MM`` period key."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(
            f'Invalid period key: "{value}". Must be YYYY-MM format with month 01-12.'
        )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_period_key(value: object) -> bool:
    return isinstance(value, str) and PERIOD_KEY_PATTERN.match(value) is not None


def assert_period_key(value: object) -> str:
    if not is_valid_period_key(value):
        raise InvalidPeriodError(value)
    return value


def period_from_date(value: DateLike) -> str:
    """Truncate a date (or ISO date string) to its period key."""
    if isinstance(value, (date, datetime)):
        return f"{value.year:04d}-{value.month:02d}"
    return str(value).strip()[:7]


def current_period(today: Optional[date] = None) -> str:
    return period_from_date(today or date.today())


def parse_period(period: str) -> tuple[int, int]:
    assert_period_key(period)
    year, month = period.split("-")
    return int(year), int(month)


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def last_day_of_month(year: int, month: int) -> int:
    return days_in_month(year, month)


def period_bounds(period: str) -> tuple[date, date]:
    """First and last calendar day of a period."""
    year, month = parse_period(period)
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def next_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{month + 1:02d}"


def iter_periods(start: str, end: str) -> Iterator[str]:
    """Walk every period from ``start`` to ``end`` inclusive."""
    assert_period_key(end)
    current = assert_period_key(start)
    while current <= end:
        yield current
        current = next_period(current)
