from __future__ import annotations

import calendar
from datetime import MAXYEAR, MINYEAR, date, datetime
from typing import Iterator, Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_optional_date(value: Optional[str], field_name: str) -> Optional[date]:
    if value is None or not str(value).strip():
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field_name} must be a date in YYYY-MM-DD format")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now()


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def iter_month(year: int, month: int) -> Iterator[date]:
    if not 1 <= int(month) <= 12:
        raise ValidationError("Month must be between 1 and 12")
    if not MINYEAR <= int(year) <= MAXYEAR:
        raise ValidationError(f"Year must be between {MINYEAR} and {MAXYEAR}")
    _, days = calendar.monthrange(int(year), int(month))
    for d in range(1, days + 1):
        yield date(int(year), int(month), d)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    days = list(iter_month(year, month))
    return days[0], days[-1]
