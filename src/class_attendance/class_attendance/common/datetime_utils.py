from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def coerce_date(value: Union[str, date, datetime, None], field_name: str = "date") -> date:
    """Accept a date, a datetime or an ISO string (a time part is ignored)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field_name} is required")
    try:
        return parse_iso_date(value.strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid {field_name} {value!r}, expected YYYY-MM-DD")


def optional_date(value: Optional[str], field_name: str = "date") -> Optional[date]:
    if not value:
        return None
    return coerce_date(value, field_name)


def midnight(value: date) -> datetime:
    return datetime(value.year, value.month, value.day)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
