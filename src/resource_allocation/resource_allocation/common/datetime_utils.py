from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Union

DateLike = Union[date, datetime]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_optional_iso_date(value: Any) -> Optional[date]:
    v = "" if value is None else str(value).strip()
    if not v:
        return None
    return parse_iso_date(v[:10])


def as_day(value: DateLike) -> date:
    """Drop the time part: periods are compared on whole local days."""
    if isinstance(value, datetime):
        return value.date()
    return value
