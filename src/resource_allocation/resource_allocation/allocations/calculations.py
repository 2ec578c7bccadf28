"""Hours <-> percentage conversion for allocations.

All functions are pure and work on whole local days: ``datetime`` inputs are
truncated to their date, so a period always runs from the start of its first
day to the end of its last day.

Rounding is half-up (``Decimal.ROUND_HALF_UP``) for both hours and
percentages so values stay identical to the ones already stored in history.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..common.datetime_utils import DateLike, as_day
from ..core.constants import OPEN_ENDED_PERIOD_DAYS, WORKING_DAYS_PER_MONTH
from ..core.exceptions import InvalidRangeError

_ONE = Decimal("1")
_CENT = Decimal("0.01")


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(_ONE, rounding=ROUND_HALF_UP))


def round_percentage(value: float) -> float:
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def require_ordered(start: DateLike, end: Optional[DateLike]) -> None:
    if end is not None and as_day(end) < as_day(start):
        raise InvalidRangeError(f"End date {as_day(end)} is before start date {as_day(start)}")


def business_days(start: DateLike, end: DateLike) -> int:
    """Count Monday-Friday days in the inclusive range [start, end].

    An inverted range is empty and yields 0.
    """
    first = as_day(start)
    last = as_day(end)
    if last < first:
        return 0

    total_days = (last - first).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * 5

    weekday = first.weekday()
    for offset in range(remainder):
        if (weekday + offset) % 7 < 5:
            count += 1
    return count


def effective_end(start: DateLike, end: Optional[DateLike]) -> date:
    """End date used for sizing: open-ended periods count one week after start."""
    if end is None:
        return as_day(start) + timedelta(days=OPEN_ENDED_PERIOD_DAYS)
    return as_day(end)


def available_hours(monthly_capacity_hours: float, start: DateLike, end: Optional[DateLike]) -> float:
    days_in_period = business_days(start, effective_end(start, end))
    return monthly_capacity_hours / WORKING_DAYS_PER_MONTH * days_in_period


def hours_from_percentage(
    percentage: float,
    monthly_capacity_hours: float,
    start: DateLike,
    end: Optional[DateLike],
) -> int:
    require_ordered(start, end)
    hours = percentage / 100 * available_hours(monthly_capacity_hours, start, end)
    return round_half_up(hours)


def percentage_from_hours(
    hours: float,
    monthly_capacity_hours: float,
    start: DateLike,
    end: Optional[DateLike],
) -> float:
    """Percentage (2 decimals) of capacity that ``hours`` represent in the period.

    A period without business days has no capacity; the result is 0 instead of
    a division error.
    """
    require_ordered(start, end)
    capacity = available_hours(monthly_capacity_hours, start, end)
    if capacity == 0:
        return 0.0
    return round_percentage(hours / capacity * 100)


def dates_overlap(
    start1: DateLike,
    end1: Optional[DateLike],
    start2: DateLike,
    end2: Optional[DateLike],
) -> bool:
    """True when two periods share at least one day.

    A missing end means the period never ends. Touching endpoints overlap.
    """
    require_ordered(start1, end1)
    require_ordered(start2, end2)

    s1, s2 = as_day(start1), as_day(start2)
    starts_before_second_ends = end2 is None or s1 <= as_day(end2)
    second_starts_before_first_ends = end1 is None or s2 <= as_day(end1)
    return starts_before_second_ends and second_starts_before_first_ends
