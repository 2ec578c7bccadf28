"""Capacity ceiling for percentage allocations.

Overlapping percentage allocations of one employee may add up to at most
100%. The check is pure; callers run it inside the per-employee transaction
that also performs the write (see ``AllocationRepository.employee_transaction``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from ..common.datetime_utils import DateLike
from ..core.constants import MAX_ALLOCATION_PERCENTAGE
from ..core.exceptions import CapacityExceededError
from .calculations import dates_overlap, percentage_from_hours, require_ordered
from .model import Allocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityCheck:
    current_total: float
    requested: float

    @property
    def new_total(self) -> float:
        return float(Decimal(str(self.current_total)) + Decimal(str(self.requested)))

    @property
    def remaining(self) -> float:
        return float(Decimal(MAX_ALLOCATION_PERCENTAGE) - Decimal(str(self.new_total)))


def _percentage_of(allocation: Allocation, monthly_capacity_hours: Optional[int]) -> Decimal:
    if allocation.allocated_percentage is not None:
        return Decimal(str(allocation.allocated_percentage))
    # Legacy rows that only carry hours.
    if monthly_capacity_hours and allocation.allocated_hours is not None:
        pct = percentage_from_hours(
            allocation.allocated_hours, monthly_capacity_hours, allocation.start_date, allocation.end_date
        )
        return Decimal(str(pct))
    return Decimal("0")


def overlapping_total(
    start_date: DateLike,
    end_date: Optional[DateLike],
    existing: Iterable[Allocation],
    *,
    monthly_capacity_hours: Optional[int] = None,
) -> float:
    """Sum of percentages of the allocations whose period overlaps the given one."""
    require_ordered(start_date, end_date)
    total = Decimal("0")
    for allocation in existing:
        if dates_overlap(start_date, end_date, allocation.start_date, allocation.end_date):
            total += _percentage_of(allocation, monthly_capacity_hours)
    return float(total)


def check_capacity(
    employee_id: int,
    start_date: DateLike,
    end_date: Optional[DateLike],
    percentage: float,
    existing: Iterable[Allocation],
    *,
    monthly_capacity_hours: Optional[int] = None,
) -> CapacityCheck:
    """Validate that ``percentage`` fits next to the employee's other allocations.

    ``existing`` must already exclude the allocation being edited. Raises
    CapacityExceededError carrying the current overlapping total.
    """
    current = overlapping_total(start_date, end_date, existing, monthly_capacity_hours=monthly_capacity_hours)
    result = CapacityCheck(current_total=current, requested=float(percentage))

    if Decimal(str(current)) + Decimal(str(percentage)) > MAX_ALLOCATION_PERCENTAGE:
        logger.warning(
            "Capacity exceeded for employee %s: %.2f%% allocated, %.2f%% requested",
            employee_id,
            current,
            float(percentage),
        )
        raise CapacityExceededError(current_total=current, requested=float(percentage))
    return result
