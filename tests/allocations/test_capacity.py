from __future__ import annotations

from datetime import date

import pytest

from src.resource_allocation.resource_allocation.allocations.capacity import check_capacity, overlapping_total
from src.resource_allocation.resource_allocation.allocations.model import Allocation
from src.resource_allocation.resource_allocation.core.exceptions import CapacityExceededError, InvalidRangeError


def _alloc(allocation_id, pct, start, end, hours=None):
    return Allocation(
        allocation_id=allocation_id,
        employee_id=1,
        project_id=1,
        allocated_hours=hours,
        allocated_percentage=pct,
        start_date=start,
        end_date=end,
    )


MARCH = (date(2025, 3, 1), date(2025, 3, 31))


def test_accepts_exactly_hundred_percent():
    existing = [_alloc(1, 60, *MARCH)]
    result = check_capacity(1, date(2025, 3, 10), date(2025, 3, 20), 40, existing)
    assert result.current_total == 60
    assert result.new_total == 100
    assert result.remaining == 0


def test_rejects_over_hundred_percent_with_current_total():
    existing = [_alloc(1, 60, *MARCH)]
    with pytest.raises(CapacityExceededError) as exc:
        check_capacity(1, date(2025, 3, 10), date(2025, 3, 20), 41, existing)
    assert exc.value.current_total == 60
    assert exc.value.requested == 41


def test_ignores_non_overlapping_allocations():
    existing = [_alloc(1, 90, date(2025, 2, 1), date(2025, 2, 28))]
    result = check_capacity(1, *MARCH, 100, existing)
    assert result.current_total == 0


def test_open_ended_existing_allocation_counts_for_later_periods():
    existing = [_alloc(1, 70, date(2025, 1, 1), None)]
    with pytest.raises(CapacityExceededError):
        check_capacity(1, date(2025, 6, 1), date(2025, 6, 30), 31, existing)


def test_open_ended_candidate_sees_all_later_allocations():
    existing = [_alloc(1, 50, date(2025, 1, 1), date(2025, 1, 31)), _alloc(2, 50, date(2026, 1, 1), None)]
    assert overlapping_total(date(2025, 2, 1), None, existing) == 50


def test_touching_period_counts_as_overlap():
    existing = [_alloc(1, 80, date(2025, 3, 1), date(2025, 3, 10))]
    with pytest.raises(CapacityExceededError):
        check_capacity(1, date(2025, 3, 10), date(2025, 3, 20), 30, existing)


def test_two_decimal_values_sum_without_float_drift():
    existing = [_alloc(1, 33.33, *MARCH), _alloc(2, 33.33, *MARCH)]
    result = check_capacity(1, *MARCH, 33.34, existing)
    assert result.new_total == 100


def test_legacy_hours_only_rows_are_converted_with_capacity():
    # 20h over two weeks at 160h/month is 27.5%
    existing = [_alloc(1, None, date(2025, 3, 3), date(2025, 3, 14), hours=20)]
    assert overlapping_total(*MARCH, existing, monthly_capacity_hours=160) == 27.5
    assert overlapping_total(*MARCH, existing) == 0


def test_rejects_inverted_candidate_period():
    with pytest.raises(InvalidRangeError):
        check_capacity(1, date(2025, 3, 31), date(2025, 3, 1), 10, [])
