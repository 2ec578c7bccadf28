from __future__ import annotations

import random
from datetime import date, datetime, timedelta

import pytest

from src.resource_allocation.resource_allocation.allocations.calculations import (
    business_days,
    dates_overlap,
    hours_from_percentage,
    percentage_from_hours,
)
from src.resource_allocation.resource_allocation.core.exceptions import InvalidRangeError

MON = date(2025, 3, 3)
FRI = date(2025, 3, 7)
SAT = date(2025, 3, 1)
SUN = date(2025, 3, 2)


def test_business_days_full_work_week():
    assert business_days(MON, FRI) == 5


def test_business_days_weekend_only_is_zero():
    assert business_days(SAT, SUN) == 0


@pytest.mark.parametrize("day,expected", [(MON, 1), (FRI, 1), (SAT, 0), (SUN, 0)])
def test_business_days_single_day(day, expected):
    assert business_days(day, day) == expected


def test_business_days_inverted_range_is_empty():
    assert business_days(FRI, MON) == 0


def test_business_days_whole_month():
    # March 2025 starts on a Saturday and ends on a Monday.
    assert business_days(date(2025, 3, 1), date(2025, 3, 31)) == 21


def test_business_days_ignores_time_of_day():
    assert business_days(datetime(2025, 3, 3, 18, 30), datetime(2025, 3, 7, 0, 5)) == 5


def test_hours_from_percentage_full_week():
    # 160 / 22 * 5 = 36.36 hours available
    assert hours_from_percentage(100, 160, MON, FRI) == 36


def test_hours_from_percentage_open_ended_uses_one_week():
    # Mon 3rd .. Mon 10th -> 6 business days; 0.5 * 160 / 22 * 6 = 21.8
    assert hours_from_percentage(50, 160, MON, None) == 22


def test_hours_from_percentage_rounds_half_up():
    # 22h/month -> exactly 1h per business day, so 50% of one day is 0.5h
    assert hours_from_percentage(50, 22, MON, MON) == 1


def test_percentage_from_hours_full_week():
    assert percentage_from_hours(36, 160, MON, FRI) == 99.0


def test_percentage_from_hours_two_weeks():
    assert percentage_from_hours(20, 160, MON, date(2025, 3, 14)) == 27.5


def test_percentage_from_hours_zero_business_days():
    assert percentage_from_hours(40, 160, SAT, SAT) == 0


def test_percentage_from_hours_can_exceed_hundred():
    assert percentage_from_hours(80, 160, MON, date(2025, 3, 14)) == 110.0


@pytest.mark.parametrize("fn,amount", [(hours_from_percentage, 50), (percentage_from_hours, 10)])
def test_converters_reject_inverted_range(fn, amount):
    with pytest.raises(InvalidRangeError):
        fn(amount, 160, FRI, MON)


def test_round_trip_stays_within_one_hour():
    rng = random.Random(20250303)
    checked = 0
    for _ in range(500):
        start = date(2025, 1, 1) + timedelta(days=rng.randint(0, 364))
        end = start + timedelta(days=rng.randint(0, 60)) if rng.random() < 0.8 else None
        capacity = rng.randint(80, 200)
        hours = rng.randint(1, 300)
        if end is not None and business_days(start, end) == 0:
            continue

        pct = percentage_from_hours(hours, capacity, start, end)
        back = hours_from_percentage(pct, capacity, start, end)
        assert abs(back - hours) <= 1, (hours, capacity, start, end, pct, back)
        checked += 1
    assert checked > 400


def test_touching_periods_overlap():
    assert dates_overlap(MON, date(2025, 3, 10), date(2025, 3, 10), date(2025, 3, 20)) is True


def test_open_ended_period_overlaps_later_period():
    assert dates_overlap(date(2025, 1, 1), None, date(2025, 2, 1), date(2025, 2, 10)) is True


def test_two_open_ended_periods_overlap():
    assert dates_overlap(date(2025, 1, 1), None, date(2030, 1, 1), None) is True


def test_disjoint_periods_do_not_overlap():
    assert dates_overlap(date(2025, 2, 1), date(2025, 2, 28), MON, FRI) is False
    assert dates_overlap(MON, FRI, date(2025, 2, 1), date(2025, 2, 28)) is False


def test_finite_period_before_open_ended_start_does_not_overlap():
    assert dates_overlap(date(2025, 1, 1), date(2025, 1, 31), date(2025, 2, 1), None) is False


def test_overlap_rejects_inverted_range():
    with pytest.raises(InvalidRangeError):
        dates_overlap(FRI, MON, MON, FRI)
