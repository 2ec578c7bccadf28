"""Example: calling the service layer directly (no Flask).

Controllers are a thin layer; the allocation rules live in the services.
"""

import importlib
from datetime import date

from config import get_settings_module

from src.resource_allocation.resource_allocation.allocations.calculations import (
    business_days,
    hours_from_percentage,
    percentage_from_hours,
)
from src.resource_allocation.resource_allocation.container import build_container


def main():
    # Pure conversions need no database.
    start, end = date(2025, 3, 3), date(2025, 3, 14)
    print("business days:", business_days(start, end))
    print("50% of 160h/month:", hours_from_percentage(50, 160, start, end), "h")
    print("30h of 160h/month:", percentage_from_hours(30, 160, start, end), "%")

    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)
    summary = container.allocation_service.capacity_summary(employee_id=1, start_date=start, end_date=end)
    print(f"employee 1 allocated {summary.allocated_percentage:.2f}%, remaining {summary.remaining_percentage:.2f}%")


if __name__ == "__main__":
    main()
