from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import DEFAULT_MONTHLY_CAPACITY_HOURS


@dataclass(frozen=True)
class Employee:
    employee_id: int
    name: str
    email: str
    monthly_capacity_hours: int = DEFAULT_MONTHLY_CAPACITY_HOURS
    is_deleted: bool = False
