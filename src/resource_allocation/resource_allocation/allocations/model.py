from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import HistoryAction


@dataclass(frozen=True)
class Allocation:
    allocation_id: int
    employee_id: int
    project_id: int
    allocated_hours: Optional[int]
    allocated_percentage: Optional[float]
    start_date: date
    end_date: Optional[date]
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewAllocation:
    employee_id: int
    project_id: int
    allocated_hours: int
    allocated_percentage: float
    start_date: date
    end_date: Optional[date]


@dataclass(frozen=True)
class AllocationHistoryEntry:
    history_id: int
    allocation_id: Optional[int]
    employee_id: int
    project_id: int
    allocated_hours: Optional[int]
    allocated_percentage: Optional[float]
    start_date: date
    end_date: Optional[date]
    action: HistoryAction
    changed_by: Optional[int] = None
    comment: Optional[str] = None
    previous_allocated_hours: Optional[int] = None
    previous_allocated_percentage: Optional[float] = None
    previous_end_date: Optional[date] = None
    reverted_history_id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewHistoryEntry:
    allocation_id: Optional[int]
    employee_id: int
    project_id: int
    allocated_hours: int
    allocated_percentage: float
    start_date: date
    end_date: Optional[date]
    action: HistoryAction
    changed_by: Optional[int] = None
    comment: Optional[str] = None
    previous_allocated_hours: Optional[int] = None
    previous_allocated_percentage: Optional[float] = None
    previous_end_date: Optional[date] = None
    reverted_history_id: Optional[int] = None
