from __future__ import annotations

import dataclasses
import threading
import time
from contextlib import contextmanager
from datetime import date

import pytest

from src.resource_allocation.resource_allocation.allocations.model import Allocation, AllocationHistoryEntry
from src.resource_allocation.resource_allocation.allocations.service import AllocationService
from src.resource_allocation.resource_allocation.employees.model import Employee


class FakeEmployeeRepo:
    def __init__(self, *employees: Employee):
        self._by_id = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id):
        return self._by_id.get(int(employee_id))

    def list_active(self):
        return [e for e in self._by_id.values() if not e.is_deleted]


class FakeUnitOfWork:
    def __init__(self, repo: "FakeAllocationRepo"):
        self._repo = repo

    def list_active_for_employee(self, *, employee_id, exclude_allocation_id=None):
        rows = [
            a
            for a in self._repo.allocations.values()
            if a.employee_id == employee_id and a.is_active and a.allocation_id != exclude_allocation_id
        ]
        if self._repo.read_delay:
            time.sleep(self._repo.read_delay)
        return rows

    def get(self, *, allocation_id):
        return self._repo.allocations.get(int(allocation_id))

    def insert(self, allocation):
        allocation_id = self._repo.next_allocation_id
        self._repo.next_allocation_id += 1
        self._repo.allocations[allocation_id] = Allocation(
            allocation_id=allocation_id,
            employee_id=allocation.employee_id,
            project_id=allocation.project_id,
            allocated_hours=allocation.allocated_hours,
            allocated_percentage=allocation.allocated_percentage,
            start_date=allocation.start_date,
            end_date=allocation.end_date,
        )
        return allocation_id

    def update_amounts(self, *, allocation_id, allocated_hours, allocated_percentage, end_date):
        current = self._repo.allocations.get(int(allocation_id))
        if not current:
            return False
        self._repo.allocations[current.allocation_id] = dataclasses.replace(
            current,
            allocated_hours=allocated_hours,
            allocated_percentage=allocated_percentage,
            end_date=end_date,
        )
        return True

    def set_active(self, *, allocation_id, is_active):
        current = self._repo.allocations.get(int(allocation_id))
        if not current:
            return False
        self._repo.allocations[current.allocation_id] = dataclasses.replace(current, is_active=is_active)
        return True

    def add_history(self, entry):
        history_id = self._repo.next_history_id
        self._repo.next_history_id += 1
        fields = {f.name: getattr(entry, f.name) for f in dataclasses.fields(entry)}
        self._repo.history[history_id] = AllocationHistoryEntry(history_id=history_id, **fields)
        return history_id

    def find_revert_of(self, *, history_id):
        for h in self._repo.history.values():
            if h.reverted_history_id == history_id:
                return h.history_id
        return None


class FakeAllocationRepo:
    """In-memory repository; a transaction takes a per-employee lock and rolls back on error."""

    def __init__(self):
        self.allocations: dict[int, Allocation] = {}
        self.history: dict[int, AllocationHistoryEntry] = {}
        self.next_allocation_id = 1
        self.next_history_id = 1
        self.read_delay = 0.0
        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, employee_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(int(employee_id), threading.Lock())

    @contextmanager
    def employee_transaction(self, employee_id):
        with self._lock_for(employee_id):
            snapshot = (dict(self.allocations), dict(self.history), self.next_allocation_id, self.next_history_id)
            try:
                yield FakeUnitOfWork(self)
            except Exception:
                self.allocations, self.history, self.next_allocation_id, self.next_history_id = snapshot
                raise

    # Seeding helper for tests
    def add(self, *, employee_id, percentage, start, end, hours=None, project_id=1, is_active=True) -> int:
        allocation_id = self.next_allocation_id
        self.next_allocation_id += 1
        self.allocations[allocation_id] = Allocation(
            allocation_id=allocation_id,
            employee_id=employee_id,
            project_id=project_id,
            allocated_hours=hours,
            allocated_percentage=percentage,
            start_date=start,
            end_date=end,
            is_active=is_active,
        )
        return allocation_id

    def get_by_id(self, *, allocation_id):
        a = self.allocations.get(int(allocation_id))
        return a if a and a.is_active else None

    def list_active(self, *, limit=500):
        return [a for a in self.allocations.values() if a.is_active][:limit]

    def list_by_employee(self, *, employee_id):
        return [a for a in self.allocations.values() if a.is_active and a.employee_id == employee_id]

    def list_by_project(self, *, project_id):
        return [a for a in self.allocations.values() if a.is_active and a.project_id == project_id]

    def get_history(self, *, history_id):
        return self.history.get(int(history_id))

    def list_history(self, *, employee_id=None, project_id=None, limit=200):
        rows = [
            h
            for h in self.history.values()
            if (employee_id is None or h.employee_id == employee_id)
            and (project_id is None or h.project_id == project_id)
        ]
        return sorted(rows, key=lambda h: h.history_id, reverse=True)[:limit]

    def list_incomplete_allocations(self):
        return [a for a in self.allocations.values() if a.allocated_hours is None or a.allocated_percentage is None]

    def list_incomplete_history(self):
        return [h for h in self.history.values() if h.allocated_hours is None or h.allocated_percentage is None]

    def set_allocation_amounts(self, *, allocation_id, allocated_hours, allocated_percentage):
        current = self.allocations[int(allocation_id)]
        self.allocations[current.allocation_id] = dataclasses.replace(
            current, allocated_hours=allocated_hours, allocated_percentage=allocated_percentage
        )
        return True

    def set_history_amounts(self, *, history_id, allocated_hours, allocated_percentage):
        current = self.history[int(history_id)]
        self.history[current.history_id] = dataclasses.replace(
            current, allocated_hours=allocated_hours, allocated_percentage=allocated_percentage
        )
        return True


MARCH_START = date(2025, 3, 1)
MARCH_END = date(2025, 3, 31)


@pytest.fixture
def employee() -> Employee:
    return Employee(employee_id=7, name="Ana", email="ana@example.com", monthly_capacity_hours=160)


@pytest.fixture
def allocations_repo() -> FakeAllocationRepo:
    return FakeAllocationRepo()


@pytest.fixture
def service(allocations_repo, employee) -> AllocationService:
    return AllocationService(allocations_repo, FakeEmployeeRepo(employee))


@pytest.fixture
def make_service(allocations_repo):
    def _make(*employees: Employee, **kwargs) -> AllocationService:
        return AllocationService(allocations_repo, FakeEmployeeRepo(*employees), **kwargs)

    return _make
