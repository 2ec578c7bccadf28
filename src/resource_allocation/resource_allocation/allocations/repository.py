from __future__ import annotations

from datetime import date
from typing import ContextManager, Optional, Protocol, Sequence

from .model import Allocation, AllocationHistoryEntry, NewAllocation, NewHistoryEntry


class AllocationUnitOfWork(Protocol):
    """Reads and writes for one employee inside a single locked transaction."""

    def list_active_for_employee(
        self, *, employee_id: int, exclude_allocation_id: Optional[int] = None
    ) -> Sequence[Allocation]:
        raise NotImplementedError

    def get(self, *, allocation_id: int) -> Optional[Allocation]:
        """Return the allocation whether active or not."""

        raise NotImplementedError

    def insert(self, allocation: NewAllocation) -> int:
        raise NotImplementedError

    def update_amounts(
        self,
        *,
        allocation_id: int,
        allocated_hours: int,
        allocated_percentage: float,
        end_date: Optional[date],
    ) -> bool:
        raise NotImplementedError

    def set_active(self, *, allocation_id: int, is_active: bool) -> bool:
        raise NotImplementedError

    def add_history(self, entry: NewHistoryEntry) -> int:
        raise NotImplementedError

    def find_revert_of(self, *, history_id: int) -> Optional[int]:
        """Id of the history row that reverted ``history_id``, if any."""

        raise NotImplementedError


class AllocationRepository(Protocol):
    def employee_transaction(self, employee_id: int) -> ContextManager[AllocationUnitOfWork]:
        """Open a transaction holding the employee's write lock.

        Concurrent writers for the same employee are serialized until commit.
        Raises NotFoundError when the employee does not exist.
        """

        raise NotImplementedError

    def get_by_id(self, *, allocation_id: int) -> Optional[Allocation]:
        """Active allocation by id."""

        raise NotImplementedError

    def list_active(self, *, limit: int = 500) -> Sequence[Allocation]:
        raise NotImplementedError

    def list_by_employee(self, *, employee_id: int) -> Sequence[Allocation]:
        raise NotImplementedError

    def list_by_project(self, *, project_id: int) -> Sequence[Allocation]:
        raise NotImplementedError

    def get_history(self, *, history_id: int) -> Optional[AllocationHistoryEntry]:
        raise NotImplementedError

    def list_history(
        self,
        *,
        employee_id: Optional[int] = None,
        project_id: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[AllocationHistoryEntry]:
        raise NotImplementedError

    # Backfill of legacy rows carrying only hours or only percentage
    def list_incomplete_allocations(self) -> Sequence[Allocation]:
        raise NotImplementedError

    def list_incomplete_history(self) -> Sequence[AllocationHistoryEntry]:
        raise NotImplementedError

    def set_allocation_amounts(self, *, allocation_id: int, allocated_hours: int, allocated_percentage: float) -> bool:
        raise NotImplementedError

    def set_history_amounts(self, *, history_id: int, allocated_hours: int, allocated_percentage: float) -> bool:
        raise NotImplementedError
