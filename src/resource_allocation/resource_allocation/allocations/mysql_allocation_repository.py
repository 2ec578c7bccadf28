from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional, Sequence

from ..core.enums import HistoryAction
from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_date, to_float, to_int
from .model import Allocation, AllocationHistoryEntry, NewAllocation, NewHistoryEntry
from .repository import AllocationRepository, AllocationUnitOfWork

_ALLOCATION_COLUMNS = """
    id, employee_id, project_id, allocated_hours, allocated_percentage,
    start_date, end_date, is_active, created_at, updated_at
"""

_HISTORY_COLUMNS = """
    id, allocation_id, employee_id, project_id, allocated_hours, allocated_percentage,
    start_date, end_date, action, changed_by, comment,
    previous_allocated_hours, previous_allocated_percentage, previous_end_date,
    reverted_history_id, created_at
"""


def _row_to_allocation(r: dict) -> Allocation:
    return Allocation(
        allocation_id=int(r["id"]),
        employee_id=int(r["employee_id"]),
        project_id=int(r["project_id"]),
        allocated_hours=to_int(r.get("allocated_hours")),
        allocated_percentage=to_float(r.get("allocated_percentage")),
        start_date=to_date(r["start_date"]),
        end_date=to_date(r.get("end_date")),
        is_active=bool(r["is_active"]),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _row_to_history(r: dict) -> AllocationHistoryEntry:
    return AllocationHistoryEntry(
        history_id=int(r["id"]),
        allocation_id=to_int(r.get("allocation_id")),
        employee_id=int(r["employee_id"]),
        project_id=int(r["project_id"]),
        allocated_hours=to_int(r.get("allocated_hours")),
        allocated_percentage=to_float(r.get("allocated_percentage")),
        start_date=to_date(r["start_date"]),
        end_date=to_date(r.get("end_date")),
        action=HistoryAction(r["action"]),
        changed_by=to_int(r.get("changed_by")),
        comment=r.get("comment"),
        previous_allocated_hours=to_int(r.get("previous_allocated_hours")),
        previous_allocated_percentage=to_float(r.get("previous_allocated_percentage")),
        previous_end_date=to_date(r.get("previous_end_date")),
        reverted_history_id=to_int(r.get("reverted_history_id")),
        created_at=r.get("created_at"),
    )


class MySQLAllocationUnitOfWork(AllocationUnitOfWork):
    """Runs on the cursor of an open transaction; never commits by itself."""

    def __init__(self, cur):
        self._cur = cur

    def list_active_for_employee(
        self, *, employee_id: int, exclude_allocation_id: Optional[int] = None
    ) -> Sequence[Allocation]:
        clauses = ["employee_id=%s", "is_active=1"]
        params: list[object] = [int(employee_id)]
        if exclude_allocation_id is not None:
            clauses.append("id<>%s")
            params.append(int(exclude_allocation_id))

        self._cur.execute(
            f"SELECT {_ALLOCATION_COLUMNS} FROM allocations WHERE {' AND '.join(clauses)} FOR UPDATE",
            tuple(params),
        )
        return [_row_to_allocation(r) for r in fetchall(self._cur)]

    def get(self, *, allocation_id: int) -> Optional[Allocation]:
        self._cur.execute(
            f"SELECT {_ALLOCATION_COLUMNS} FROM allocations WHERE id=%s FOR UPDATE",
            (int(allocation_id),),
        )
        r = fetchone(self._cur)
        return _row_to_allocation(r) if r else None

    def insert(self, allocation: NewAllocation) -> int:
        self._cur.execute(
            """
            INSERT INTO allocations(
                employee_id, project_id, allocated_hours, allocated_percentage, start_date, end_date, is_active
            )
            VALUES(%s,%s,%s,%s,%s,%s,1)
            """,
            (
                int(allocation.employee_id),
                int(allocation.project_id),
                int(allocation.allocated_hours),
                allocation.allocated_percentage,
                allocation.start_date,
                allocation.end_date,
            ),
        )
        return int(self._cur.lastrowid)

    def update_amounts(
        self,
        *,
        allocation_id: int,
        allocated_hours: int,
        allocated_percentage: float,
        end_date: Optional[date],
    ) -> bool:
        self._cur.execute(
            """
            UPDATE allocations
            SET allocated_hours=%s, allocated_percentage=%s, end_date=%s
            WHERE id=%s
            """,
            (int(allocated_hours), allocated_percentage, end_date, int(allocation_id)),
        )
        return self._cur.rowcount > 0

    def set_active(self, *, allocation_id: int, is_active: bool) -> bool:
        self._cur.execute(
            "UPDATE allocations SET is_active=%s WHERE id=%s",
            (1 if is_active else 0, int(allocation_id)),
        )
        return self._cur.rowcount > 0

    def add_history(self, entry: NewHistoryEntry) -> int:
        self._cur.execute(
            """
            INSERT INTO allocation_history(
                allocation_id, employee_id, project_id, allocated_hours, allocated_percentage,
                start_date, end_date, action, changed_by, comment,
                previous_allocated_hours, previous_allocated_percentage, previous_end_date,
                reverted_history_id
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                entry.allocation_id,
                int(entry.employee_id),
                int(entry.project_id),
                int(entry.allocated_hours),
                entry.allocated_percentage,
                entry.start_date,
                entry.end_date,
                entry.action.value,
                entry.changed_by,
                entry.comment,
                entry.previous_allocated_hours,
                entry.previous_allocated_percentage,
                entry.previous_end_date,
                entry.reverted_history_id,
            ),
        )
        return int(self._cur.lastrowid)

    def find_revert_of(self, *, history_id: int) -> Optional[int]:
        self._cur.execute(
            "SELECT id FROM allocation_history WHERE reverted_history_id=%s LIMIT 1",
            (int(history_id),),
        )
        r = fetchone(self._cur)
        return int(r["id"]) if r else None


class MySQLAllocationRepository(AllocationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def employee_transaction(self, employee_id: int) -> Iterator[AllocationUnitOfWork]:
        with db_cursor(self._conn_factory) as (_, cur):
            # Row lock on the employee serializes allocation writers for that
            # employee until commit/rollback.
            cur.execute("SELECT id FROM employees WHERE id=%s FOR UPDATE", (int(employee_id),))
            if not fetchone(cur):
                raise NotFoundError("Employee not found")
            yield MySQLAllocationUnitOfWork(cur)

    def get_by_id(self, *, allocation_id: int) -> Optional[Allocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ALLOCATION_COLUMNS} FROM allocations WHERE id=%s AND is_active=1",
                (int(allocation_id),),
            )
            r = fetchone(cur)
            return _row_to_allocation(r) if r else None

    def list_active(self, *, limit: int = 500) -> Sequence[Allocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ALLOCATION_COLUMNS} FROM allocations WHERE is_active=1 ORDER BY created_at DESC LIMIT %s",
                (int(limit),),
            )
            return [_row_to_allocation(r) for r in fetchall(cur)]

    def list_by_employee(self, *, employee_id: int) -> Sequence[Allocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ALLOCATION_COLUMNS} FROM allocations
                WHERE employee_id=%s AND is_active=1
                ORDER BY start_date DESC
                """,
                (int(employee_id),),
            )
            return [_row_to_allocation(r) for r in fetchall(cur)]

    def list_by_project(self, *, project_id: int) -> Sequence[Allocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ALLOCATION_COLUMNS} FROM allocations
                WHERE project_id=%s AND is_active=1
                ORDER BY start_date DESC
                """,
                (int(project_id),),
            )
            return [_row_to_allocation(r) for r in fetchall(cur)]

    def get_history(self, *, history_id: int) -> Optional[AllocationHistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_HISTORY_COLUMNS} FROM allocation_history WHERE id=%s", (int(history_id),))
            r = fetchone(cur)
            return _row_to_history(r) if r else None

    def list_history(
        self,
        *,
        employee_id: Optional[int] = None,
        project_id: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[AllocationHistoryEntry]:
        clauses: list[str] = []
        params: list[object] = []
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))
        if project_id is not None:
            clauses.append("project_id=%s")
            params.append(int(project_id))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_HISTORY_COLUMNS} FROM allocation_history
                {where}
                ORDER BY created_at DESC, id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_row_to_history(r) for r in fetchall(cur)]

    def list_incomplete_allocations(self) -> Sequence[Allocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ALLOCATION_COLUMNS} FROM allocations
                WHERE allocated_hours IS NULL OR allocated_percentage IS NULL
                ORDER BY id ASC
                """
            )
            return [_row_to_allocation(r) for r in fetchall(cur)]

    def list_incomplete_history(self) -> Sequence[AllocationHistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_HISTORY_COLUMNS} FROM allocation_history
                WHERE allocated_hours IS NULL OR allocated_percentage IS NULL
                ORDER BY id ASC
                """
            )
            return [_row_to_history(r) for r in fetchall(cur)]

    def set_allocation_amounts(self, *, allocation_id: int, allocated_hours: int, allocated_percentage: float) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE allocations SET allocated_hours=%s, allocated_percentage=%s WHERE id=%s",
                (int(allocated_hours), allocated_percentage, int(allocation_id)),
            )
            return cur.rowcount > 0

    def set_history_amounts(self, *, history_id: int, allocated_hours: int, allocated_percentage: float) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE allocation_history SET allocated_hours=%s, allocated_percentage=%s WHERE id=%s",
                (int(allocated_hours), allocated_percentage, int(history_id)),
            )
            return cur.rowcount > 0
