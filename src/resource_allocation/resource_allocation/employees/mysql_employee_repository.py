from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository


def _row_to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=int(r["id"]),
        name=r["name"],
        email=r["email"],
        monthly_capacity_hours=int(r["monthly_capacity_hours"]),
        is_deleted=bool(r["is_deleted"]),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, email, monthly_capacity_hours, is_deleted FROM employees WHERE id=%s",
                (int(employee_id),),
            )
            r = fetchone(cur)
            return _row_to_employee(r) if r else None

    def list_active(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, name, email, monthly_capacity_hours, is_deleted
                FROM employees
                WHERE is_deleted=0
                ORDER BY name ASC
                """
            )
            return [_row_to_employee(r) for r in fetchall(cur)]
