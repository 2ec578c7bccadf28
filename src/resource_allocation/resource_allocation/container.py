from __future__ import annotations

from dataclasses import dataclass

from .allocations.mysql_allocation_repository import MySQLAllocationRepository
from .allocations.service import AllocationService
from .core.enums import AllocationMode
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.service import SettingsService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    employees_repo: MySQLEmployeeRepository
    allocations_repo: MySQLAllocationRepository
    settings_repo: MySQLSettingsRepository

    allocation_service: AllocationService
    settings_service: SettingsService


def build_container(
    *,
    db_config: dict,
    enforce_capacity_in_hours_mode: bool = False,
    default_allocation_mode: str = AllocationMode.HOURS.value,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    employees_repo = MySQLEmployeeRepository(conn)
    allocations_repo = MySQLAllocationRepository(conn)
    settings_repo = MySQLSettingsRepository(conn)

    allocation_service = AllocationService(
        allocations_repo,
        employees_repo,
        enforce_capacity_in_hours_mode=enforce_capacity_in_hours_mode,
    )
    settings_service = SettingsService(settings_repo, default_mode=AllocationMode(default_allocation_mode))

    return Container(
        conn=conn,
        employees_repo=employees_repo,
        allocations_repo=allocations_repo,
        settings_repo=settings_repo,
        allocation_service=allocation_service,
        settings_service=settings_service,
    )
