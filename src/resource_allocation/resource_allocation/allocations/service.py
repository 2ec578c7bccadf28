from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Sequence

from ..common.datetime_utils import DateLike, as_day
from ..common.validators import optional_text, require_percentage, require_positive_int
from ..core.constants import (
    DEFAULT_HISTORY_LIMIT,
    MAX_ALLOCATION_PERCENTAGE,
    MAX_STORED_HOURS,
    MAX_STORED_PERCENTAGE,
)
from ..core.enums import ALLOCATION_EDITORS, AllocationMode, HistoryAction, Role
from ..core.exceptions import AuthorizationError, DomainError, NotFoundError, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .calculations import dates_overlap, hours_from_percentage, percentage_from_hours, require_ordered
from .capacity import CapacityCheck, check_capacity, overlapping_total
from .model import Allocation, AllocationHistoryEntry, NewAllocation, NewHistoryEntry
from .repository import AllocationRepository, AllocationUnitOfWork

logger = logging.getLogger(__name__)

# Marks "end_date not supplied" on update; None means "make open-ended".
UNSET: Any = object()


@dataclass(frozen=True)
class AllocationAmounts:
    allocated_hours: int
    allocated_percentage: float


@dataclass(frozen=True)
class CapacitySummary:
    employee_id: int
    start_date: date
    end_date: Optional[date]
    allocated_percentage: float
    remaining_percentage: float
    allocations: list[Allocation]


@dataclass(frozen=True)
class BackfillReport:
    updated: int = 0
    skipped: int = 0
    errors: int = 0


def _require_storable(hours: int, pct: float) -> None:
    # Hours mode has no ceiling, so a short period can yield a very large percentage.
    if hours > MAX_STORED_HOURS or pct > MAX_STORED_PERCENTAGE:
        raise ValidationError(f"Allocation of {hours}h ({pct:.2f}%) is too large for the period")


def derive_amounts(
    *,
    mode: AllocationMode,
    monthly_capacity_hours: int,
    start_date: DateLike,
    end_date: Optional[DateLike],
    allocated_hours: Any = None,
    allocated_percentage: Any = None,
) -> AllocationAmounts:
    """Validate the field that is authoritative for ``mode`` and derive the other one."""
    require_ordered(start_date, end_date)

    if mode == AllocationMode.HOURS:
        if allocated_hours is None:
            raise ValidationError("Allocated hours are required in hours mode")
        hours = require_positive_int(allocated_hours, "Allocated hours")
        pct = percentage_from_hours(hours, monthly_capacity_hours, start_date, end_date)
        _require_storable(hours, pct)
        return AllocationAmounts(allocated_hours=hours, allocated_percentage=pct)

    if allocated_percentage is None:
        raise ValidationError("Allocated percentage is required in percentage mode")
    pct = require_percentage(allocated_percentage)
    hours = hours_from_percentage(pct, monthly_capacity_hours, start_date, end_date)
    return AllocationAmounts(allocated_hours=hours, allocated_percentage=pct)


def rederive_amounts(
    *,
    mode: AllocationMode,
    monthly_capacity_hours: int,
    start_date: DateLike,
    end_date: Optional[DateLike],
    stored: AllocationAmounts,
) -> AllocationAmounts:
    """Keep the stored authoritative amount and recompute its companion for a new period.

    The stored value is not re-validated: a derived 0h or 0.0% is legal once the
    allocation mode has been switched.
    """
    if mode == AllocationMode.HOURS:
        pct = percentage_from_hours(stored.allocated_hours, monthly_capacity_hours, start_date, end_date)
        _require_storable(stored.allocated_hours, pct)
        return AllocationAmounts(allocated_hours=stored.allocated_hours, allocated_percentage=pct)

    hours = hours_from_percentage(stored.allocated_percentage, monthly_capacity_hours, start_date, end_date)
    return AllocationAmounts(allocated_hours=hours, allocated_percentage=stored.allocated_percentage)


def complete_amounts(allocation: Allocation, monthly_capacity_hours: int) -> AllocationAmounts:
    """Both amounts of a stored allocation, deriving whichever one is missing."""
    hours = allocation.allocated_hours
    pct = allocation.allocated_percentage
    if hours is None and pct is None:
        raise ValidationError(f"Allocation {allocation.allocation_id} has neither hours nor percentage")
    if pct is None:
        pct = percentage_from_hours(hours, monthly_capacity_hours, allocation.start_date, allocation.end_date)
    if hours is None:
        hours = hours_from_percentage(pct, monthly_capacity_hours, allocation.start_date, allocation.end_date)
    return AllocationAmounts(allocated_hours=int(hours), allocated_percentage=float(pct))


class AllocationService:
    """Use cases around employee allocations.

    Every write runs inside ``AllocationRepository.employee_transaction`` so the
    capacity check and the write it guards see the same, locked data.
    """

    def __init__(
        self,
        allocations: AllocationRepository,
        employees: EmployeeRepository,
        *,
        enforce_capacity_in_hours_mode: bool = False,
    ):
        self._allocations = allocations
        self._employees = employees
        self._enforce_in_hours_mode = bool(enforce_capacity_in_hours_mode)

    @staticmethod
    def _require_editor(current_role: Role) -> None:
        if current_role not in ALLOCATION_EDITORS:
            raise AuthorizationError("Only coordinators can change allocations")

    def _get_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee or employee.is_deleted:
            raise NotFoundError("Employee not found")
        return employee

    def _enforces_capacity(self, mode: AllocationMode) -> bool:
        return mode == AllocationMode.PERCENTAGE or self._enforce_in_hours_mode

    def _check_capacity(
        self,
        uow: AllocationUnitOfWork,
        *,
        mode: AllocationMode,
        employee: Employee,
        start_date: date,
        end_date: Optional[date],
        percentage: float,
        exclude_allocation_id: Optional[int] = None,
    ) -> Optional[CapacityCheck]:
        if not self._enforces_capacity(mode):
            return None
        existing = uow.list_active_for_employee(
            employee_id=employee.employee_id, exclude_allocation_id=exclude_allocation_id
        )
        return check_capacity(
            employee.employee_id,
            start_date,
            end_date,
            percentage,
            existing,
            monthly_capacity_hours=employee.monthly_capacity_hours,
        )

    # -------- Writes --------
    def create_allocation(
        self,
        *,
        current_role: Role,
        mode: AllocationMode,
        employee_id: int,
        project_id: int,
        start_date: DateLike,
        end_date: Optional[DateLike] = None,
        allocated_hours: Any = None,
        allocated_percentage: Any = None,
        changed_by: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Allocation:
        self._require_editor(current_role)
        if int(project_id) <= 0:
            raise ValidationError("Invalid project")

        employee = self._get_employee(employee_id)
        start = as_day(start_date)
        end = as_day(end_date) if end_date is not None else None
        amounts = derive_amounts(
            mode=mode,
            monthly_capacity_hours=employee.monthly_capacity_hours,
            start_date=start,
            end_date=end,
            allocated_hours=allocated_hours,
            allocated_percentage=allocated_percentage,
        )

        with self._allocations.employee_transaction(employee.employee_id) as uow:
            self._check_capacity(
                uow,
                mode=mode,
                employee=employee,
                start_date=start,
                end_date=end,
                percentage=amounts.allocated_percentage,
            )
            new = NewAllocation(
                employee_id=employee.employee_id,
                project_id=int(project_id),
                allocated_hours=amounts.allocated_hours,
                allocated_percentage=amounts.allocated_percentage,
                start_date=start,
                end_date=end,
            )
            allocation_id = uow.insert(new)
            uow.add_history(
                NewHistoryEntry(
                    allocation_id=allocation_id,
                    employee_id=new.employee_id,
                    project_id=new.project_id,
                    allocated_hours=new.allocated_hours,
                    allocated_percentage=new.allocated_percentage,
                    start_date=start,
                    end_date=end,
                    action=HistoryAction.CREATED,
                    changed_by=changed_by,
                    comment=optional_text(comment),
                )
            )

        logger.info(
            "Allocation %s created: employee=%s project=%s %sh / %.2f%%",
            allocation_id,
            new.employee_id,
            new.project_id,
            new.allocated_hours,
            new.allocated_percentage,
        )
        return Allocation(
            allocation_id=allocation_id,
            employee_id=new.employee_id,
            project_id=new.project_id,
            allocated_hours=new.allocated_hours,
            allocated_percentage=new.allocated_percentage,
            start_date=start,
            end_date=end,
        )

    def update_allocation(
        self,
        *,
        current_role: Role,
        mode: AllocationMode,
        allocation_id: int,
        allocated_hours: Any = None,
        allocated_percentage: Any = None,
        end_date: Any = UNSET,
        changed_by: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Allocation:
        self._require_editor(current_role)

        supplied = allocated_hours if mode == AllocationMode.HOURS else allocated_percentage
        if supplied is None and end_date is UNSET:
            raise ValidationError("Nothing to update")

        found = self._allocations.get_by_id(allocation_id=int(allocation_id))
        if not found:
            raise NotFoundError("Allocation not found")
        employee = self._get_employee(found.employee_id)

        with self._allocations.employee_transaction(employee.employee_id) as uow:
            current = uow.get(allocation_id=int(allocation_id))
            if not current or not current.is_active:
                raise NotFoundError("Allocation not found")

            previous = complete_amounts(current, employee.monthly_capacity_hours)
            new_end = current.end_date if end_date is UNSET else (as_day(end_date) if end_date is not None else None)

            if supplied is None:
                amounts = rederive_amounts(
                    mode=mode,
                    monthly_capacity_hours=employee.monthly_capacity_hours,
                    start_date=current.start_date,
                    end_date=new_end,
                    stored=previous,
                )
            else:
                amounts = derive_amounts(
                    mode=mode,
                    monthly_capacity_hours=employee.monthly_capacity_hours,
                    start_date=current.start_date,
                    end_date=new_end,
                    allocated_hours=allocated_hours,
                    allocated_percentage=allocated_percentage,
                )
            self._check_capacity(
                uow,
                mode=mode,
                employee=employee,
                start_date=current.start_date,
                end_date=new_end,
                percentage=amounts.allocated_percentage,
                exclude_allocation_id=current.allocation_id,
            )

            uow.update_amounts(
                allocation_id=current.allocation_id,
                allocated_hours=amounts.allocated_hours,
                allocated_percentage=amounts.allocated_percentage,
                end_date=new_end,
            )
            uow.add_history(
                NewHistoryEntry(
                    allocation_id=current.allocation_id,
                    employee_id=current.employee_id,
                    project_id=current.project_id,
                    allocated_hours=amounts.allocated_hours,
                    allocated_percentage=amounts.allocated_percentage,
                    start_date=current.start_date,
                    end_date=new_end,
                    action=HistoryAction.UPDATED,
                    changed_by=changed_by,
                    comment=optional_text(comment),
                    previous_allocated_hours=previous.allocated_hours,
                    previous_allocated_percentage=previous.allocated_percentage,
                    previous_end_date=current.end_date,
                )
            )

        logger.info(
            "Allocation %s updated: %sh / %.2f%% -> %sh / %.2f%%",
            current.allocation_id,
            previous.allocated_hours,
            previous.allocated_percentage,
            amounts.allocated_hours,
            amounts.allocated_percentage,
        )
        return dataclasses.replace(
            current,
            allocated_hours=amounts.allocated_hours,
            allocated_percentage=amounts.allocated_percentage,
            end_date=new_end,
        )

    def delete_allocation(
        self,
        *,
        current_role: Role,
        allocation_id: int,
        changed_by: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> None:
        self._require_editor(current_role)

        found = self._allocations.get_by_id(allocation_id=int(allocation_id))
        if not found:
            raise NotFoundError("Allocation not found")
        employee = self._get_employee(found.employee_id)

        with self._allocations.employee_transaction(employee.employee_id) as uow:
            current = uow.get(allocation_id=int(allocation_id))
            if not current or not current.is_active:
                raise NotFoundError("Allocation not found")

            amounts = complete_amounts(current, employee.monthly_capacity_hours)
            if not uow.set_active(allocation_id=current.allocation_id, is_active=False):
                raise ValidationError("Failed to delete allocation")
            uow.add_history(
                self._history_for(
                    current,
                    amounts,
                    action=HistoryAction.DELETED,
                    changed_by=changed_by,
                    comment=comment,
                )
            )

        logger.info("Allocation %s deleted", current.allocation_id)

    def revert_history_entry(
        self,
        *,
        current_role: Role,
        mode: AllocationMode,
        history_id: int,
        changed_by: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Allocation:
        """Undo the change recorded by a history row.

        created -> the allocation is deactivated; updated -> the previous
        amounts and end date are restored; deleted -> the allocation is
        reactivated. Restores are capacity-checked like any other write.
        """
        self._require_editor(current_role)

        entry = self._allocations.get_history(history_id=int(history_id))
        if not entry:
            raise NotFoundError("History entry not found")
        if entry.action.is_revert:
            raise ValidationError("A revert cannot be reverted")
        if entry.allocation_id is None:
            raise ValidationError("History entry is not linked to an allocation")

        employee = self._get_employee(entry.employee_id)

        with self._allocations.employee_transaction(employee.employee_id) as uow:
            if uow.find_revert_of(history_id=entry.history_id) is not None:
                raise ValidationError("History entry was already reverted")

            current = uow.get(allocation_id=entry.allocation_id)
            if not current:
                raise NotFoundError("Allocation not found")

            if entry.action == HistoryAction.CREATED:
                result = self._revert_creation(uow, entry, current, employee, changed_by, comment)
            elif entry.action == HistoryAction.UPDATED:
                result = self._revert_update(uow, entry, current, employee, mode, changed_by, comment)
            else:
                result = self._revert_deletion(uow, entry, current, employee, mode, changed_by, comment)

        logger.info("History entry %s (%s) reverted", entry.history_id, entry.action.value)
        return result

    def _revert_creation(self, uow, entry, current, employee, changed_by, comment) -> Allocation:
        if not current.is_active:
            raise ValidationError("Allocation is already inactive")

        amounts = complete_amounts(current, employee.monthly_capacity_hours)
        uow.set_active(allocation_id=current.allocation_id, is_active=False)
        uow.add_history(
            self._history_for(
                current,
                amounts,
                action=HistoryAction.REVERTED_CREATION,
                changed_by=changed_by,
                comment=comment,
                reverted_history_id=entry.history_id,
            )
        )
        return dataclasses.replace(current, is_active=False)

    def _revert_update(self, uow, entry, current, employee, mode, changed_by, comment) -> Allocation:
        if not current.is_active:
            raise ValidationError("Allocation is no longer active")
        if entry.previous_allocated_hours is None and entry.previous_allocated_percentage is None:
            raise ValidationError("History entry has no previous values to restore")

        restored = complete_amounts(
            dataclasses.replace(
                current,
                allocated_hours=entry.previous_allocated_hours,
                allocated_percentage=entry.previous_allocated_percentage,
                end_date=entry.previous_end_date,
            ),
            employee.monthly_capacity_hours,
        )
        before = complete_amounts(current, employee.monthly_capacity_hours)

        self._check_capacity(
            uow,
            mode=mode,
            employee=employee,
            start_date=current.start_date,
            end_date=entry.previous_end_date,
            percentage=restored.allocated_percentage,
            exclude_allocation_id=current.allocation_id,
        )
        uow.update_amounts(
            allocation_id=current.allocation_id,
            allocated_hours=restored.allocated_hours,
            allocated_percentage=restored.allocated_percentage,
            end_date=entry.previous_end_date,
        )
        reverted = dataclasses.replace(
            current,
            allocated_hours=restored.allocated_hours,
            allocated_percentage=restored.allocated_percentage,
            end_date=entry.previous_end_date,
        )
        uow.add_history(
            dataclasses.replace(
                self._history_for(
                    reverted,
                    restored,
                    action=HistoryAction.REVERTED_UPDATE,
                    changed_by=changed_by,
                    comment=comment,
                    reverted_history_id=entry.history_id,
                ),
                previous_allocated_hours=before.allocated_hours,
                previous_allocated_percentage=before.allocated_percentage,
                previous_end_date=current.end_date,
            )
        )
        return reverted

    def _revert_deletion(self, uow, entry, current, employee, mode, changed_by, comment) -> Allocation:
        if current.is_active:
            raise ValidationError("Allocation is already active")

        amounts = complete_amounts(current, employee.monthly_capacity_hours)
        self._check_capacity(
            uow,
            mode=mode,
            employee=employee,
            start_date=current.start_date,
            end_date=current.end_date,
            percentage=amounts.allocated_percentage,
            exclude_allocation_id=current.allocation_id,
        )
        uow.set_active(allocation_id=current.allocation_id, is_active=True)
        uow.add_history(
            self._history_for(
                current,
                amounts,
                action=HistoryAction.REVERTED_DELETION,
                changed_by=changed_by,
                comment=comment,
                reverted_history_id=entry.history_id,
            )
        )
        return dataclasses.replace(current, is_active=True)

    @staticmethod
    def _history_for(
        allocation: Allocation,
        amounts: AllocationAmounts,
        *,
        action: HistoryAction,
        changed_by: Optional[int],
        comment: Optional[str],
        reverted_history_id: Optional[int] = None,
    ) -> NewHistoryEntry:
        return NewHistoryEntry(
            allocation_id=allocation.allocation_id,
            employee_id=allocation.employee_id,
            project_id=allocation.project_id,
            allocated_hours=amounts.allocated_hours,
            allocated_percentage=amounts.allocated_percentage,
            start_date=allocation.start_date,
            end_date=allocation.end_date,
            action=action,
            changed_by=changed_by,
            comment=optional_text(comment),
            reverted_history_id=reverted_history_id,
        )

    # -------- Reads --------
    def get_allocation(self, allocation_id: int) -> Allocation:
        allocation = self._allocations.get_by_id(allocation_id=int(allocation_id))
        if not allocation:
            raise NotFoundError("Allocation not found")
        return allocation

    def list_allocations(
        self, *, employee_id: Optional[int] = None, project_id: Optional[int] = None
    ) -> Sequence[Allocation]:
        if employee_id is not None:
            return self._allocations.list_by_employee(employee_id=int(employee_id))
        if project_id is not None:
            return self._allocations.list_by_project(project_id=int(project_id))
        return self._allocations.list_active()

    def list_history(
        self,
        *,
        employee_id: Optional[int] = None,
        project_id: Optional[int] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AllocationHistoryEntry]:
        return self._allocations.list_history(employee_id=employee_id, project_id=project_id, limit=int(limit))

    def capacity_summary(
        self, *, employee_id: int, start_date: DateLike, end_date: Optional[DateLike] = None
    ) -> CapacitySummary:
        employee = self._get_employee(employee_id)
        start = as_day(start_date)
        end = as_day(end_date) if end_date is not None else None
        require_ordered(start, end)

        existing = self._allocations.list_by_employee(employee_id=employee.employee_id)
        overlapping = [a for a in existing if dates_overlap(start, end, a.start_date, a.end_date)]
        total = overlapping_total(start, end, overlapping, monthly_capacity_hours=employee.monthly_capacity_hours)
        return CapacitySummary(
            employee_id=employee.employee_id,
            start_date=start,
            end_date=end,
            allocated_percentage=total,
            remaining_percentage=round(MAX_ALLOCATION_PERCENTAGE - total, 2),
            allocations=overlapping,
        )

    # -------- Maintenance --------
    def backfill_amounts(self) -> BackfillReport:
        """Derive the missing half of legacy hours/percentage pairs."""
        capacity = {e.employee_id: e.monthly_capacity_hours for e in self._employees.list_active()}
        updated = skipped = errors = 0

        for allocation in self._allocations.list_incomplete_allocations():
            outcome = self._backfill_one(allocation, capacity.get(allocation.employee_id))
            if outcome is None:
                skipped += 1
            elif outcome is False:
                errors += 1
            else:
                self._allocations.set_allocation_amounts(
                    allocation_id=allocation.allocation_id,
                    allocated_hours=outcome.allocated_hours,
                    allocated_percentage=outcome.allocated_percentage,
                )
                updated += 1

        for entry in self._allocations.list_incomplete_history():
            outcome = self._backfill_one(entry, capacity.get(entry.employee_id))
            if outcome is None:
                skipped += 1
            elif outcome is False:
                errors += 1
            else:
                self._allocations.set_history_amounts(
                    history_id=entry.history_id,
                    allocated_hours=outcome.allocated_hours,
                    allocated_percentage=outcome.allocated_percentage,
                )
                updated += 1

        report = BackfillReport(updated=updated, skipped=skipped, errors=errors)
        logger.info("Backfill finished: updated=%s skipped=%s errors=%s", updated, skipped, errors)
        return report

    @staticmethod
    def _backfill_one(row, monthly_capacity_hours: Optional[int]):
        """AllocationAmounts to store, None to skip, False on unusable data."""
        if not monthly_capacity_hours:
            logger.warning("Employee %s not found, skipping row for allocation %s", row.employee_id, row.allocation_id)
            return None
        if row.allocated_hours is not None and row.allocated_percentage is not None:
            return None
        try:
            return complete_amounts(
                Allocation(
                    allocation_id=row.allocation_id or 0,
                    employee_id=row.employee_id,
                    project_id=row.project_id,
                    allocated_hours=row.allocated_hours,
                    allocated_percentage=row.allocated_percentage,
                    start_date=row.start_date,
                    end_date=row.end_date,
                ),
                monthly_capacity_hours,
            )
        except DomainError as exc:
            logger.error("Cannot backfill row for allocation %s: %s", row.allocation_id, exc)
            return False
