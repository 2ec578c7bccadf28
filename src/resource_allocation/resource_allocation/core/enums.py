from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for permission checks."""

    ADMIN = "admin"
    COORDINATOR = "coordinator"
    MANAGER = "manager"
    USER = "user"


class AllocationMode(str, Enum):
    """Which allocation field the user types in; the other one is derived."""

    HOURS = "hours"
    PERCENTAGE = "percentage"


class HistoryAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    REVERTED_CREATION = "reverted_creation"
    REVERTED_UPDATE = "reverted_update"
    REVERTED_DELETION = "reverted_deletion"

    @property
    def is_revert(self) -> bool:
        return self.value.startswith("reverted_")


# Roles allowed to create/edit/delete allocations.
ALLOCATION_EDITORS = frozenset({Role.ADMIN, Role.COORDINATOR})
