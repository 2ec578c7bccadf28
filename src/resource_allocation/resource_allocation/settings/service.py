from __future__ import annotations

import logging

from ..core.enums import AllocationMode, Role
from ..core.exceptions import AuthorizationError, ValidationError
from .repository import SettingsRepository

logger = logging.getLogger(__name__)

ALLOCATION_MODE_KEY = "allocation_mode"
ALLOCATION_MODE_DESCRIPTION = (
    "Allocation input mode: 'hours' to enter hours or 'percentage' to enter a percentage of capacity"
)


class SettingsService:
    def __init__(self, settings: SettingsRepository, *, default_mode: AllocationMode = AllocationMode.HOURS):
        self._settings = settings
        self._default_mode = default_mode

    def get_allocation_mode(self) -> AllocationMode:
        raw = self._settings.get_value(ALLOCATION_MODE_KEY)
        if not raw:
            return self._default_mode
        try:
            return AllocationMode(raw)
        except ValueError:
            logger.warning("Unknown allocation mode %r in settings, using %s", raw, self._default_mode.value)
            return self._default_mode

    def set_allocation_mode(self, *, current_role: Role, mode: str) -> AllocationMode:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can change the allocation mode")

        try:
            new_mode = AllocationMode((mode or "").strip().lower())
        except ValueError:
            raise ValidationError("Allocation mode must be 'hours' or 'percentage'")

        self._settings.set_value(ALLOCATION_MODE_KEY, new_mode.value, description=ALLOCATION_MODE_DESCRIPTION)
        logger.info("Allocation mode set to %s", new_mode.value)
        return new_mode
