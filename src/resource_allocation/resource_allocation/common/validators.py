from __future__ import annotations

import math
from typing import Any, Optional

from ..core.constants import MAX_ALLOCATION_PERCENTAGE
from ..core.exceptions import ValidationError


def require_positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field_name} must be a positive integer")
    if number != value and not (isinstance(value, str) and value.strip() == str(number)):
        raise ValidationError(f"{field_name} must be a positive integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be a positive integer")
    return number


def require_percentage(value: Any, field_name: str = "Allocated percentage") -> float:
    try:
        pct = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not math.isfinite(pct):
        raise ValidationError(f"{field_name} must be a finite number")
    if pct <= 0 or pct > MAX_ALLOCATION_PERCENTAGE:
        raise ValidationError(f"{field_name} must be greater than 0 and at most {MAX_ALLOCATION_PERCENTAGE}")
    return pct


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None
