from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidRangeError(ValidationError):
    """Raised when a period ends before it starts."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist (or is inactive)."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class CapacityExceededError(DomainError):
    """Raised when overlapping percentage allocations would go above 100%.

    ``current_total`` is the percentage already allocated in the overlapping
    periods, ``requested`` the percentage of the rejected allocation.
    """

    def __init__(self, current_total: float, requested: float):
        self.current_total = current_total
        self.requested = requested
        super().__init__(
            f"Capacity exceeded: {current_total:.2f}% already allocated in this period, "
            f"cannot add {requested:.2f}%"
        )
