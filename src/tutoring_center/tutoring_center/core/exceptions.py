from __future__ import annotations

from datetime import date
from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is malformed (amount, month key, status)."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class ConflictError(DomainError):
    """Raised on duplicates: attendance, enrollment, same-group transfer."""


class ForbiddenError(DomainError):
    """Raised when an actor may not perform an action on a resource."""


class PaymentRequiredError(ForbiddenError):
    """Raised when a student's previous cycle is not settled."""

    def __init__(
        self,
        message: str,
        *,
        student_id: int,
        cycle_start: Optional[date] = None,
        cycle_end: Optional[date] = None,
    ):
        super().__init__(message)
        self.student_id = student_id
        self.cycle_start = cycle_start
        self.cycle_end = cycle_end


class DeliveryError(Exception):
    """Raised by a notifier when a message could not be delivered."""
