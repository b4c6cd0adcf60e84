from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles checked by the HTTP layer before delegating to services."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class GroupStatus(str, Enum):
    ACTIVE = "active"
    FROZEN = "frozen"
    COMPLETED = "completed"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


class ConfirmationStatus(str, Enum):
    """Sign-off state of a payment on the admin side or the teacher side."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RemovalReason(str, Enum):
    MANUAL = "manual"
    NON_PAYMENT = "non_payment"
