from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import ConfirmationStatus


@dataclass(frozen=True)
class Payment:
    payment_id: int
    student_id: int
    group_id: int
    course_id: int
    amount: Decimal
    month_for: str
    admin_status: ConfirmationStatus
    teacher_status: ConfirmationStatus
    paid: bool
    created_at: datetime
    settled_at: Optional[datetime] = None

    @property
    def is_confirmed(self) -> bool:
        """Both the administrative and the instructional side accepted it."""
        return self.admin_status == ConfirmationStatus.ACCEPTED and self.teacher_status == ConfirmationStatus.ACCEPTED

    @property
    def is_rejected(self) -> bool:
        return ConfirmationStatus.REJECTED in (self.admin_status, self.teacher_status)

    def as_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "student_id": self.student_id,
            "group_id": self.group_id,
            "course_id": self.course_id,
            "amount": str(self.amount),
            "month_for": self.month_for,
            "admin_status": self.admin_status.value,
            "teacher_status": self.teacher_status.value,
            "paid": self.paid,
            "created_at": self.created_at.isoformat(),
            "settled_at": self.settled_at.isoformat() if self.settled_at else None,
        }
