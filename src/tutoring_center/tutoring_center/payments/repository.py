from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import ConfirmationStatus
from .model import Payment


class PaymentRepository(Protocol):
    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        raise NotImplementedError

    def create(
        self,
        *,
        student_id: int,
        group_id: int,
        course_id: int,
        amount: Decimal,
        month_for: str,
        admin_status: ConfirmationStatus,
        teacher_status: ConfirmationStatus,
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def list_for_month(self, *, student_id: int, group_id: int, month_for: str) -> Sequence[Payment]:
        raise NotImplementedError

    def paid_months(self, *, student_id: int, group_id: int) -> set[str]:
        """Billing keys with at least one ``paid`` payment."""

        raise NotImplementedError

    def has_paid(self, *, student_id: int, group_id: int) -> bool:
        raise NotImplementedError

    def save_teacher_status(
        self,
        *,
        payment_id: int,
        teacher_status: ConfirmationStatus,
        settle_ids: Sequence[int] = (),
        settled_at: Optional[datetime] = None,
    ) -> bool:
        """Write the teacher sign-off and flip ``paid`` on ``settle_ids``, atomically.

        Rows already paid are left untouched; ``paid`` is never cleared.
        """

        raise NotImplementedError
