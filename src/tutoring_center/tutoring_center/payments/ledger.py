from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from ..common.datetime_utils import as_date, month_key, now_local
from ..cycles.calculator import Cycle, compute_cycle, cycle_at, iter_cycles, previous_cycle
from ..groups.model import Group
from ..lessons.repository import LessonRepository
from .model import Payment
from .repository import PaymentRepository


def confirmed_total(payments: Iterable[Payment], *, include: Optional[int] = None) -> Decimal:
    """Sum of fully signed-off amounts; ``include`` counts one payment id as signed off."""
    return sum((p.amount for p in payments if p.is_confirmed or p.payment_id == include), Decimal("0"))


def received_total(payments: Iterable[Payment]) -> Decimal:
    """Money taken in and not rejected, whether or not the teacher has signed off."""
    return sum((p.amount for p in payments if not p.is_rejected), Decimal("0"))


class PaymentLedger:
    """Read side of payments: what is settled, what is owed.

    A cycle is settled when a ``paid`` payment exists under its billing key;
    ``paid`` itself is only set by ``PaymentService`` once both sign-offs are in
    and the confirmed total for the key reaches the group price.
    """

    def __init__(self, payments: PaymentRepository, lessons: LessonRepository):
        self._payments = payments
        self._lessons = lessons

    def first_lesson_date(self, group_id: int) -> Optional[date]:
        first = self._lessons.first_lesson_date(group_id)
        return as_date(first) if first else None

    def current_cycle(self, group_id: int, *, today: date | datetime | None = None) -> Optional[Cycle]:
        first = self.first_lesson_date(group_id)
        if first is None:
            return None
        today = as_date(today or now_local())
        if today < first:
            # lessons scheduled ahead of time: billing starts with the first cycle
            return cycle_at(first, 0)
        return compute_cycle(first, today)

    def default_month_for(self, group_id: int, *, today: date | datetime | None = None) -> str:
        today = today or now_local()
        cycle = self.current_cycle(group_id, today=today)
        return cycle.billing_key if cycle else month_key(as_date(today))

    def is_settled(self, student_id: int, group_id: int, cycle: Cycle) -> bool:
        return cycle.billing_key in self._payments.paid_months(student_id=student_id, group_id=group_id)

    def is_month_settled(self, student_id: int, group_id: int, month_for: str) -> bool:
        return month_for in self._payments.paid_months(student_id=student_id, group_id=group_id)

    def outstanding(self, student_id: int, group: Group, month_for: str) -> Decimal:
        rows = self._payments.list_for_month(student_id=student_id, group_id=group.group_id, month_for=month_for)
        if any(p.paid for p in rows):
            return Decimal("0")
        return max(group.price - received_total(rows), Decimal("0"))

    def first_unpaid_cycle_index(
        self, student_id: int, group_id: int, *, today: date | datetime | None = None
    ) -> Optional[int]:
        """Index of the earliest unsettled cycle up to today.

        When every cycle so far is settled, the next cycle's index is returned;
        None when the group has no lessons yet.
        """
        first = self.first_lesson_date(group_id)
        if first is None:
            return None
        paid = self._payments.paid_months(student_id=student_id, group_id=group_id)
        last_index = -1
        for cycle in iter_cycles(first, today or now_local()):
            if cycle.billing_key not in paid:
                return cycle.index
            last_index = cycle.index
        return last_index + 1

    def unpaid_months(self, student_id: int, group_id: int, *, today: date | datetime | None = None) -> list[str]:
        first = self.first_lesson_date(group_id)
        if first is None:
            return []
        paid = self._payments.paid_months(student_id=student_id, group_id=group_id)
        keys: list[str] = []
        for cycle in iter_cycles(first, today or now_local()):
            if cycle.billing_key not in paid and cycle.billing_key not in keys:
                keys.append(cycle.billing_key)
        return keys

    def previous_cycle_settled(self, student_id: int, group_id: int, cycle: Cycle) -> bool:
        """Attendance/restoration gate; the first cycle is never gated."""
        if cycle.is_first_cycle:
            return True
        return self.is_settled(student_id, group_id, previous_cycle(cycle))

    def payment_standing(self, student_id: int, group_id: int, *, today: date | datetime | None = None) -> bool:
        """Whether a student may be put back on the roster.

        During the first cycle (or before any lesson) one settled payment for
        the group is enough; later the previous cycle must be settled.
        """
        cycle = self.current_cycle(group_id, today=today)
        if cycle is None or cycle.is_first_cycle:
            return self._payments.has_paid(student_id=student_id, group_id=group_id)
        return self.is_settled(student_id, group_id, previous_cycle(cycle))

    def payments_for_month(self, student_id: int, group_id: int, month_for: str) -> list[Payment]:
        return list(self._payments.list_for_month(student_id=student_id, group_id=group_id, month_for=month_for))
