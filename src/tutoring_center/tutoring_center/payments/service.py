from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_local, require_month_key
from ..common.locks import KeyedLocks
from ..common.validators import require_amount
from ..core.enums import ConfirmationStatus
from ..core.exceptions import ConflictError, DomainError, ForbiddenError, NotFoundError, ValidationError
from ..enrollment.service import EnrollmentService
from ..groups.model import Group
from ..groups.repository import GroupRepository
from ..notifications import messages
from ..notifications.notifier import Notifier, deliver
from ..users.repository import UserRepository
from .ledger import PaymentLedger, confirmed_total
from .model import Payment
from .repository import PaymentRepository

logger = logging.getLogger(__name__)


class PaymentService:
    """Write side of payments.

    An admin records a payment (admin sign-off given on entry); the group's
    teacher confirms or rejects it. ``paid`` flips on every confirmed payment of
    a (student, group, month_for) key once their sum reaches the group price,
    and is never cleared afterwards.
    """

    def __init__(
        self,
        payments: PaymentRepository,
        groups: GroupRepository,
        users: UserRepository,
        ledger: PaymentLedger,
        enrollment: EnrollmentService,
        *,
        notifier: Notifier,
        locks: Optional[KeyedLocks] = None,
    ):
        self._payments = payments
        self._groups = groups
        self._users = users
        self._ledger = ledger
        self._enrollment = enrollment
        self._notifier = notifier
        self._locks = locks or KeyedLocks()

    def get_payment(self, payment_id: int) -> Payment:
        payment = self._payments.get_by_id(int(payment_id))
        if not payment:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    def _require_group(self, group_id: int) -> Group:
        group = self._groups.get_by_id(int(group_id))
        if not group:
            raise NotFoundError(f"Group {group_id} not found")
        return group

    def record_payment(
        self,
        *,
        student_id: int,
        group_id: int,
        course_id: int,
        amount,
        month_for: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Payment:
        now = now or now_local()
        amount = require_amount(amount)

        if not self._users.get_student(int(student_id)):
            raise NotFoundError(f"Student {student_id} not found")
        group = self._require_group(group_id)
        if int(course_id) != int(group.course_id):
            raise NotFoundError(f"Course {course_id} not found for group {group.name}")

        if amount <= 0:
            raise ValidationError("amount must be greater than zero")
        if amount > group.price:
            raise ValidationError(f"amount must not exceed the group price ({group.price})")

        if month_for:
            key = require_month_key(month_for)
        else:
            key = self._default_month_for(int(student_id), group.group_id, now=now)

        with self._locks.hold((int(student_id), group.group_id, key)):
            if self._ledger.is_month_settled(int(student_id), group.group_id, key):
                raise ConflictError(f"{key} is already settled for student {student_id} in group {group.name}")

            payment_id = self._payments.create(
                student_id=int(student_id),
                group_id=group.group_id,
                course_id=group.course_id,
                amount=amount,
                month_for=key,
                admin_status=ConfirmationStatus.ACCEPTED,
                teacher_status=ConfirmationStatus.PENDING,
                created_at=now,
            )
        logger.info("payment %s recorded: student %s group %s %s amount %s", payment_id, student_id, group_id, key, amount)
        return self.get_payment(payment_id)

    def _default_month_for(self, student_id: int, group_id: int, *, now: datetime) -> str:
        """Current cycle's key; for a student off the roster, the oldest unpaid one.

        A student removed for non-payment is let back in once the cycle that
        got them removed is settled, so that is the cycle a payment goes to.
        """
        if not self._enrollment.is_member(group_id, student_id):
            unpaid = self._ledger.unpaid_months(student_id, group_id, today=now)
            if unpaid:
                return unpaid[0]
        return self._ledger.default_month_for(group_id, today=now)

    def _require_owner(self, payment: Payment, teacher_id: int) -> Group:
        group = self._require_group(payment.group_id)
        if not group.is_taught_by(teacher_id):
            raise ForbiddenError("You can only confirm payments for your own group")
        return group

    def confirm_payment(self, *, payment_id: int, teacher_id: int, now: Optional[datetime] = None) -> Payment:
        now = now or now_local()
        payment = self.get_payment(payment_id)
        group = self._require_owner(payment, teacher_id)

        if payment.teacher_status == ConfirmationStatus.ACCEPTED:
            return payment
        if payment.is_rejected:
            raise ConflictError(f"Payment {payment_id} was rejected and cannot be confirmed")

        key = (payment.student_id, payment.group_id, payment.month_for)
        # the group lock spans settlement and restoration so the payment sweep
        # cannot remove the student in between
        with self._locks.hold(payment.group_id), self._locks.hold(key):
            payment = self.get_payment(payment_id)
            if payment.teacher_status == ConfirmationStatus.ACCEPTED:
                return payment
            siblings =self._ledger.payments_for_month(payment.student_id, payment.group_id, payment.month_for)
            already_settled = any(p.paid for p in siblings)
            # ``payment`` is not confirmed in storage yet; count it explicitly.
            confirmed = [p for p in siblings if p.is_confirmed and p.payment_id != payment.payment_id]
            confirmed.append(payment)

            settle_ids: list[int] = []
            if already_settled or confirmed_total(confirmed, include=payment.payment_id) >= group.price:
                settle_ids = [p.payment_id for p in confirmed if not p.paid]

            self._payments.save_teacher_status(
                payment_id=payment.payment_id,
                teacher_status=ConfirmationStatus.ACCEPTED,
                settle_ids=settle_ids,
                settled_at=now if settle_ids else None,
            )

            newly_settled = bool(settle_ids) and not already_settled
            if newly_settled:
                logger.info(
                    "student %s settled %s in group %s", payment.student_id, payment.month_for, payment.group_id
                )
                self._restore_if_absent(group, payment.student_id, now=now)
        return self.get_payment(payment.payment_id)

    def reject_payment(self, *, payment_id: int, teacher_id: int) -> Payment:
        payment = self.get_payment(payment_id)
        self._require_owner(payment, teacher_id)
        if payment.paid:
            raise ConflictError(f"Payment {payment_id} is already settled")
        if payment.teacher_status != ConfirmationStatus.REJECTED:
            self._payments.save_teacher_status(payment_id=payment.payment_id, teacher_status=ConfirmationStatus.REJECTED)
            logger.info("payment %s rejected by teacher %s", payment_id, teacher_id)
        return self.get_payment(payment.payment_id)

    def _restore_if_absent(self, group: Group, student_id: int, *, now: datetime) -> None:
        if self._enrollment.is_member(group.group_id, student_id):
            return
        try:
            self._enrollment.restore_student(group.group_id, student_id, today=now)
        except DomainError as e:
            logger.warning("student %s not restored to group %s: %s", student_id, group.group_id, e)
            return
        student = self._users.get_student(int(student_id))
        if student:
            deliver(self._notifier, student.contact_phone, messages.payment_confirmed_and_restored(student, group))
