from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from ..common.locks import KeyedLocks
from ..core.enums import RemovalReason
from ..core.exceptions import NotFoundError, PaymentRequiredError
from ..cycles.calculator import Cycle
from ..groups.model import Group
from ..groups.repository import GroupRepository
from ..notifications import messages
from ..notifications.notifier import Notifier, deliver
from ..payments.ledger import PaymentLedger
from ..users.model import Student
from ..users.repository import UserRepository
from . import transitions
from .model import EnrollmentAction

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Roster state machine for (group, student) pairs.

    Transitions on a group run under that group's lock; the roster change and
    the recomputed group status are written in one repository call.
    """

    def __init__(
        self,
        groups: GroupRepository,
        users: UserRepository,
        ledger: PaymentLedger,
        *,
        notifier: Notifier,
        locks: Optional[KeyedLocks] = None,
    ):
        self._groups = groups
        self._users = users
        self._ledger = ledger
        self._notifier = notifier
        self._locks = locks or KeyedLocks()

    def _require_group(self, group_id: int) -> Group:
        group = self._groups.get_by_id(int(group_id))
        if not group:
            raise NotFoundError(f"Group {group_id} not found")
        return group

    def _require_student(self, student_id: int) -> Student:
        student = self._users.get_student(int(student_id))
        if not student:
            raise NotFoundError(f"Student {student_id} not found")
        return student

    def roster(self, group_id: int) -> list[int]:
        self._require_group(group_id)
        return list(self._groups.list_member_ids(int(group_id)))

    def is_member(self, group_id: int, student_id: int) -> bool:
        return int(student_id) in self._groups.list_member_ids(int(group_id))

    def add_student(self, group_id: int, student_id: int) -> Group:
        group_id, student_id = int(group_id), int(student_id)
        self._require_student(student_id)
        with self._locks.hold(group_id):
            self._require_group(group_id)
            transitions.check_can_join(self._groups.list_member_ids(group_id), student_id)
            self._groups.add_member(group_id=group_id, student_id=student_id, status=transitions.status_after_join())
        logger.info("student %s added to group %s", student_id, group_id)
        return self._require_group(group_id)

    def remove_student(
        self,
        group_id: int,
        student_id: int,
        reason: RemovalReason = RemovalReason.MANUAL,
        *,
        unless_settled: Optional[Cycle] = None,
    ) -> Optional[Group]:
        """Take a student off the roster.

        With ``unless_settled`` the removal is skipped (None is returned) when
        that cycle turns out to be settled once the group lock is held.
        """
        group_id, student_id = int(group_id), int(student_id)
        student = self._require_student(student_id)
        with self._locks.hold(group_id):
            group = self._require_group(group_id)
            if unless_settled is not None and self._ledger.is_settled(student_id, group_id, unless_settled):
                logger.info(
                    "student %s kept in group %s: %s settled meanwhile",
                    student_id,
                    group_id,
                    unless_settled.billing_key,
                )
                return None
            roster = list(self._groups.list_member_ids(group_id))
            transitions.check_can_leave(roster, student_id)
            status = transitions.status_after_removal(len(roster) - 1)
            self._groups.remove_member(group_id=group_id, student_id=student_id, status=status, reason=reason)
        logger.info(
            "student %s removed from group %s (%s), group now %s", student_id, group_id, reason.value, status.value
        )

        if reason == RemovalReason.NON_PAYMENT:
            text = messages.removed_for_non_payment(student, group)
        else:
            text = messages.removed_by_admin(student, group)
        deliver(self._notifier, student.contact_phone, text)
        return self._require_group(group_id)

    def restore_student(self, group_id: int, student_id: int, *, today: date | datetime | None = None) -> Group:
        group_id, student_id = int(group_id), int(student_id)
        self._require_student(student_id)
        with self._locks.hold(group_id):
            self._require_group(group_id)
            transitions.check_can_join(self._groups.list_member_ids(group_id), student_id)
            if not self._ledger.payment_standing(student_id, group_id, today=today):
                raise PaymentRequiredError(
                    f"Student {student_id} has no settled payment covering group {group_id}",
                    student_id=student_id,
                )
            self._groups.add_member(
                group_id=group_id,
                student_id=student_id,
                status=transitions.status_after_join(),
                action=EnrollmentAction.RESTORED,
            )
        logger.info("student %s restored to group %s", student_id, group_id)
        return self._require_group(group_id)

    def transfer_student(self, from_group_id: int, to_group_id: int, student_id: int) -> Group:
        from_group_id, to_group_id, student_id = int(from_group_id), int(to_group_id), int(student_id)
        transitions.check_transfer(from_group_id, to_group_id)
        self._require_student(student_id)
        with self._locks.hold(from_group_id, to_group_id):
            source = self._require_group(from_group_id)
            self._require_group(to_group_id)
            source_roster = list(self._groups.list_member_ids(from_group_id))
            transitions.check_can_leave(source_roster, student_id)
            transitions.check_can_join(self._groups.list_member_ids(to_group_id), student_id)
            self._groups.transfer_member(
                from_group_id=from_group_id,
                to_group_id=to_group_id,
                student_id=student_id,
                from_status=transitions.status_after_transfer_out(len(source_roster) - 1, source.status),
                to_status=transitions.status_after_join(),
            )
        logger.info("student %s transferred from group %s to group %s", student_id, from_group_id, to_group_id)
        return self._require_group(to_group_id)
