from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from ..common.datetime_utils import as_date, now_local
from ..core.constants import DEFAULT_ATTENDANCE_SWEEP_MINUTES
from ..core.enums import RemovalReason
from ..cycles.calculator import previous_cycle
from ..enrollment.model import Enrollment
from ..enrollment.service import EnrollmentService
from ..groups.repository import GroupRepository
from ..attendance.repository import AttendanceRepository
from ..lessons.repository import LessonRepository
from ..notifications import messages
from ..notifications.notifier import Notifier, deliver
from ..payments.ledger import PaymentLedger
from ..users.repository import UserRepository
from .policy import PaymentAction, scheduled_payment_action

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    job: str
    processed: int = 0
    notified: int = 0
    removed: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "job": self.job,
            "processed": self.processed,
            "notified": self.notified,
            "removed": self.removed,
            "error_count": len(self.errors),
            "errors": list(self.errors),
        }


class AttendanceSweep:
    """Alerts operators about lessons that started in the last window without attendance.

    Only lessons inside ``(now - window, now]`` are looked at; a lesson that
    falls out of the window is never alerted on again.
    """

    name = "attendance_sweep"

    def __init__(
        self,
        lessons: LessonRepository,
        attendance: AttendanceRepository,
        users: UserRepository,
        *,
        notifier: Notifier,
        window_minutes: int = DEFAULT_ATTENDANCE_SWEEP_MINUTES,
    ):
        self._lessons = lessons
        self._attendance = attendance
        self._users = users
        self._notifier = notifier
        self._window = timedelta(minutes=int(window_minutes))

    def run(self, *, now: Optional[datetime] = None) -> SweepReport:
        now = now or now_local()
        report = SweepReport(job=self.name)
        lessons = self._lessons.list_between(start=now - self._window, end=now)
        operators = None

        for row in lessons:
            report.processed += 1
            try:
                if self._attendance.exists_for_lesson(row.lesson_id):
                    continue
                if operators is None:
                    operators = [o for o in self._users.list_alert_operators() if o.phone]
                text = messages.attendance_missing(row)
                for operator in operators:
                    if deliver(self._notifier, operator.phone, text):
                        report.notified += 1
            except Exception as e:
                logger.exception("attendance sweep failed for lesson %s", row.lesson_id)
                report.errors.append(f"lesson {row.lesson_id}: {e}")

        _log_report(report)
        return report


class PaymentEnforcementSweep:
    """Daily pass over every roster entry: remind on day 10, remove on an unpaid boundary.

    Removal takes the student off the roster, so a second run on the same day
    finds nothing to remove. Reminders already sent today are remembered for
    the life of the sweep object.
    """

    name = "payment_sweep"

    def __init__(
        self,
        groups: GroupRepository,
        users: UserRepository,
        ledger: PaymentLedger,
        enrollment: EnrollmentService,
        *,
        notifier: Notifier,
    ):
        self._groups = groups
        self._users = users
        self._ledger = ledger
        self._enrollment = enrollment
        self._notifier = notifier
        self._reminded: set[tuple[int, int, date]] = set()
        self._reminded_guard = threading.Lock()

    def run(self, *, today: date | datetime | None = None) -> SweepReport:
        day = as_date(today or now_local())
        report = SweepReport(job=self.name)

        for enrollment in self._groups.list_enrollments():
            report.processed += 1
            try:
                self._process(enrollment, day, report)
            except Exception as e:
                logger.exception(
                    "payment sweep failed for student %s in group %s", enrollment.student_id, enrollment.group_id
                )
                report.errors.append(f"student {enrollment.student_id} group {enrollment.group_id}: {e}")

        self._forget_before(day)
        _log_report(report)
        return report

    def _process(self, enrollment: Enrollment, day: date, report: SweepReport) -> None:
        first = self._ledger.first_lesson_date(enrollment.group_id)
        action = scheduled_payment_action(first, day)
        if action == PaymentAction.NONE:
            return

        cycle = self._ledger.current_cycle(enrollment.group_id, today=day)
        if action == PaymentAction.ENFORCE:
            if self._ledger.previous_cycle_settled(enrollment.student_id, enrollment.group_id, cycle):
                return
            # settlement is checked again under the group lock; a payment confirmed
            # in between keeps the student
            removed = self._enrollment.remove_student(
                enrollment.group_id,
                enrollment.student_id,
                RemovalReason.NON_PAYMENT,
                unless_settled=previous_cycle(cycle),
            )
            if removed is not None:
                report.removed += 1
            return

        group = self._groups.get_by_id(enrollment.group_id)
        student = self._users.get_student(enrollment.student_id)
        if not group or not student:
            return
        amount_due = self._ledger.outstanding(student.student_id, group, cycle.billing_key)
        if amount_due <= 0:
            return

        marker = (student.student_id, group.group_id, day)
        with self._reminded_guard:
            if marker in self._reminded:
                return
            self._reminded.add(marker)
        if deliver(self._notifier, student.contact_phone, messages.payment_reminder(student, group, amount_due)):
            report.notified += 1

    def _forget_before(self, day: date) -> None:
        with self._reminded_guard:
            self._reminded = {m for m in self._reminded if m[2] >= day}


def _log_report(report: SweepReport) -> None:
    if report.errors:
        logger.warning(
            "%s finished with %d error(s): processed=%d notified=%d removed=%d",
            report.job,
            len(report.errors),
            report.processed,
            report.notified,
            report.removed,
        )
    else:
        logger.info(
            "%s finished: processed=%d notified=%d removed=%d",
            report.job,
            report.processed,
            report.notified,
            report.removed,
        )
