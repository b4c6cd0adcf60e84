from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Sequence, Union

from ..common.datetime_utils import now_local
from ..common.validators import require_enum, require_positive_id
from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..cycles.calculator import Cycle, previous_cycle
from ..groups.model import Group
from ..groups.repository import GroupRepository
from ..lessons.model import Lesson
from ..lessons.repository import LessonRepository
from ..payments.ledger import PaymentLedger
from ..users.repository import UserRepository
from .model import AttendanceEntry, AttendanceFilter, AttendanceRecord, AttendanceRow, EntryOutcome
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

EntryLike = Union[AttendanceEntry, Mapping]


def _as_entry(raw: EntryLike) -> AttendanceEntry:
    if isinstance(raw, AttendanceEntry):
        return raw
    return AttendanceEntry(student_id=raw.get("student_id"), status=raw.get("status"))


def _rejected(student_id, kind: str, message: str) -> EntryOutcome:
    return EntryOutcome(student_id=student_id, error_kind=kind, message=message)


class AttendanceService:
    """Marks and corrects attendance for a lesson.

    Each entry of a batch is validated and written on its own: a rejected
    student gets an outcome with ``error_kind`` and no row, the rest of the
    batch goes on.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        lessons: LessonRepository,
        groups: GroupRepository,
        users: UserRepository,
        ledger: PaymentLedger,
    ):
        self._attendance = attendance
        self._lessons = lessons
        self._groups = groups
        self._users = users
        self._ledger = ledger

    def _resolve_owned_lesson(self, teacher_id: int, lesson_id: int) -> tuple[Lesson, Group]:
        if not self._users.get_teacher(int(teacher_id)):
            raise NotFoundError(f"Teacher {teacher_id} not found")
        lesson = self._lessons.get_by_id(int(lesson_id))
        if not lesson:
            raise NotFoundError(f"Lesson {lesson_id} not found")
        group = self._groups.get_by_id(lesson.group_id)
        if not group:
            raise NotFoundError(f"Group {lesson.group_id} not found")
        if not group.is_taught_by(teacher_id):
            raise ForbiddenError("You can only mark attendance for your own group")
        return lesson, group

    def mark_attendance(
        self,
        *,
        teacher_id: int,
        lesson_id: int,
        entries: Iterable[EntryLike],
        today: date | datetime | None = None,
    ) -> list[EntryOutcome]:
        lesson, group = self._resolve_owned_lesson(teacher_id, lesson_id)

        first = self._ledger.first_lesson_date(group.group_id)
        if first is None:
            raise NotFoundError(f"No lessons found for group {group.name}")
        cycle = self._ledger.current_cycle(group.group_id, today=today or now_local())

        outcomes = [self._mark_one(int(teacher_id), lesson, group, cycle, _as_entry(raw)) for raw in entries]
        rejected = sum(1 for o in outcomes if not o.ok)
        if rejected:
            logger.warning("lesson %s: %d of %d attendance entries rejected", lesson.lesson_id, rejected, len(outcomes))
        return outcomes

    def _mark_one(self, teacher_id: int, lesson: Lesson, group: Group, cycle: Cycle, entry: AttendanceEntry) -> EntryOutcome:
        try:
            student_id = require_positive_id(entry.student_id, "student_id")
            status = require_enum(AttendanceStatus, entry.status, "status")
        except ValidationError as e:
            return _rejected(entry.student_id, "validation", str(e))

        if not self._users.get_student(student_id):
            return _rejected(student_id, "not_found", f"Student {student_id} not found")

        if not self._ledger.previous_cycle_settled(student_id, group.group_id, cycle):
            prev = previous_cycle(cycle)
            return _rejected(
                student_id,
                "payment_required",
                f"Student {student_id} has not paid for the previous payment cycle of {group.name} "
                f"({prev.start_date:%Y-%m-%d} - {prev.last_day:%Y-%m-%d})",
            )

        if self._attendance.get_for_student_and_lesson(student_id, lesson.lesson_id):
            return _rejected(student_id, "conflict", f"Attendance for student {student_id} already exists for this lesson")

        try:
            attendance_id = self._attendance.create(
                student_id=student_id,
                lesson_id=lesson.lesson_id,
                teacher_id=teacher_id,
                status=status,
            )
        except ConflictError as e:
            return _rejected(student_id, "conflict", str(e))
        return EntryOutcome(student_id=student_id, attendance_id=attendance_id, status=status)

    def update_attendance_by_lesson(
        self,
        *,
        teacher_id: int,
        lesson_id: int,
        updates: Iterable[EntryLike],
    ) -> list[EntryOutcome]:
        """Correct statuses of rows that already exist; never creates rows."""
        lesson, _ = self._resolve_owned_lesson(teacher_id, lesson_id)

        outcomes: list[EntryOutcome] = []
        for raw in updates:
            entry = _as_entry(raw)
            try:
                student_id = require_positive_id(entry.student_id, "student_id")
                status = require_enum(AttendanceStatus, entry.status, "status")
            except ValidationError as e:
                outcomes.append(_rejected(entry.student_id, "validation", str(e)))
                continue

            record = self._attendance.get_for_student_and_lesson(student_id, lesson.lesson_id)
            if not record:
                outcomes.append(
                    _rejected(student_id, "not_found", f"No attendance for student {student_id} in lesson {lesson.lesson_id}")
                )
                continue

            self._attendance.update_status(attendance_id=record.attendance_id, status=status)
            outcomes.append(EntryOutcome(student_id=student_id, attendance_id=record.attendance_id, status=status))
        return outcomes

    def update_attendance(self, *, teacher_id: int, attendance_id: int, status: str) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError(f"Attendance {attendance_id} not found")
        self._resolve_owned_lesson(teacher_id, record.lesson_id)

        new_status = require_enum(AttendanceStatus, status, "status")
        self._attendance.update_status(attendance_id=record.attendance_id, status=new_status)
        return self._attendance.get_by_id(record.attendance_id)

    def list_attendance(self, criteria: Optional[AttendanceFilter] = None) -> Sequence[AttendanceRow]:
        criteria = criteria or AttendanceFilter()
        if criteria.date_from and criteria.date_to and criteria.date_to < criteria.date_from:
            raise ValidationError("date_to must be on or after date_from")
        if criteria.group_id is not None and not self._groups.get_by_id(int(criteria.group_id)):
            raise NotFoundError(f"Group {criteria.group_id} not found")
        return self._attendance.find(criteria)
