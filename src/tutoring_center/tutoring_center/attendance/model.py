from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    attendance_id: int
    student_id: int
    lesson_id: int
    teacher_id: int
    status: AttendanceStatus


@dataclass(frozen=True)
class AttendanceEntry:
    """One line of a marking batch, as received from the caller."""

    student_id: int
    status: str


@dataclass(frozen=True)
class EntryOutcome:
    """Result for one student of a batch; ``error_kind`` is set when rejected."""

    student_id: int
    attendance_id: Optional[int] = None
    status: Optional[AttendanceStatus] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    def as_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "ok": self.ok,
            "attendance_id": self.attendance_id,
            "status": self.status.value if self.status else None,
            "error": self.error_kind,
            "message": self.message,
        }


@dataclass(frozen=True)
class AttendanceFilter:
    group_id: Optional[int] = None
    lesson_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    student_name: Optional[str] = None


@dataclass(frozen=True)
class AttendanceRow:
    """Read-model for listings (attendance joined with student/lesson/group)."""

    attendance_id: int
    student_id: int
    student_name: str
    lesson_id: int
    lesson_date: datetime
    group_id: int
    group_name: str
    status: AttendanceStatus

    def as_dict(self) -> dict:
        return {
            "attendance_id": self.attendance_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "lesson_id": self.lesson_id,
            "lesson_date": self.lesson_date.isoformat(),
            "group_id": self.group_id,
            "group_name": self.group_name,
            "status": self.status.value,
        }
