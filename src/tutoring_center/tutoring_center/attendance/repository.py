from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceFilter, AttendanceRecord, AttendanceRow


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_student_and_lesson(self, student_id: int, lesson_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def exists_for_lesson(self, lesson_id: int) -> bool:
        raise NotImplementedError

    def create(
        self,
        *,
        student_id: int,
        lesson_id: int,
        teacher_id: int,
        status: AttendanceStatus,
    ) -> int:
        """Insert one row.

        Raises ConflictError when a row for (student, lesson) already exists.
        """

        raise NotImplementedError

    def update_status(self, *, attendance_id: int, status: AttendanceStatus) -> bool:
        raise NotImplementedError

    def find(self, criteria: AttendanceFilter) -> Sequence[AttendanceRow]:
        raise NotImplementedError
