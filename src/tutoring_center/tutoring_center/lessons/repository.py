from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Lesson, LessonAlertRow


class LessonRepository(Protocol):
    def get_by_id(self, lesson_id: int) -> Optional[Lesson]:
        raise NotImplementedError

    def first_lesson_date(self, group_id: int) -> Optional[datetime]:
        """Date of the group's earliest lesson; anchors its payment cycles."""

        raise NotImplementedError

    def next_lesson_number(self, group_id: int) -> int:
        raise NotImplementedError

    def create(
        self,
        *,
        group_id: int,
        lesson_number: int,
        lesson_date: datetime,
        end_date: Optional[datetime] = None,
        lesson_name: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def list_between(self, *, start: datetime, end: datetime) -> Sequence[LessonAlertRow]:
        """Lessons with ``start < lesson_date <= end``; consecutive windows never overlap."""

        raise NotImplementedError
