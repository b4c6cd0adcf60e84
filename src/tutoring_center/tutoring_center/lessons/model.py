from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Lesson:
    lesson_id: int
    group_id: int
    lesson_number: int
    lesson_date: datetime
    end_date: Optional[datetime] = None
    lesson_name: Optional[str] = None


@dataclass(frozen=True)
class LessonAlertRow:
    """Read-model for the missed-attendance alert (lesson joined with group/course/teacher)."""

    lesson_id: int
    lesson_date: datetime
    group_id: int
    group_name: str
    course_name: Optional[str]
    teacher_name: Optional[str]
