from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.validators import require_positive_id
from ..core.exceptions import ForbiddenError, NotFoundError, ValidationError
from ..groups.repository import GroupRepository
from ..users.repository import UserRepository
from .model import Lesson
from .repository import LessonRepository

logger = logging.getLogger(__name__)


class LessonService:
    def __init__(self, lessons: LessonRepository, groups: GroupRepository, users: UserRepository):
        self._lessons = lessons
        self._groups = groups
        self._users = users

    def get_lesson(self, lesson_id: int) -> Lesson:
        lesson = self._lessons.get_by_id(int(lesson_id))
        if not lesson:
            raise NotFoundError(f"Lesson {lesson_id} not found")
        return lesson

    def create_lesson(
        self,
        *,
        teacher_id: int,
        group_id: int,
        lesson_date: datetime,
        end_date: Optional[datetime] = None,
        lesson_name: Optional[str] = None,
        lesson_number: Optional[int] = None,
    ) -> Lesson:
        """Schedule a lesson for one of the teacher's groups.

        The lesson must fall on one of the group's meeting days. Without an
        explicit number it gets the next one in the group's sequence.
        """
        if not self._users.get_teacher(int(teacher_id)):
            raise NotFoundError(f"Teacher {teacher_id} not found")
        group = self._groups.get_by_id(int(group_id))
        if not group:
            raise NotFoundError(f"Group {group_id} not found")
        if not group.is_taught_by(teacher_id):
            raise ForbiddenError("You can only create lessons for your own group")

        if group.days_of_week and not group.meets_on(lesson_date.date()):
            raise ValidationError(
                f"Group {group.name} does not meet on {lesson_date:%A} (days: {', '.join(group.days_of_week)})"
            )
        if end_date is not None and end_date <= lesson_date:
            raise ValidationError("end_date must be after lesson_date")

        if lesson_number is None:
            number = self._lessons.next_lesson_number(group.group_id)
        else:
            number = require_positive_id(lesson_number, "lesson_number")

        lesson_id = self._lessons.create(
            group_id=group.group_id,
            lesson_number=number,
            lesson_date=lesson_date,
            end_date=end_date,
            lesson_name=(lesson_name or "").strip() or None,
        )
        logger.info("lesson %s (#%s) created for group %s at %s", lesson_id, number, group.group_id, lesson_date)
        return self.get_lesson(lesson_id)
