from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from typing import Optional

from ..core.enums import GroupStatus

WEEKDAY_CODES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


@dataclass(frozen=True)
class Group:
    group_id: int
    name: str
    course_id: int
    teacher_id: Optional[int]
    price: Decimal
    status: GroupStatus
    days_of_week: tuple[str, ...] = ()
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    course_name: Optional[str] = None

    def meets_on(self, day: date) -> bool:
        return WEEKDAY_CODES[day.weekday()] in self.days_of_week

    def is_taught_by(self, teacher_id: int) -> bool:
        return self.teacher_id is not None and int(self.teacher_id) == int(teacher_id)
