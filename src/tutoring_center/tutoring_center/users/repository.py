from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Operator, Student, Teacher


class UserRepository(Protocol):
    """Read access to the people the core works with.

    Profile management lives elsewhere; the core only looks people up.
    """

    def get_student(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_teacher(self, teacher_id: int) -> Optional[Teacher]:
        raise NotImplementedError

    def list_alert_operators(self) -> Sequence[Operator]:
        """Operators with SMS alerts enabled and a phone on file."""

        raise NotImplementedError
