from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Student:
    student_id: int
    first_name: str
    last_name: str
    phone: Optional[str] = None
    parents_name: Optional[str] = None
    parent_phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def contact_phone(self) -> Optional[str]:
        """Where billing messages go: the parent first, then the student."""
        return self.parent_phone or self.phone or None

    @property
    def addressee(self) -> str:
        return self.parents_name or self.full_name


@dataclass(frozen=True)
class Teacher:
    teacher_id: int
    first_name: str
    last_name: str
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Operator:
    """Back-office staff member (super-admin) who receives operational alerts."""

    operator_id: int
    first_name: str
    last_name: str
    phone: Optional[str] = None
    sms_notifications_enabled: bool = True
