from __future__ import annotations

from decimal import Decimal

from ..groups.model import Group
from ..lessons.model import LessonAlertRow
from ..users.model import Student


def _money(amount: Decimal) -> str:
    return f"{amount:,.0f}".replace(",", " ")


def attendance_missing(row: LessonAlertRow) -> str:
    return (
        f"Attendance not recorded: group {row.group_name}, course {row.course_name or '-'}, "
        f"teacher {row.teacher_name or '-'}, lesson at {row.lesson_date:%Y-%m-%d %H:%M}."
    )


def payment_reminder(student: Student, group: Group, amount_due: Decimal) -> str:
    return f"Dear {student.addressee}, please pay {_money(amount_due)} for group {group.name}."


def removed_for_non_payment(student: Student, group: Group) -> str:
    return (
        f"Dear {student.addressee}, the payment period for group {group.name} has ended. "
        f"{student.full_name} has been temporarily removed from the group."
    )


def removed_by_admin(student: Student, group: Group) -> str:
    return f"Dear {student.addressee}, {student.full_name} has been removed from group {group.name}."


def payment_confirmed_and_restored(student: Student, group: Group) -> str:
    return (
        f"Dear {student.addressee}, the payment for group {group.name} is confirmed. "
        f"{student.full_name} has been added back to the group."
    )
