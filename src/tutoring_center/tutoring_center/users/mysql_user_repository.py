from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Operator, Student, Teacher
from .repository import UserRepository


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_student(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, first_name, last_name, phone, parents_name, parent_phone
                FROM students
                WHERE student_id=%s
                """,
                (int(student_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Student(
                student_id=int(r["student_id"]),
                first_name=r["first_name"],
                last_name=r["last_name"],
                phone=r.get("phone"),
                parents_name=r.get("parents_name"),
                parent_phone=r.get("parent_phone"),
            )

    def get_teacher(self, teacher_id: int) -> Optional[Teacher]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT teacher_id, first_name, last_name, phone FROM teachers WHERE teacher_id=%s",
                (int(teacher_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Teacher(
                teacher_id=int(r["teacher_id"]),
                first_name=r["first_name"],
                last_name=r["last_name"],
                phone=r.get("phone"),
            )

    def list_alert_operators(self) -> Sequence[Operator]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT operator_id, first_name, last_name, phone, sms_notifications_enabled
                FROM operators
                WHERE sms_notifications_enabled=1 AND phone IS NOT NULL AND phone <> ''
                ORDER BY operator_id
                """
            )
            return [
                Operator(
                    operator_id=int(r["operator_id"]),
                    first_name=r["first_name"],
                    last_name=r["last_name"],
                    phone=r.get("phone"),
                    sms_notifications_enabled=bool(r["sms_notifications_enabled"]),
                )
                for r in fetchall(cur)
            ]
