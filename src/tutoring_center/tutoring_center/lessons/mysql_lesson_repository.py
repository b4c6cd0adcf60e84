from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Lesson, LessonAlertRow
from .repository import LessonRepository


class MySQLLessonRepository(LessonRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, lesson_id: int) -> Optional[Lesson]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT lesson_id, group_id, lesson_number, lesson_date, end_date, lesson_name
                FROM lessons
                WHERE lesson_id=%s
                """,
                (int(lesson_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Lesson(
                lesson_id=int(r["lesson_id"]),
                group_id=int(r["group_id"]),
                lesson_number=int(r["lesson_number"]),
                lesson_date=r["lesson_date"],
                end_date=r.get("end_date"),
                lesson_name=r.get("lesson_name"),
            )

    def first_lesson_date(self, group_id: int) -> Optional[datetime]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT MIN(lesson_date) AS first_date FROM lessons WHERE group_id=%s", (int(group_id),))
            r = fetchone(cur)
            return r["first_date"] if r else None

    def next_lesson_number(self, group_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COALESCE(MAX(lesson_number), 0) AS last_number FROM lessons WHERE group_id=%s",
                (int(group_id),),
            )
            r = fetchone(cur)
            return int(r["last_number"]) + 1 if r else 1

    def create(
        self,
        *,
        group_id: int,
        lesson_number: int,
        lesson_date: datetime,
        end_date: Optional[datetime] = None,
        lesson_name: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO lessons(group_id, lesson_number, lesson_date, end_date, lesson_name)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(group_id), int(lesson_number), lesson_date, end_date, lesson_name),
            )
            return int(cur.lastrowid)

    def list_between(self, *, start: datetime, end: datetime) -> Sequence[LessonAlertRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT l.lesson_id, l.lesson_date, g.group_id, g.name AS group_name,
                       c.name AS course_name,
                       CONCAT_WS(' ', t.first_name, t.last_name) AS teacher_name
                FROM lessons l
                JOIN study_groups g ON g.group_id = l.group_id
                JOIN courses c ON c.course_id = g.course_id
                LEFT JOIN teachers t ON t.teacher_id = g.teacher_id
                WHERE l.lesson_date > %s AND l.lesson_date <= %s
                ORDER BY l.lesson_date, l.lesson_id
                """,
                (start, end),
            )
            return [
                LessonAlertRow(
                    lesson_id=int(r["lesson_id"]),
                    lesson_date=r["lesson_date"],
                    group_id=int(r["group_id"]),
                    group_name=r["group_name"],
                    course_name=r.get("course_name"),
                    teacher_name=r.get("teacher_name"),
                )
                for r in fetchall(cur)
            ]
