from __future__ import annotations

from datetime import timedelta
from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceFilter, AttendanceRecord, AttendanceRow
from .repository import AttendanceRepository


def _record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        student_id=int(r["student_id"]),
        lesson_id=int(r["lesson_id"]),
        teacher_id=int(r["teacher_id"]),
        status=AttendanceStatus(r["status"]),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT attendance_id, student_id, lesson_id, teacher_id, status
                FROM attendance
                WHERE attendance_id=%s
                """,
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return _record(r) if r else None

    def get_for_student_and_lesson(self, student_id: int, lesson_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT attendance_id, student_id, lesson_id, teacher_id, status
                FROM attendance
                WHERE student_id=%s AND lesson_id=%s
                """,
                (int(student_id), int(lesson_id)),
            )
            r = fetchone(cur)
            return _record(r) if r else None

    def exists_for_lesson(self, lesson_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS found FROM attendance WHERE lesson_id=%s LIMIT 1", (int(lesson_id),))
            return fetchone(cur) is not None

    def create(
        self,
        *,
        student_id: int,
        lesson_id: int,
        teacher_id: int,
        status: AttendanceStatus,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO attendance(student_id, lesson_id, teacher_id, status) VALUES(%s,%s,%s,%s)",
                    (int(student_id), int(lesson_id), int(teacher_id), status.value),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise ConflictError(f"Attendance for student {student_id} already exists for this lesson") from e
            raise

    def update_status(self, *, attendance_id: int, status: AttendanceStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance SET status=%s WHERE attendance_id=%s",
                (status.value, int(attendance_id)),
            )
            return cur.rowcount > 0

    def find(self, criteria: AttendanceFilter) -> Sequence[AttendanceRow]:
        clauses = ["1=1"]
        params: list[object] = []

        if criteria.group_id is not None:
            clauses.append("g.group_id=%s")
            params.append(int(criteria.group_id))
        if criteria.lesson_id is not None:
            clauses.append("l.lesson_id=%s")
            params.append(int(criteria.lesson_id))
        if criteria.date_from is not None:
            clauses.append("l.lesson_date >= %s")
            params.append(criteria.date_from)
        if criteria.date_to is not None:
            # date_to is inclusive of the whole day
            clauses.append("l.lesson_date < %s")
            params.append(criteria.date_to + timedelta(days=1))
        if criteria.student_name:
            clauses.append("CONCAT_WS(' ', s.first_name, s.last_name) LIKE %s")
            params.append(f"%{criteria.student_name.strip()}%")

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT a.attendance_id, a.student_id,
                       CONCAT_WS(' ', s.first_name, s.last_name) AS student_name,
                       l.lesson_id, l.lesson_date, g.group_id, g.name AS group_name, a.status
                FROM attendance a
                JOIN students s ON s.student_id = a.student_id
                JOIN lessons l ON l.lesson_id = a.lesson_id
                JOIN study_groups g ON g.group_id = l.group_id
                WHERE {where}
                ORDER BY l.lesson_date DESC, student_name
                """,
                tuple(params),
            )
            return [
                AttendanceRow(
                    attendance_id=int(r["attendance_id"]),
                    student_id=int(r["student_id"]),
                    student_name=r["student_name"],
                    lesson_id=int(r["lesson_id"]),
                    lesson_date=r["lesson_date"],
                    group_id=int(r["group_id"]),
                    group_name=r["group_name"],
                    status=AttendanceStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]
