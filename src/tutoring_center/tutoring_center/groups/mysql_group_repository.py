from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import GroupStatus, RemovalReason
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, split_csv, to_decimal
from ..enrollment.model import Enrollment, EnrollmentAction, EnrollmentEvent
from .model import Group
from .repository import GroupRepository


def _insert_event(cur, *, group_id: int, student_id: int, action: EnrollmentAction, reason=None) -> None:
    cur.execute(
        "INSERT INTO enrollment_events(group_id, student_id, action, reason) VALUES(%s,%s,%s,%s)",
        (int(group_id), int(student_id), action.value, reason.value if reason else None),
    )


def _set_status(cur, group_id: int, status: GroupStatus) -> None:
    cur.execute("UPDATE study_groups SET status=%s WHERE group_id=%s", (status.value, int(group_id)))


class MySQLGroupRepository(GroupRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, group_id: int) -> Optional[Group]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT g.group_id, g.name, g.course_id, g.teacher_id, g.price, g.status,
                       g.days_of_week, g.start_time, g.end_time, c.name AS course_name
                FROM study_groups g
                JOIN courses c ON c.course_id = g.course_id
                WHERE g.group_id=%s
                """,
                (int(group_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Group(
                group_id=int(r["group_id"]),
                name=r["name"],
                course_id=int(r["course_id"]),
                teacher_id=int(r["teacher_id"]) if r.get("teacher_id") is not None else None,
                price=to_decimal(r["price"]),
                status=GroupStatus(r["status"]),
                days_of_week=split_csv(r.get("days_of_week")),
                start_time=normalize_mysql_time(r.get("start_time")),
                end_time=normalize_mysql_time(r.get("end_time")),
                course_name=r.get("course_name"),
            )

    def list_member_ids(self, group_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT student_id FROM group_students WHERE group_id=%s ORDER BY student_id",
                (int(group_id),),
            )
            return [int(r["student_id"]) for r in fetchall(cur)]

    def list_enrollments(self) -> Sequence[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT group_id, student_id FROM group_students ORDER BY group_id, student_id")
            return [Enrollment(student_id=int(r["student_id"]), group_id=int(r["group_id"])) for r in fetchall(cur)]

    def add_member(
        self,
        *,
        group_id: int,
        student_id: int,
        status: GroupStatus,
        action: EnrollmentAction = EnrollmentAction.ADDED,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO group_students(group_id, student_id) VALUES(%s,%s)",
                (int(group_id), int(student_id)),
            )
            _set_status(cur, group_id, status)
            _insert_event(cur, group_id=group_id, student_id=student_id, action=action)

    def remove_member(
        self,
        *,
        group_id: int,
        student_id: int,
        status: GroupStatus,
        reason: RemovalReason,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM group_students WHERE group_id=%s AND student_id=%s",
                (int(group_id), int(student_id)),
            )
            _set_status(cur, group_id, status)
            _insert_event(cur, group_id=group_id, student_id=student_id, action=EnrollmentAction.REMOVED, reason=reason)

    def transfer_member(
        self,
        *,
        from_group_id: int,
        to_group_id: int,
        student_id: int,
        from_status: GroupStatus,
        to_status: GroupStatus,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM group_students WHERE group_id=%s AND student_id=%s",
                (int(from_group_id), int(student_id)),
            )
            cur.execute(
                "INSERT INTO group_students(group_id, student_id) VALUES(%s,%s)",
                (int(to_group_id), int(student_id)),
            )
            _set_status(cur, from_group_id, from_status)
            _set_status(cur, to_group_id, to_status)
            _insert_event(cur, group_id=from_group_id, student_id=student_id, action=EnrollmentAction.TRANSFERRED_OUT)
            _insert_event(cur, group_id=to_group_id, student_id=student_id, action=EnrollmentAction.TRANSFERRED_IN)

    def list_events(self, *, group_id: int, student_id: Optional[int] = None) -> Sequence[EnrollmentEvent]:
        clauses = ["group_id=%s"]
        params: list[object] = [int(group_id)]
        if student_id is not None:
            clauses.append("student_id=%s")
            params.append(int(student_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT event_id, group_id, student_id, action, reason, created_at
                FROM enrollment_events
                WHERE {" AND ".join(clauses)}
                ORDER BY event_id
                """,
                tuple(params),
            )
            return [
                EnrollmentEvent(
                    event_id=int(r["event_id"]),
                    group_id=int(r["group_id"]),
                    student_id=int(r["student_id"]),
                    action=EnrollmentAction(r["action"]),
                    created_at=r["created_at"],
                    reason=RemovalReason(r["reason"]) if r.get("reason") else None,
                )
                for r in fetchall(cur)
            ]
