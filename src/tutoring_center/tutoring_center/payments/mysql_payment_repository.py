from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import ConfirmationStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, to_decimal
from .model import Payment
from .repository import PaymentRepository

_COLUMNS = """
    payment_id, student_id, group_id, course_id, amount, month_for,
    admin_status, teacher_status, paid, created_at, settled_at
"""


def _payment(r: dict) -> Payment:
    return Payment(
        payment_id=int(r["payment_id"]),
        student_id=int(r["student_id"]),
        group_id=int(r["group_id"]),
        course_id=int(r["course_id"]),
        amount=to_decimal(r["amount"]),
        month_for=r["month_for"],
        admin_status=ConfirmationStatus(r["admin_status"]),
        teacher_status=ConfirmationStatus(r["teacher_status"]),
        paid=bool(r["paid"]),
        created_at=r["created_at"],
        settled_at=r.get("settled_at"),
    )


class MySQLPaymentRepository(PaymentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM payments WHERE payment_id=%s", (int(payment_id),))
            r = fetchone(cur)
            return _payment(r) if r else None

    def create(
        self,
        *,
        student_id: int,
        group_id: int,
        course_id: int,
        amount: Decimal,
        month_for: str,
        admin_status: ConfirmationStatus,
        teacher_status: ConfirmationStatus,
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO payments(
                    student_id, group_id, course_id, amount, month_for,
                    admin_status, teacher_status, paid, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,0,%s)
                """,
                (
                    int(student_id),
                    int(group_id),
                    int(course_id),
                    amount,
                    month_for,
                    admin_status.value,
                    teacher_status.value,
                    created_at,
                ),
            )
            return int(cur.lastrowid)

    def list_for_month(self, *, student_id: int, group_id: int, month_for: str) -> Sequence[Payment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM payments
                WHERE student_id=%s AND group_id=%s AND month_for=%s
                ORDER BY payment_id
                """,
                (int(student_id), int(group_id), month_for),
            )
            return [_payment(r) for r in fetchall(cur)]

    def paid_months(self, *, student_id: int, group_id: int) -> set[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT DISTINCT month_for FROM payments WHERE student_id=%s AND group_id=%s AND paid=1",
                (int(student_id), int(group_id)),
            )
            return {r["month_for"] for r in fetchall(cur)}

    def has_paid(self, *, student_id: int, group_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM payments WHERE student_id=%s AND group_id=%s AND paid=1 LIMIT 1",
                (int(student_id), int(group_id)),
            )
            return fetchone(cur) is not None

    def save_teacher_status(
        self,
        *,
        payment_id: int,
        teacher_status: ConfirmationStatus,
        settle_ids: Sequence[int] = (),
        settled_at: Optional[datetime] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE payments SET teacher_status=%s WHERE payment_id=%s",
                (teacher_status.value, int(payment_id)),
            )
            updated = cur.rowcount > 0
            ids = [int(i) for i in settle_ids]
            if ids:
                cur.execute(
                    f"UPDATE payments SET paid=1, settled_at=%s WHERE paid=0 AND payment_id IN ({in_clause(ids)})",
                    tuple([settled_at] + ids),
                )
            return updated
