from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.locks import KeyedLocks
from .core.constants import (
    DEFAULT_ATTENDANCE_SWEEP_MINUTES,
    DEFAULT_NOTIFY_TIMEOUT_SECONDS,
    DEFAULT_PAYMENT_SWEEP_HOUR,
)
from .database.connection import DBConfig, DatabaseConnection
from .enrollment.service import EnrollmentService
from .groups.mysql_group_repository import MySQLGroupRepository
from .groups.repository import GroupRepository
from .lessons.mysql_lesson_repository import MySQLLessonRepository
from .lessons.repository import LessonRepository
from .lessons.service import LessonService
from .notifications.notifier import LoggingNotifier, Notifier, SmsNotifier
from .payments.ledger import PaymentLedger
from .payments.mysql_payment_repository import MySQLPaymentRepository
from .payments.repository import PaymentRepository
from .payments.service import PaymentService
from .scheduler.jobs import AttendanceSweep, PaymentEnforcementSweep
from .scheduler.service import SchedulerService, build_default_jobs
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    notifier: Notifier

    users_repo: UserRepository
    groups_repo: GroupRepository
    lessons_repo: LessonRepository
    attendance_repo: AttendanceRepository
    payments_repo: PaymentRepository

    payment_ledger: PaymentLedger
    enrollment_service: EnrollmentService
    payment_service: PaymentService
    attendance_service: AttendanceService
    lesson_service: LessonService

    attendance_sweep: AttendanceSweep
    payment_sweep: PaymentEnforcementSweep
    scheduler_service: SchedulerService


def assemble(
    *,
    users: UserRepository,
    groups: GroupRepository,
    lessons: LessonRepository,
    attendance: AttendanceRepository,
    payments: PaymentRepository,
    notifier: Notifier,
    conn: Optional[DatabaseConnection] = None,
    attendance_minutes: int = DEFAULT_ATTENDANCE_SWEEP_MINUTES,
    payment_hour: int = DEFAULT_PAYMENT_SWEEP_HOUR,
) -> Container:
    """Wire services over any set of repositories (MySQL in production, in-memory in tests)."""
    ledger = PaymentLedger(payments, lessons)
    # one lock table: payment confirmation and roster changes serialize on the group
    locks = KeyedLocks()
    enrollment_service = EnrollmentService(groups, users, ledger, notifier=notifier, locks=locks)
    payment_service = PaymentService(
        payments, groups, users, ledger, enrollment_service, notifier=notifier, locks=locks
    )
    attendance_service = AttendanceService(attendance, lessons, groups, users, ledger)
    lesson_service = LessonService(lessons, groups, users)

    attendance_sweep = AttendanceSweep(
        lessons, attendance, users, notifier=notifier, window_minutes=attendance_minutes
    )
    payment_sweep = PaymentEnforcementSweep(groups, users, ledger, enrollment_service, notifier=notifier)
    scheduler_service = SchedulerService(
        build_default_jobs(
            attendance_sweep,
            payment_sweep,
            attendance_minutes=attendance_minutes,
            payment_hour=payment_hour,
        )
    )

    return Container(
        conn=conn,
        notifier=notifier,
        users_repo=users,
        groups_repo=groups,
        lessons_repo=lessons,
        attendance_repo=attendance,
        payments_repo=payments,
        payment_ledger=ledger,
        enrollment_service=enrollment_service,
        payment_service=payment_service,
        attendance_service=attendance_service,
        lesson_service=lesson_service,
        attendance_sweep=attendance_sweep,
        payment_sweep=payment_sweep,
        scheduler_service=scheduler_service,
    )


def build_notifier(settings: Any) -> Notifier:
    api_url = getattr(settings, "SMS_API_URL", None)
    api_token = getattr(settings, "SMS_API_TOKEN", None)
    if not api_url or not api_token:
        logger.warning("SMS_API_URL/SMS_API_TOKEN not set; notifications go to the log only")
        return LoggingNotifier()
    return SmsNotifier(
        api_url,
        api_token,
        sender=getattr(settings, "SMS_FROM", None),
        timeout=float(getattr(settings, "NOTIFY_TIMEOUT_SECONDS", DEFAULT_NOTIFY_TIMEOUT_SECONDS)),
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble(
        users=MySQLUserRepository(conn),
        groups=MySQLGroupRepository(conn),
        lessons=MySQLLessonRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        payments=MySQLPaymentRepository(conn),
        notifier=build_notifier(settings),
        conn=conn,
        attendance_minutes=int(getattr(settings, "ATTENDANCE_SWEEP_MINUTES", DEFAULT_ATTENDANCE_SWEEP_MINUTES)),
        payment_hour=int(getattr(settings, "PAYMENT_SWEEP_HOUR", DEFAULT_PAYMENT_SWEEP_HOUR)),
    )
