from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from src.tutoring_center.tutoring_center.core.enums import ConfirmationStatus, GroupStatus, RemovalReason
from src.tutoring_center.tutoring_center.core.exceptions import NotFoundError
from src.tutoring_center.tutoring_center.enrollment.model import EnrollmentAction
from src.tutoring_center.tutoring_center.scheduler.service import SchedulerService, build_default_jobs
from src.tutoring_center.tutoring_center.users.model import Operator
from tests.fakes import RecordingNotifier, at, build_world, day


def _payment_world(notifier=None):
    world = build_world(notifier=notifier)
    s = world.store
    s.add_teacher(1)
    s.add_student(1, parent_phone="+100")
    s.add_student(2, parent_phone="+200")
    s.add_group(1, price="100", members=[1, 2])
    s.add_lesson(1, at("2024-01-10T09:00"))
    s.add_payment(student_id=1, group_id=1, month_for="2024-01")
    return world


def test_due_date_removes_unpaid_student_once():
    world = _payment_world()
    sweep = world.container.payment_sweep

    report = sweep.run(today=day("2024-02-09"))
    assert (report.processed, report.removed, report.errors) == (2, 1, [])
    assert world.store.members[1] == [1]
    assert world.store.groups[1].status == GroupStatus.FROZEN
    assert len(world.notifier.messages_to("+200")) == 1
    assert world.notifier.messages_to("+100") == []

    again = sweep.run(today=day("2024-02-09"))
    assert again.removed == 0
    assert len(world.notifier.messages_to("+200")) == 1
    removals = [e for e in world.store.events if e.action == EnrollmentAction.REMOVED]
    assert [(e.student_id, e.reason) for e in removals] == [(2, RemovalReason.NON_PAYMENT)]


def test_days_other_than_due_and_reminder_do_nothing():
    world = _payment_world()
    report = world.container.payment_sweep.run(today=day("2024-02-10"))
    assert (report.removed, report.notified) == (0, 0)
    assert world.store.members[1] == [1, 2]


def test_reminder_lists_outstanding_amount_once_per_day():
    world = _payment_world()
    s = world.store
    s.add_payment(student_id=1, group_id=1, month_for="2024-02")
    s.add_payment(
        student_id=2,
        group_id=1,
        month_for="2024-02",
        amount="40",
        teacher_status=ConfirmationStatus.PENDING,
        paid=False,
    )
    sweep = world.container.payment_sweep

    report = sweep.run(today=day("2024-02-19"))
    assert report.notified == 1
    assert world.notifier.messages_to("+100") == []
    [reminder] = world.notifier.messages_to("+200")
    assert "60" in reminder

    sweep.run(today=day("2024-02-19"))
    assert len(world.notifier.messages_to("+200")) == 1


def test_failed_delivery_does_not_stop_the_sweep():
    world = _payment_world(notifier=RecordingNotifier(failing_recipients=["+200"]))
    world.store.add_student(3, parent_phone="+300")
    world.store.members[1].append(3)

    report = world.container.payment_sweep.run(today=day("2024-01-20"))
    assert report.errors == []
    assert report.notified == 1
    assert len(world.notifier.messages_to("+300")) == 1


def test_one_broken_enrollment_does_not_abort_the_rest(monkeypatch):
    world = _payment_world()
    world.store.add_student(3, parent_phone="+300")
    world.store.members[1].append(3)
    enrollment = world.container.enrollment_service
    original = enrollment.remove_student

    def flaky(group_id, student_id, reason=RemovalReason.MANUAL, **kwargs):
        if student_id == 2:
            raise RuntimeError("database went away")
        return original(group_id, student_id, reason, **kwargs)

    monkeypatch.setattr(enrollment, "remove_student", flaky)
    report = world.container.payment_sweep.run(today=day("2024-02-09"))

    assert report.removed == 1
    assert len(report.errors) == 1
    assert world.store.members[1] == [1, 2]


def _pending_world():
    world = _payment_world()
    world.pending = world.store.add_payment(
        student_id=2, group_id=1, month_for="2024-01", teacher_status=ConfirmationStatus.PENDING, paid=False
    )
    return world


def test_payment_confirmed_after_the_check_keeps_the_student(monkeypatch):
    world = _pending_world()
    ledger = world.container.payment_ledger
    payments = world.container.payment_service
    checked = ledger.previous_cycle_settled

    def confirm_right_after_check(student_id, group_id, cycle):
        settled = checked(student_id, group_id, cycle)
        if student_id == 2 and not settled:
            payments.confirm_payment(payment_id=world.pending.payment_id, teacher_id=1, now=at("2024-02-09T09:00"))
        return settled

    monkeypatch.setattr(ledger, "previous_cycle_settled", confirm_right_after_check)
    report = world.container.payment_sweep.run(today=day("2024-02-09"))

    assert report.removed == 0
    assert report.errors == []
    assert payments.get_payment(world.pending.payment_id).paid
    assert world.store.members[1] == [1, 2]
    assert not [e for e in world.store.events if e.action == EnrollmentAction.REMOVED]
    assert world.notifier.messages_to("+200") == []


def test_sweep_and_confirmation_racing_leave_a_paid_student_enrolled():
    for _ in range(20):
        world = _pending_world()
        barrier = threading.Barrier(2)
        errors = []

        def sweep():
            barrier.wait()
            errors.extend(world.container.payment_sweep.run(today=day("2024-02-09")).errors)

        def confirm():
            barrier.wait()
            world.container.payment_service.confirm_payment(
                payment_id=world.pending.payment_id, teacher_id=1, now=at("2024-02-09T09:00")
            )

        threads = [threading.Thread(target=sweep), threading.Thread(target=confirm)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        actions = [e.action for e in world.store.events]
        assert errors == []
        assert 2 in world.store.members[1]
        assert actions.count(EnrollmentAction.REMOVED) == actions.count(EnrollmentAction.RESTORED) <= 1
        assert world.container.payment_ledger.is_month_settled(2, 1, "2024-01")


def _attendance_world():
    world = build_world()
    s = world.store
    s.add_teacher(1)
    s.add_student(1)
    s.add_group(1, members=[1])
    s.operators.extend(
        [
            Operator(operator_id=1, first_name="Office", last_name="One", phone="+900"),
            Operator(operator_id=2, first_name="Muted", last_name="Two", phone="+901", sms_notifications_enabled=False),
        ]
    )
    world.missed = s.add_lesson(1, at("2024-03-01T09:00"))
    world.marked = s.add_lesson(1, at("2024-03-01T09:05"))
    world.old = s.add_lesson(1, at("2024-03-01T08:00"))
    world.container.attendance_service.mark_attendance(
        teacher_id=1,
        lesson_id=world.marked.lesson_id,
        entries=[{"student_id": 1, "status": "present"}],
        today=day("2024-03-01"),
    )
    return world


def test_attendance_sweep_alerts_only_for_lessons_in_window_without_attendance():
    world = _attendance_world()
    report = world.container.attendance_sweep.run(now=at("2024-03-01T09:10"))

    assert (report.processed, report.notified) == (2, 1)
    [alert] = world.notifier.messages_to("+900")
    assert "G1" in alert and "Teacher1 Test" in alert
    assert world.notifier.messages_to("+901") == []


def test_attendance_sweep_stops_once_window_passes():
    world = _attendance_world()
    report = world.container.attendance_sweep.run(now=at("2024-03-01T09:30"))
    assert report.notified == 0


def test_lesson_on_a_tick_boundary_is_alerted_once():
    world = _attendance_world()
    sweep = world.container.attendance_sweep

    assert sweep.run(now=at("2024-03-01T09:00")).notified == 1
    later = sweep.run(now=at("2024-03-01T09:15"))
    assert (later.processed, later.notified) == (1, 0)
    assert len(world.notifier.messages_to("+900")) == 1


def test_attendance_sweep_isolates_failures():
    world = _attendance_world()
    world.store.add_lesson(1, at("2024-03-01T09:08"))
    world.attendance_repo.fail_on_lesson = world.missed.lesson_id

    report = world.container.attendance_sweep.run(now=at("2024-03-01T09:10"))
    assert len(report.errors) == 1
    assert report.notified == 1
    assert f"lesson {world.missed.lesson_id}" in report.errors[0]
    assert "G1" in world.notifier.messages_to("+900")[0]


class FakeScheduler:
    def __init__(self):
        self.jobs = []
        self.running = False

    def add_job(self, **kwargs):
        self.jobs.append(kwargs)

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False


def test_scheduler_registers_non_overlapping_jobs():
    world = _payment_world()
    fake = FakeScheduler()
    jobs = build_default_jobs(world.container.attendance_sweep, world.container.payment_sweep, attendance_minutes=15)
    service = SchedulerService(jobs, scheduler=fake)

    service.start()
    service.start()
    assert service.running
    assert [j["id"] for j in fake.jobs] == ["attendance_sweep", "payment_sweep"]
    assert all(j["max_instances"] == 1 and j["coalesce"] and j["replace_existing"] for j in fake.jobs)
    assert fake.jobs[0]["trigger"].interval == timedelta(minutes=15)

    service.shutdown()
    assert not service.running


def test_run_now_dispatches_by_id():
    world = _payment_world()
    service = world.container.scheduler_service

    report = service.run_now("attendance_sweep")
    assert report.job == "attendance_sweep"
    with pytest.raises(NotFoundError):
        service.run_now("nope")
