from __future__ import annotations

import threading
from decimal import Decimal

import pytest

from src.tutoring_center.tutoring_center.core.enums import ConfirmationStatus, GroupStatus
from src.tutoring_center.tutoring_center.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from src.tutoring_center.tutoring_center.enrollment.model import EnrollmentAction
from tests.fakes import at, build_world, day


def _world(*, members=(2,), price="500000", status=GroupStatus.FROZEN):
    world = build_world()
    s = world.store
    s.add_teacher(1)
    s.add_teacher(2)
    s.add_student(1, parent_phone="+111")
    s.add_student(2, parent_phone="+222")
    s.add_group(1, teacher_id=1, price=price, members=members, status=status)
    s.add_lesson(1, at("2024-01-10T09:00"))
    return world


def test_installments_settle_only_after_both_are_confirmed_and_restore_student():
    world = _world()
    payments = world.container.payment_service
    ledger = world.container.payment_ledger

    first = payments.record_payment(
        student_id=1, group_id=1, course_id=10, amount=300000, now=at("2024-01-15T10:00")
    )
    assert first.month_for == "2024-01"
    assert first.admin_status == ConfirmationStatus.ACCEPTED
    assert first.teacher_status == ConfirmationStatus.PENDING
    assert not first.paid

    first = payments.confirm_payment(payment_id=first.payment_id, teacher_id=1, now=at("2024-01-15T11:00"))
    assert first.teacher_status == ConfirmationStatus.ACCEPTED
    assert not first.paid
    assert not ledger.is_month_settled(1, 1, "2024-01")
    assert ledger.outstanding(1, world.store.groups[1], "2024-01") == Decimal("200000")

    second = payments.record_payment(
        student_id=1, group_id=1, course_id=10, amount="200000", now=at("2024-01-16T10:00")
    )
    second = payments.confirm_payment(payment_id=second.payment_id, teacher_id=1, now=at("2024-01-16T11:00"))

    assert second.paid
    assert payments.get_payment(first.payment_id).paid
    assert ledger.is_month_settled(1, 1, "2024-01")
    assert ledger.outstanding(1, world.store.groups[1], "2024-01") == Decimal("0")

    assert world.store.members[1] == [2, 1]
    assert world.store.groups[1].status == GroupStatus.ACTIVE
    assert world.store.events[-1].action == EnrollmentAction.RESTORED
    restored = world.notifier.messages_to("+111")
    assert len(restored) == 1
    assert "added back" in restored[0]


def test_full_amount_without_teacher_sign_off_is_not_settled():
    world = _world()
    payments = world.container.payment_service
    p = payments.record_payment(student_id=1, group_id=1, course_id=10, amount=500000, now=at("2024-01-15T10:00"))

    assert not p.paid
    assert not world.container.payment_ledger.is_month_settled(1, 1, "2024-01")
    assert world.store.members[1] == [2]


def test_confirm_is_idempotent():
    world = _world()
    payments = world.container.payment_service
    p = payments.record_payment(student_id=1, group_id=1, course_id=10, amount=500000, now=at("2024-01-15T10:00"))
    payments.confirm_payment(payment_id=p.payment_id, teacher_id=1, now=at("2024-01-15T11:00"))
    again = payments.confirm_payment(payment_id=p.payment_id, teacher_id=1, now=at("2024-01-15T12:00"))

    assert again.paid
    assert len(world.notifier.messages_to("+111")) == 1
    assert [e.action for e in world.store.events].count(EnrollmentAction.RESTORED) == 1


def test_only_the_group_teacher_can_confirm():
    world = _world()
    payments = world.container.payment_service
    p = payments.record_payment(student_id=1, group_id=1, course_id=10, amount=500000, now=at("2024-01-15T10:00"))

    with pytest.raises(ForbiddenError):
        payments.confirm_payment(payment_id=p.payment_id, teacher_id=2)
    assert payments.get_payment(p.payment_id).teacher_status == ConfirmationStatus.PENDING


def test_rejected_payment_never_counts():
    world = _world()
    payments = world.container.payment_service
    rejected = payments.record_payment(
        student_id=1, group_id=1, course_id=10, amount=300000, now=at("2024-01-15T10:00")
    )
    payments.reject_payment(payment_id=rejected.payment_id, teacher_id=1)

    with pytest.raises(ConflictError):
        payments.confirm_payment(payment_id=rejected.payment_id, teacher_id=1)

    rest = payments.record_payment(student_id=1, group_id=1, course_id=10, amount=200000, now=at("2024-01-15T10:00"))
    rest = payments.confirm_payment(payment_id=rest.payment_id, teacher_id=1, now=at("2024-01-15T11:00"))
    assert not rest.paid
    assert world.container.payment_ledger.outstanding(1, world.store.groups[1], "2024-01") == Decimal("300000")


def test_settled_payment_cannot_be_rejected_and_stays_paid():
    world = _world()
    payments = world.container.payment_service
    p = payments.record_payment(student_id=1, group_id=1, course_id=10, amount=500000, now=at("2024-01-15T10:00"))
    payments.confirm_payment(payment_id=p.payment_id, teacher_id=1, now=at("2024-01-15T11:00"))

    with pytest.raises(ConflictError):
        payments.reject_payment(payment_id=p.payment_id, teacher_id=1)
    assert payments.get_payment(p.payment_id).paid


def test_settled_month_rejects_new_payments():
    world = _world()
    world.store.add_payment(student_id=1, group_id=1, month_for="2024-01", amount="500000")

    with pytest.raises(ConflictError):
        world.container.payment_service.record_payment(
            student_id=1, group_id=1, course_id=10, amount=1000, month_for="2024-01"
        )


@pytest.mark.parametrize("amount", [0, -5, "abc", True, 500001])
def test_record_payment_validates_amount(amount):
    world = _world()
    with pytest.raises(ValidationError):
        world.container.payment_service.record_payment(
            student_id=1, group_id=1, course_id=10, amount=amount, now=at("2024-01-15T10:00")
        )
    assert world.store.payments == {}


def test_record_payment_validates_month_key():
    world = _world()
    with pytest.raises(ValidationError):
        world.container.payment_service.record_payment(
            student_id=1, group_id=1, course_id=10, amount=100, month_for="2024-13"
        )


@pytest.mark.parametrize(
    "student_id, group_id, course_id",
    [(99, 1, 10), (1, 99, 10), (1, 1, 20)],
)
def test_record_payment_requires_known_student_group_and_course(student_id, group_id, course_id):
    world = _world()
    with pytest.raises(NotFoundError):
        world.container.payment_service.record_payment(
            student_id=student_id, group_id=group_id, course_id=course_id, amount=100
        )


def test_month_defaults_to_current_cycle_key_for_members():
    world = _world()
    p = world.container.payment_service.record_payment(
        student_id=2, group_id=1, course_id=10, amount=100, now=at("2024-02-15T10:00")
    )
    assert p.month_for == "2024-02"


def test_settling_current_month_does_not_restore_with_previous_cycle_unpaid():
    world = _world()
    payments = world.container.payment_service
    p = payments.record_payment(
        student_id=1, group_id=1, course_id=10, amount=500000, month_for="2024-02", now=at("2024-02-15T10:00")
    )
    p = payments.confirm_payment(payment_id=p.payment_id, teacher_id=1, now=at("2024-02-15T11:00"))

    assert p.paid
    assert world.store.members[1] == [2]
    assert world.notifier.sent == []


def test_student_removed_for_non_payment_is_restored_by_paying_the_missed_cycle():
    world = _world(members=(1, 2), status=GroupStatus.ACTIVE)
    world.store.add_payment(student_id=2, group_id=1, month_for="2024-01", amount="500000")
    payments = world.container.payment_service

    assert world.container.payment_sweep.run(today=day("2024-02-09")).removed == 1
    assert world.store.members[1] == [2]

    first = payments.record_payment(student_id=1, group_id=1, course_id=10, amount=300000, now=at("2024-02-10T10:00"))
    assert first.month_for == "2024-01"
    payments.confirm_payment(payment_id=first.payment_id, teacher_id=1, now=at("2024-02-10T11:00"))
    second = payments.record_payment(
        student_id=1, group_id=1, course_id=10, amount=200000, now=at("2024-02-10T12:00")
    )
    assert second.month_for == "2024-01"
    second = payments.confirm_payment(payment_id=second.payment_id, teacher_id=1, now=at("2024-02-10T13:00"))

    assert second.paid
    assert world.store.members[1] == [2, 1]
    assert world.store.groups[1].status == GroupStatus.ACTIVE
    assert world.store.events[-1].action == EnrollmentAction.RESTORED
    assert world.container.payment_ledger.unpaid_months(1, 1, today=day("2024-02-10")) == ["2024-02"]


def test_concurrent_confirmations_of_one_month_settle_once():
    world = _world()
    payments = world.container.payment_service
    ids = [
        payments.record_payment(
            student_id=1, group_id=1, course_id=10, amount=amount, now=at("2024-01-15T10:00")
        ).payment_id
        for amount in (300000, 200000)
    ]
    barrier = threading.Barrier(len(ids))
    errors = []

    def confirm(payment_id):
        barrier.wait()
        try:
            payments.confirm_payment(payment_id=payment_id, teacher_id=1, now=at("2024-01-15T11:00"))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=confirm, args=(pid,)) for pid in ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert errors == []
    assert all(payments.get_payment(pid).paid for pid in ids)
    assert [e.action for e in world.store.events].count(EnrollmentAction.RESTORED) == 1
    assert world.store.members[1] == [2, 1]
    assert len(world.notifier.messages_to("+111")) == 1


def test_ledger_walks_unpaid_cycles():
    world = _world()
    ledger = world.container.payment_ledger
    today = day("2024-03-15")

    assert ledger.unpaid_months(1, 1, today=today) == ["2024-01", "2024-02", "2024-03"]
    assert ledger.first_unpaid_cycle_index(1, 1, today=today) == 0

    world.store.add_payment(student_id=1, group_id=1, month_for="2024-01", amount="500000")
    assert ledger.first_unpaid_cycle_index(1, 1, today=today) == 1
    assert ledger.unpaid_months(1, 1, today=today) == ["2024-02", "2024-03"]

    world.store.add_payment(student_id=1, group_id=1, month_for="2024-02", amount="500000")
    world.store.add_payment(student_id=1, group_id=1, month_for="2024-03", amount="500000")
    assert ledger.first_unpaid_cycle_index(1, 1, today=today) == 3
    assert ledger.unpaid_months(1, 1, today=today) == []
