from __future__ import annotations

import pytest

from src.tutoring_center.tutoring_center.core.enums import GroupStatus, RemovalReason
from src.tutoring_center.tutoring_center.core.exceptions import ConflictError, NotFoundError, PaymentRequiredError
from src.tutoring_center.tutoring_center.enrollment import transitions
from src.tutoring_center.tutoring_center.enrollment.model import EnrollmentAction
from tests.fakes import RecordingNotifier, at, build_world, day


def _world(notifier=None):
    world = build_world(notifier=notifier)
    s = world.store
    s.add_teacher(1)
    for sid in (1, 2, 3):
        s.add_student(sid, parent_phone=f"+{sid}00")
    s.add_group(1, members=[1, 2])
    s.add_group(2, members=[3], status=GroupStatus.FROZEN)
    s.add_group(3, members=[], status=GroupStatus.COMPLETED)
    return world


def test_add_student_activates_group():
    world = _world()
    group = world.container.enrollment_service.add_student(3, 1)

    assert group.status == GroupStatus.ACTIVE
    assert world.store.members[3] == [1]
    assert world.store.events[-1].action == EnrollmentAction.ADDED


def test_add_existing_member_is_conflict():
    world = _world()
    with pytest.raises(ConflictError):
        world.container.enrollment_service.add_student(1, 1)
    assert world.store.members[1] == [1, 2]
    assert world.store.events == []


@pytest.mark.parametrize("group_id, student_id", [(99, 1), (1, 99)])
def test_unknown_group_or_student_is_not_found(group_id, student_id):
    world = _world()
    with pytest.raises(NotFoundError):
        world.container.enrollment_service.add_student(group_id, student_id)


def test_remove_freezes_then_completes():
    world = _world()
    enrollment = world.container.enrollment_service

    assert enrollment.remove_student(1, 1).status == GroupStatus.FROZEN
    assert enrollment.remove_student(1, 2).status == GroupStatus.COMPLETED
    assert world.store.members[1] == []

    with pytest.raises(ConflictError):
        enrollment.remove_student(1, 2)

    removed = [e for e in world.store.events if e.action == EnrollmentAction.REMOVED]
    assert [(e.student_id, e.reason) for e in removed] == [(1, RemovalReason.MANUAL), (2, RemovalReason.MANUAL)]


def test_removal_reason_selects_message():
    world = _world()
    enrollment = world.container.enrollment_service
    enrollment.remove_student(1, 1)
    enrollment.remove_student(1, 2, RemovalReason.NON_PAYMENT)

    assert "has been removed from group" in world.notifier.messages_to("+100")[0]
    assert "payment period" in world.notifier.messages_to("+200")[0]


def test_notification_failure_does_not_undo_removal():
    world = _world(notifier=RecordingNotifier(failing_recipients=["+100"]))
    group = world.container.enrollment_service.remove_student(1, 1)

    assert group.status == GroupStatus.FROZEN
    assert world.store.members[1] == [2]
    assert world.notifier.sent == []


def test_transfer_moves_student_without_notification():
    world = _world()
    target = world.container.enrollment_service.transfer_student(1, 2, 1)

    assert target.group_id == 2
    assert target.status == GroupStatus.ACTIVE
    assert world.store.members[1] == [2]
    assert world.store.members[2] == [3, 1]
    assert world.store.groups[1].status == GroupStatus.ACTIVE
    assert world.notifier.sent == []
    assert [e.action for e in world.store.events] == [EnrollmentAction.TRANSFERRED_OUT, EnrollmentAction.TRANSFERRED_IN]


def test_transfer_of_last_member_completes_source():
    world = _world()
    world.container.enrollment_service.transfer_student(2, 3, 3)

    assert world.store.groups[2].status == GroupStatus.COMPLETED
    assert world.store.groups[3].status == GroupStatus.ACTIVE


@pytest.mark.parametrize(
    "from_group, to_group, student_id",
    [
        (1, 1, 1),
        (2, 1, 1),
        (2, 1, 3),
    ],
    ids=["same-group", "not-in-source", "already-in-target"],
)
def test_transfer_conflicts(from_group, to_group, student_id):
    world = _world()
    world.store.members[1].append(3)
    world.store.events.clear()
    with pytest.raises(ConflictError):
        world.container.enrollment_service.transfer_student(from_group, to_group, student_id)
    assert world.store.events == []


def test_restore_requires_a_settled_payment():
    world = _world()
    with pytest.raises(PaymentRequiredError) as exc:
        world.container.enrollment_service.restore_student(3, 1)
    assert exc.value.student_id == 1
    assert world.store.members[3] == []


def test_restore_in_first_cycle_with_a_settled_payment():
    world = _world()
    world.store.add_lesson(3, at("2024-01-10T09:00"))
    world.store.add_payment(student_id=1, group_id=3, month_for="2024-01")

    group = world.container.enrollment_service.restore_student(3, 1, today=day("2024-01-20"))
    assert group.status == GroupStatus.ACTIVE
    assert world.store.members[3] == [1]
    assert world.store.events[-1].action == EnrollmentAction.RESTORED


def test_restore_later_needs_previous_cycle_settled():
    world = _world()
    enrollment = world.container.enrollment_service
    world.store.add_lesson(3, at("2024-01-10T09:00"))
    world.store.add_payment(student_id=1, group_id=3, month_for="2024-02")

    with pytest.raises(PaymentRequiredError):
        enrollment.restore_student(3, 1, today=day("2024-02-15"))

    world.store.add_payment(student_id=1, group_id=3, month_for="2024-01")
    enrollment.restore_student(3, 1, today=day("2024-02-15"))
    assert world.store.members[3] == [1]


def test_restore_existing_member_is_conflict():
    world = _world()
    world.store.add_payment(student_id=1, group_id=1, month_for="2024-01")
    with pytest.raises(ConflictError):
        world.container.enrollment_service.restore_student(1, 1)


def test_status_rules():
    assert transitions.status_after_join() == GroupStatus.ACTIVE
    assert transitions.status_after_removal(0) == GroupStatus.COMPLETED
    assert transitions.status_after_removal(3) == GroupStatus.FROZEN
    assert transitions.status_after_transfer_out(0, GroupStatus.FROZEN) == GroupStatus.COMPLETED
    assert transitions.status_after_transfer_out(2, GroupStatus.FROZEN) == GroupStatus.FROZEN


def test_guarded_removal_skips_a_settled_cycle():
    world = _world()
    world.store.add_lesson(1, at("2024-01-10T09:00"))
    world.store.add_payment(student_id=1, group_id=1, month_for="2024-01")
    enrollment = world.container.enrollment_service
    first_cycle = world.container.payment_ledger.current_cycle(1, today=day("2024-01-20"))

    assert enrollment.remove_student(1, 1, RemovalReason.NON_PAYMENT, unless_settled=first_cycle) is None
    assert world.store.members[1] == [1, 2]
    assert world.notifier.sent == []

    group = enrollment.remove_student(1, 2, RemovalReason.NON_PAYMENT, unless_settled=first_cycle)
    assert group.status == GroupStatus.FROZEN
    assert world.store.members[1] == [1]
