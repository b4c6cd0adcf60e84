"""Pure roster transition rules (no I/O)."""

from __future__ import annotations

from typing import Collection

from ..core.enums import GroupStatus
from ..core.exceptions import ConflictError


def check_can_join(roster: Collection[int], student_id: int) -> None:
    if student_id in roster:
        raise ConflictError(f"Student {student_id} is already in the group")


def check_can_leave(roster: Collection[int], student_id: int) -> None:
    if student_id not in roster:
        raise ConflictError(f"Student {student_id} is not in the group")


def check_transfer(from_group_id: int, to_group_id: int) -> None:
    if int(from_group_id) == int(to_group_id):
        raise ConflictError("Source and target groups are the same")


def status_after_join() -> GroupStatus:
    return GroupStatus.ACTIVE


def status_after_removal(remaining: int) -> GroupStatus:
    """An emptied group is completed; otherwise a removal freezes it."""
    return GroupStatus.COMPLETED if remaining == 0 else GroupStatus.FROZEN


def status_after_transfer_out(remaining: int, current: GroupStatus) -> GroupStatus:
    return GroupStatus.COMPLETED if remaining == 0 else current
