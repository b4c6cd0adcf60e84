from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import GroupStatus, RemovalReason
from ..enrollment.model import Enrollment, EnrollmentAction, EnrollmentEvent
from .model import Group


class GroupRepository(Protocol):
    """Group aggregate: group row, roster and enrollment audit trail.

    Every roster mutation writes the new group status and an audit event in
    the same transaction.
    """

    def get_by_id(self, group_id: int) -> Optional[Group]:
        raise NotImplementedError

    def list_member_ids(self, group_id: int) -> Sequence[int]:
        raise NotImplementedError

    def list_enrollments(self) -> Sequence[Enrollment]:
        """Every (student, group) pair currently on a roster."""

        raise NotImplementedError

    def add_member(
        self,
        *,
        group_id: int,
        student_id: int,
        status: GroupStatus,
        action: EnrollmentAction = EnrollmentAction.ADDED,
    ) -> None:
        raise NotImplementedError

    def remove_member(
        self,
        *,
        group_id: int,
        student_id: int,
        status: GroupStatus,
        reason: RemovalReason,
    ) -> None:
        raise NotImplementedError

    def transfer_member(
        self,
        *,
        from_group_id: int,
        to_group_id: int,
        student_id: int,
        from_status: GroupStatus,
        to_status: GroupStatus,
    ) -> None:
        raise NotImplementedError

    def list_events(self, *, group_id: int, student_id: Optional[int] = None) -> Sequence[EnrollmentEvent]:
        raise NotImplementedError
