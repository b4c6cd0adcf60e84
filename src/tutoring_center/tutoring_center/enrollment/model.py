from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..core.enums import RemovalReason


class EnrollmentAction(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    RESTORED = "restored"
    TRANSFERRED_OUT = "transferred_out"
    TRANSFERRED_IN = "transferred_in"


@dataclass(frozen=True)
class Enrollment:
    """One student on one group's roster."""

    student_id: int
    group_id: int


@dataclass(frozen=True)
class EnrollmentEvent:
    """Audit row written in the same transaction as the roster change."""

    event_id: int
    group_id: int
    student_id: int
    action: EnrollmentAction
    created_at: datetime
    reason: Optional[RemovalReason] = None
