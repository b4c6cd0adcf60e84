"""What the daily payment sweep should look at for one enrollment on one day."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from ..common.datetime_utils import as_date
from ..cycles.calculator import payment_dates


class PaymentAction(str, Enum):
    NONE = "none"
    REMIND = "remind"
    ENFORCE = "enforce"


def scheduled_payment_action(first_lesson_date: Optional[date | datetime], today: date | datetime) -> PaymentAction:
    """Decided from dates alone, so repeated runs on one day agree.

    ``ENFORCE`` means today is a cycle boundary and the cycle that just ended
    must be settled; ``REMIND`` means today is the reminder day of the
    current cycle. Whether money is actually owed is for the caller to check.
    """
    if first_lesson_date is None:
        return PaymentAction.NONE
    today = as_date(today)
    if today < as_date(first_lesson_date):
        return PaymentAction.NONE

    dates = payment_dates(first_lesson_date, today)
    if today == dates.due_date:
        return PaymentAction.ENFORCE
    if today == dates.reminder_date:
        return PaymentAction.REMIND
    return PaymentAction.NONE
