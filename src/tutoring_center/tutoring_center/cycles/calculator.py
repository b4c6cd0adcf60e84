"""Payment cycle arithmetic.

A cycle is a fixed 30-day billing window anchored to a group's first lesson
date. Everything here is pure: callers pass the anchor and "today" and get
dates back, so the same inputs always produce the same windows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from ..common.datetime_utils import add_months, as_date, month_key
from ..core.constants import CYCLE_LENGTH_DAYS, REMINDER_OFFSET_DAYS

_CYCLE = timedelta(days=CYCLE_LENGTH_DAYS)


@dataclass(frozen=True)
class Cycle:
    """``start_date`` is inclusive; ``end_date`` is the next cycle's start."""

    index: int
    start_date: date
    end_date: date

    @property
    def is_first_cycle(self) -> bool:
        return self.index == 0

    @property
    def last_day(self) -> date:
        return self.end_date - timedelta(days=1)

    @property
    def billing_key(self) -> str:
        """Month key (YYYY-MM) payments for this cycle are recorded under.

        The first cycle bills the month of the first lesson and every later
        cycle the following month, so no two cycles share a key even when
        both start in the same calendar month.
        """
        anchor = self.start_date - self.index * _CYCLE
        return add_months(month_key(anchor), self.index)

    def contains(self, day: date) -> bool:
        return self.start_date <= day < self.end_date


@dataclass(frozen=True)
class PaymentDates:
    due_date: date
    reminder_date: date


def cycle_at(first_lesson_date: date | datetime, index: int) -> Cycle:
    start = as_date(first_lesson_date) + index * _CYCLE
    return Cycle(index=index, start_date=start, end_date=start + _CYCLE)


def compute_cycle(first_lesson_date: date | datetime, now: date | datetime) -> Cycle:
    """Cycle containing ``now``.

    Undefined for ``now`` before the first lesson; callers check that a lesson
    exists before asking.
    """
    days_since_first = (as_date(now) - as_date(first_lesson_date)).days
    return cycle_at(first_lesson_date, days_since_first // CYCLE_LENGTH_DAYS)


def previous_cycle(cycle: Cycle) -> Cycle:
    """Settlement window before ``cycle``: ``[start - 30d, start - 1d]``."""
    start = cycle.start_date - _CYCLE
    return Cycle(index=cycle.index - 1, start_date=start, end_date=cycle.start_date)


def iter_cycles(first_lesson_date: date | datetime, now: date | datetime):
    """Cycles from the first one up to and including the one containing ``now``."""
    current = compute_cycle(first_lesson_date, now)
    for index in range(current.index + 1):
        yield cycle_at(first_lesson_date, index)


def payment_dates(first_lesson_date: date | datetime, today: date | datetime) -> PaymentDates:
    """Due date and reminder date relative to ``today``.

    The due date is the cycle boundary a payment is owed by: today itself on
    day 0 of any cycle after the first, otherwise the end of the current
    cycle. The reminder falls 10 days into the current cycle.
    """
    cycle = compute_cycle(first_lesson_date, today)
    today = as_date(today)
    if cycle.index > 0 and today == cycle.start_date:
        due = cycle.start_date
    else:
        due = cycle.end_date
    return PaymentDates(due_date=due, reminder_date=cycle.start_date + timedelta(days=REMINDER_OFFSET_DAYS))
