from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.tutoring_center.tutoring_center.common.datetime_utils import add_months
from src.tutoring_center.tutoring_center.cycles.calculator import (
    compute_cycle,
    cycle_at,
    iter_cycles,
    payment_dates,
    previous_cycle,
)
from src.tutoring_center.tutoring_center.scheduler.policy import PaymentAction, scheduled_payment_action

FIRST = date(2024, 1, 10)


def test_first_day_is_first_cycle():
    c = compute_cycle(FIRST, FIRST)
    assert c.index == 0
    assert c.is_first_cycle
    assert c.start_date == FIRST
    assert c.end_date == date(2024, 2, 9)


def test_scenario_mid_second_cycle():
    c = compute_cycle(datetime(2024, 1, 10, 9, 0), datetime(2024, 2, 15, 18, 30))
    assert c.index == 1
    assert not c.is_first_cycle
    assert c.start_date == date(2024, 2, 9)
    assert c.end_date == date(2024, 3, 10)
    assert c.last_day == date(2024, 3, 9)


def test_day_29_and_day_30_belong_to_different_cycles():
    assert compute_cycle(FIRST, FIRST + timedelta(days=29)).index == 0
    assert compute_cycle(FIRST, FIRST + timedelta(days=30)).index == 1


def test_cycles_are_contiguous_and_cover_every_day():
    for n in range(0, 400):
        today = FIRST + timedelta(days=n)
        c = compute_cycle(FIRST, today)
        assert c.contains(today)
        assert (c.end_date - c.start_date).days == 30
        assert c.end_date == cycle_at(FIRST, c.index + 1).start_date


def test_previous_cycle_window():
    c = compute_cycle(FIRST, date(2024, 2, 15))
    prev = previous_cycle(c)
    assert prev.start_date == FIRST
    assert prev.last_day == date(2024, 2, 8)
    assert prev.end_date == c.start_date
    assert prev == cycle_at(FIRST, 0)


def test_billing_keys_are_unique_even_when_two_cycles_start_in_one_month():
    first = date(2024, 1, 1)
    keys = [c.billing_key for c in iter_cycles(first, date(2024, 12, 31))]
    assert keys[:3] == ["2024-01", "2024-02", "2024-03"]
    assert len(keys) == len(set(keys))


def test_add_months_wraps_year():
    assert add_months("2024-11", 3) == "2025-02"
    assert add_months("2024-01", -1) == "2023-12"


@pytest.mark.parametrize(
    "today, due, reminder",
    [
        (date(2024, 1, 10), date(2024, 2, 9), date(2024, 1, 20)),
        (date(2024, 1, 25), date(2024, 2, 9), date(2024, 1, 20)),
        (date(2024, 2, 9), date(2024, 2, 9), date(2024, 2, 19)),
        (date(2024, 2, 10), date(2024, 3, 10), date(2024, 2, 19)),
    ],
)
def test_payment_dates(today, due, reminder):
    dates = payment_dates(FIRST, today)
    assert dates.due_date == due
    assert dates.reminder_date == reminder


@pytest.mark.parametrize(
    "today, expected",
    [
        (date(2024, 1, 5), PaymentAction.NONE),
        (date(2024, 1, 10), PaymentAction.NONE),
        (date(2024, 1, 20), PaymentAction.REMIND),
        (date(2024, 2, 9), PaymentAction.ENFORCE),
        (date(2024, 2, 19), PaymentAction.REMIND),
        (date(2024, 3, 10), PaymentAction.ENFORCE),
        (date(2024, 3, 11), PaymentAction.NONE),
    ],
)
def test_scheduled_payment_action(today, expected):
    assert scheduled_payment_action(FIRST, today) == expected


def test_no_lessons_means_no_action():
    assert scheduled_payment_action(None, date(2024, 2, 9)) == PaymentAction.NONE
