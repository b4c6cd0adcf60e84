from __future__ import annotations

import re
from datetime import date, datetime

from ..core.exceptions import ValidationError

_MONTH_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def parse_iso_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid datetime (ISO 8601): {value!r}")


def month_key(value: date) -> str:
    """Billing key (YYYY-MM) of a date."""
    return value.strftime("%Y-%m")


def add_months(key: str, months: int) -> str:
    year, month = (int(p) for p in key.split("-"))
    total = year * 12 + (month - 1) + int(months)
    return f"{total // 12:04d}-{total % 12 + 1:02d}"


def require_month_key(value: str) -> str:
    v = (value or "").strip()
    if not _MONTH_KEY_RE.match(v):
        raise ValidationError("month_for must be in YYYY-MM format")
    return v


def as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now()
