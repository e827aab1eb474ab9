# periods/services/calendar.py

"""
PERIOD CALENDAR HELPERS

A period is a calendar month written "YYYY-MM" (the same key Movement.period
stores). These helpers are the only place that parses / formats it.
"""

from __future__ import annotations

import calendar
import re
from datetime import date

from products.services.exceptions import InventoryValidationError

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_period(value) -> tuple[int, int]:
    raw = (str(value) if value is not None else "").strip()
    match = _PERIOD_RE.match(raw)
    if not match:
        raise InventoryValidationError(f"Invalid period '{raw}'. Expected YYYY-MM.")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InventoryValidationError(f"Invalid period '{raw}'. Month must be 01-12.")
    return year, month


def normalize_period(value) -> str:
    year, month = parse_period(value)
    return f"{year:04d}-{month:02d}"


def period_of(d: date) -> str:
    return d.strftime("%Y-%m")


def first_day(period) -> date:
    year, month = parse_period(period)
    return date(year, month, 1)


def last_day(period) -> date:
    year, month = parse_period(period)
    return date(year, month, calendar.monthrange(year, month)[1])


def next_period(period) -> str:
    year, month = parse_period(period)
    if month == 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{month + 1:02d}"


def previous_period(period) -> str:
    year, month = parse_period(period)
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{month - 1:02d}"
