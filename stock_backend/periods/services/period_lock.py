# periods/services/period_lock.py

"""
======================================================
PATH: periods/services/period_lock.py
======================================================
PERIOD LOCK GUARD

Purpose:
- Freeze the movements that fed a committed period transfer.
- A transfer src -> dst snapshots stock as of last_day(src) into OPENING
  movements. Any later write dated on or before that day would make the
  snapshot wrong, so it is refused.

Design:
- Thin, reusable guard
- Called by products.services.ledger (every append / edit / delete)
  and by the transfer service (destination must still be open)
"""

from __future__ import annotations

from datetime import date, datetime

from django.utils import timezone

from periods.models import StockTransfer
from periods.services.calendar import last_day
from products.services.exceptions import PeriodLockedError


def _to_date(value: datetime | date | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            value = timezone.make_aware(value, timezone.get_current_timezone())
        return timezone.localdate(value)
    return value


def locked_through() -> date | None:
    """Last locked day (inclusive), or None when nothing was transferred yet."""
    latest_source = (
        StockTransfer.objects.order_by("-source_period")
        .values_list("source_period", flat=True)
        .first()
    )
    if not latest_source:
        return None
    return last_day(latest_source)


def is_date_locked(value: datetime | date | None) -> bool:
    d = _to_date(value)
    if d is None:
        return False
    boundary = locked_through()
    return boundary is not None and d <= boundary


def assert_period_open(*, movement_date: datetime | date | None) -> None:
    """
    Assert that movement_date is NOT inside a carried-forward period.

    Usage:
        assert_period_open(movement_date=movement.movement_date)

    Raises:
        PeriodLockedError if the date is locked.
    """
    d = _to_date(movement_date)
    if d is None:
        return

    boundary = locked_through()
    if boundary is not None and d <= boundary:
        raise PeriodLockedError(
            f"Blocked: {d} is on or before {boundary}, which was already "
            f"carried forward by a stock transfer."
        )
