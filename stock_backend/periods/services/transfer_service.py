# periods/services/transfer_service.py

"""
======================================================
PATH: periods/services/transfer_service.py
======================================================
PERIOD TRANSFER SERVICE (STOCK CARRY-FORWARD)

Purpose:
- Snapshot every active product's stock as of the last day of a month and
  commit it as OPENING movements on the first day of the next month.

GUARANTEES:
- Exactly once per (source_period, destination_period): the StockTransfer
  row is inserted FIRST, inside a savepoint; the database UniqueConstraint
  decides concurrent double-submits (IntegrityError -> DuplicateTransferError).
  The pre-check only produces a friendlier error earlier.
- All-or-nothing: the transfer row and every OPENING movement commit in one
  transaction. No partial transfer is ever visible.
- After commit the source period is locked (periods.services.period_lock).

STALENESS CAVEAT:
- A caller may pass the TransferPreview it showed to the user. It is reused
  as-is: if movements dated in the source period were committed between the
  preview and the transfer, the openings follow the preview, not the ledger.
  Callers that need exact figures should omit `preview`; the service then
  recomputes the candidates under the product locks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db import IntegrityError, transaction

from periods.models import StockTransfer
from periods.services.calendar import first_day, last_day, next_period, normalize_period
from periods.services.period_lock import is_date_locked
from products.models import Movement, Product
from products.services.exceptions import (
    DuplicateTransferError,
    InventoryValidationError,
    PeriodLockedError,
)
from products.services.ledger import OpeningBalance, append_opening_balances, lock_products
from products.services.stock_projection import stock_map

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferCandidate:
    product_id: object
    product_code: str
    product_name: str
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class TransferPreview:
    source_period: str
    destination_period: str
    as_of: date
    candidates: tuple

    @property
    def product_count(self) -> int:
        return len(self.candidates)

    @property
    def total_quantity(self) -> int:
        return sum(c.quantity for c in self.candidates)


@dataclass(frozen=True)
class TransferResult:
    transfer: StockTransfer
    movements: tuple
    used_caller_preview: bool


def _candidates(source_period: str) -> tuple:
    as_of = last_day(source_period)
    products = list(Product.objects.filter(is_active=True).order_by("code"))
    stock = stock_map([p.pk for p in products], as_of=as_of)

    return tuple(
        TransferCandidate(
            product_id=p.pk,
            product_code=p.code,
            product_name=p.name,
            quantity=stock.get(p.pk, 0),
            unit_price=p.unit_price,
        )
        for p in products
        if stock.get(p.pk, 0) > 0
    )


def preview_transfer(source_period) -> TransferPreview:
    """
    Pure read: (product, quantity) pairs with stock > 0 on the last day of
    source_period, for active products.
    """
    source_period = normalize_period(source_period)
    return TransferPreview(
        source_period=source_period,
        destination_period=next_period(source_period),
        as_of=last_day(source_period),
        candidates=_candidates(source_period),
    )


def transfer_exists(source_period, destination_period) -> bool:
    return StockTransfer.objects.filter(
        source_period=normalize_period(source_period),
        destination_period=normalize_period(destination_period),
    ).exists()


@transaction.atomic
def transfer_stock(
    *,
    source_period,
    destination_period,
    user=None,
    preview: TransferPreview | None = None,
) -> TransferResult:
    """
    Commit the carry-forward source_period -> destination_period.

    Terminal states:
    - success: one StockTransfer + N OPENING movements
    - failure: typed error, no state change (re-invoke from scratch)
    """
    src = normalize_period(source_period)
    dst = normalize_period(destination_period)

    if dst != next_period(src):
        raise InventoryValidationError(
            f"destination_period must be the month after {src} ({next_period(src)}), got {dst}"
        )

    if preview is not None and preview.source_period != src:
        raise InventoryValidationError(
            f"Preview was computed for {preview.source_period}, not {src}"
        )

    # Friendly pre-check (the unique constraint below is the real guard)
    if transfer_exists(src, dst):
        logger.warning(
            "Duplicate stock transfer rejected",
            extra={"source_period": src, "destination_period": dst},
        )
        raise DuplicateTransferError(f"Stock for {src} was already transferred to {dst}")

    opening_date = first_day(dst)
    if is_date_locked(opening_date):
        raise PeriodLockedError(
            f"{dst} is already carried forward; transfer {src} -> {dst} would rewrite it"
        )

    if preview is None:
        # lock every active product so the snapshot cannot move under us
        lock_products(Product.objects.filter(is_active=True).values_list("pk", flat=True))
        candidates = _candidates(src)
    else:
        candidates = tuple(preview.candidates)

    try:
        with transaction.atomic():
            transfer = StockTransfer.objects.create(
                source_period=src,
                destination_period=dst,
                product_count=len(candidates),
                created_by=user if getattr(user, "is_authenticated", False) else None,
            )
    except IntegrityError as exc:
        logger.warning(
            "Concurrent duplicate stock transfer rejected",
            extra={"source_period": src, "destination_period": dst},
        )
        raise DuplicateTransferError(
            f"Stock for {src} was already transferred to {dst}"
        ) from exc

    movements = append_opening_balances(
        balances=[
            OpeningBalance(
                product_id=c.product_id,
                quantity=c.quantity,
                unit_price=c.unit_price,
            )
            for c in candidates
        ],
        movement_date=opening_date,
        source_period=src,
        note=f"Carried forward from {src}",
        user=user,
    )

    logger.info(
        "Stock transfer committed",
        extra={
            "transfer_id": str(transfer.pk),
            "source_period": src,
            "destination_period": dst,
            "product_count": len(movements),
        },
    )

    return TransferResult(
        transfer=transfer,
        movements=tuple(movements),
        used_caller_preview=preview is not None,
    )


def openings_for_transfer(transfer: StockTransfer):
    return Movement.objects.filter(
        kind=Movement.Kind.OPENING,
        carried_forward=True,
        source_period=transfer.source_period,
        period=transfer.destination_period,
    ).select_related("product")
