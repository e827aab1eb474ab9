# products/services/lots.py

"""
======================================================
PATH: products/services/lots.py
======================================================
LOT TRACKER

A lot is NOT a table. It is the fold of a product's ENTRY / EXIT movements
that share a lot_number:

    remaining_quantity = sum(ENTRY qty) - sum(EXIT qty)
    expiry_date / unit_price = values of the latest ENTRY (canonical order)

RULES:
- ADJUSTMENT / OPENING / WRITE_OFF never carry a lot (model-validated), so
  they can never move a lot balance.
- Two receptions reusing the same lot number for the same product merge
  into ONE lot.
- available_lots() is FEFO: remaining > 0 only, expiry ascending, lots
  without expiry last, lot_number as the final tie-breaker.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import Decimal

from products.models import Movement
from products.services.exceptions import NotFoundError
from products.services.stock_projection import resolve_product


@dataclass(frozen=True)
class Lot:
    product_id: object
    lot_number: str
    remaining_quantity: int
    expiry_date: datetime.date | None
    unit_price: Decimal

    @property
    def is_available(self) -> bool:
        return self.remaining_quantity > 0


def fefo_key(lot: Lot):
    return (
        lot.expiry_date is None,
        lot.expiry_date or datetime.date.max,
        lot.lot_number,
    )


def fold_lots(movements: Iterable) -> dict[tuple, Lot]:
    """
    Fold movements (canonical order) into {(product_id, lot_number): Lot}.
    Movements without a lot number, or of a non-lot kind, are skipped.
    """
    lots: dict[tuple, Lot] = {}

    for m in movements:
        if not m.lot_number or m.kind not in Movement.LOT_KINDS:
            continue

        key = (m.product_id, m.lot_number)
        lot = lots.get(key) or Lot(
            product_id=m.product_id,
            lot_number=m.lot_number,
            remaining_quantity=0,
            expiry_date=None,
            unit_price=Decimal("0.00"),
        )

        if m.kind == Movement.Kind.ENTRY:
            lot = replace(
                lot,
                remaining_quantity=lot.remaining_quantity + int(m.quantity),
                expiry_date=m.expiry_date,
                unit_price=m.unit_price,
            )
        else:
            lot = replace(lot, remaining_quantity=lot.remaining_quantity - int(m.quantity))

        lots[key] = lot

    return lots


def _lot_movements(product_ids=None):
    qs = Movement.objects.filter(
        lot_number__isnull=False,
        kind__in=list(Movement.LOT_KINDS),
    )
    if product_ids is not None:
        qs = qs.filter(product_id__in=list(product_ids))
    return qs.order_by("product_id", *Movement.CANONICAL_ORDER)


def lots_for_product(product) -> list[Lot]:
    product = resolve_product(product)
    lots = fold_lots(_lot_movements([product.pk]))
    return sorted(lots.values(), key=lambda lot: lot.lot_number)


def all_lots(product_ids: Iterable | None = None) -> list[Lot]:
    return list(fold_lots(_lot_movements(product_ids)).values())


def available_lots(product) -> list[Lot]:
    return sorted(
        (lot for lot in lots_for_product(product) if lot.is_available),
        key=fefo_key,
    )


def get_lot(product, lot_number: str) -> Lot:
    product = resolve_product(product)
    lot_number = (lot_number or "").strip()
    for lot in lots_for_product(product):
        if lot.lot_number == lot_number:
            return lot
    raise NotFoundError(f"Lot '{lot_number}' not found for product {product.code}")


def lot_remaining(product, lot_number: str) -> int:
    return get_lot(product, lot_number).remaining_quantity
