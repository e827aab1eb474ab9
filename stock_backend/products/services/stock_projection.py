# products/services/stock_projection.py

"""
======================================================
PATH: products/services/stock_projection.py
======================================================
STOCK PROJECTOR

Purpose:
- Fold a product's movements into current stock and as-of-date stock.
- Single place that applies the signed-effect table (Movement.KIND_TO_DIRECTION
  resolved onto Movement.direction): IN adds, OUT subtracts.

Rules:
- Movements are folded in Movement.CANONICAL_ORDER.
- stock_as_of(date) restricts by movement_date, NEVER by period tag
  (a movement dated in March can be keyed in after April has started).
- A carried-forward OPENING is a checkpoint: the running balance is reset
  to zero before its quantity is added. The source period of a committed
  transfer is frozen (periods.services.period_lock), so the checkpoint
  always equals the folded stock it replaces and nothing is counted twice.
- The fold is NOT commutative: balance_after values (and lot
  expiry/price refreshes, see products.services.lots) depend on order.

Nothing here writes. products.services.ledger owns every mutation.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError

from products.models import Movement, Product
from products.services.exceptions import InventoryValidationError, NotFoundError

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES)


# ---------------------------------------------------------
# Pure folds (no queries)
# ---------------------------------------------------------
def apply_movement(balance: int, movement) -> int:
    """Apply one movement to a running balance."""
    if movement.carried_forward:
        balance = 0
    return balance + movement.signed_quantity


def running_balances(movements: Iterable) -> list[tuple[object, int]]:
    """
    Return [(movement, balance_after), ...] for movements already in
    canonical order.
    """
    balance = 0
    out = []
    for m in movements:
        balance = apply_movement(balance, m)
        out.append((m, balance))
    return out


def fold_stock(movements: Iterable) -> int:
    balance = 0
    for m in movements:
        balance = apply_movement(balance, m)
    return balance


# ---------------------------------------------------------
# Query helpers
# ---------------------------------------------------------
def resolve_product(product) -> Product:
    """Accept a Product or a primary key."""
    if isinstance(product, Product):
        return product
    try:
        return Product.objects.get(pk=product)
    except (Product.DoesNotExist, ValueError, ValidationError) as exc:
        raise NotFoundError(f"Product not found: {product}") from exc


def ordered_movements(product, *, as_of: date | None = None):
    product = resolve_product(product)
    qs = Movement.objects.filter(product=product)
    if as_of is not None:
        qs = qs.filter(movement_date__lte=as_of)
    return qs.order_by(*Movement.CANONICAL_ORDER)


# ---------------------------------------------------------
# Public projector API
# ---------------------------------------------------------
def current_stock(product) -> int:
    return fold_stock(ordered_movements(product))


def stock_as_of(product, on_date: date) -> int:
    if on_date is None:
        raise InventoryValidationError("on_date is required")
    return fold_stock(ordered_movements(product, as_of=on_date))


def stock_value(product) -> Decimal:
    product = resolve_product(product)
    return _money(Decimal(current_stock(product)) * _money(product.unit_price))


def stock_map(product_ids: Iterable | None = None, *, as_of: date | None = None) -> dict:
    """
    Bulk projection: {product_id: stock} in one ordered scan.

    product_ids=None folds every product that has movements; products with
    no movements are simply absent (callers default to 0).
    """
    qs = Movement.objects.all()
    if product_ids is not None:
        qs = qs.filter(product_id__in=list(product_ids))
    if as_of is not None:
        qs = qs.filter(movement_date__lte=as_of)

    rows = qs.only(
        "id", "product", "direction", "quantity", "carried_forward",
        "movement_date", "created_at",
    ).order_by("product_id", *Movement.CANONICAL_ORDER)

    grouped = defaultdict(int)
    for m in rows.iterator():
        grouped[m.product_id] = apply_movement(grouped[m.product_id], m)
    return dict(grouped)


def current_stock_map(product_ids: Iterable | None = None) -> dict:
    return stock_map(product_ids)
