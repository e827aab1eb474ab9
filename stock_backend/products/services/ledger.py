# products/services/ledger.py

"""
======================================================
PATH: products/services/ledger.py
======================================================
MOVEMENT LEDGER SERVICE

Purpose:
- The ONLY writer of Movement rows: append / edit / delete, plus the
  carried-forward OPENING rows written on behalf of a period transfer.
- Every write re-projects the affected product(s) (balance_after chain,
  lot balances) inside the same transaction before returning.

Rules:
- One transaction per call (@transaction.atomic).
- Affected Product rows are locked with select_for_update() in a fixed
  (sorted pk) order, so two writers on the same product serialize and two
  writers on two products never deadlock.
- Outgoing quantities are re-checked AFTER the lock is taken:
    EXIT on a lot   -> lot must exist (NotFoundError) and hold enough
                       (InsufficientStockError)
    any append      -> running product balance never below zero
                       (InsufficientStockError)
    edit / delete   -> product balance and every lot balance never below
                       zero (NegativeStockError)
- Movement dates inside a carried-forward period are refused
  (PeriodLockedError). Carried-forward OPENING rows belong to their transfer
  and cannot be edited or deleted (ConflictError).
- Nothing is clamped: a rejected operation leaves no state change.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from periods.services.period_lock import assert_period_open
from products.models import Movement, Product
from products.services.exceptions import (
    ConflictError,
    InsufficientStockError,
    InventoryValidationError,
    NegativeStockError,
    NotFoundError,
)
from products.services.lots import fold_lots
from products.services.stock_projection import resolve_product, running_balances

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "product",
        "kind",
        "direction",
        "quantity",
        "movement_date",
        "lot_number",
        "expiry_date",
        "unit_price",
        "note",
    }
)

# Fields rewritten on edit (editable + derived)
_UPDATE_FIELDS = (
    "product",
    "kind",
    "direction",
    "quantity",
    "movement_date",
    "period",
    "lot_number",
    "expiry_date",
    "unit_price",
    "total_value",
    "note",
)


@dataclass(frozen=True)
class MovementResult:
    movement: Movement
    balance_after: int
    affected_product_ids: tuple


@dataclass(frozen=True)
class OpeningBalance:
    product_id: object
    quantity: int
    unit_price: Decimal


# ---------------------------------------------------------
# Input coercion
# ---------------------------------------------------------
def _to_positive_int(value, *, field_name="quantity") -> int:
    if value is None or value == "":
        raise InventoryValidationError(f"{field_name} is required")
    if isinstance(value, bool):
        raise InventoryValidationError(f"{field_name} must be an integer")
    try:
        qty = int(value)
    except (TypeError, ValueError) as exc:
        raise InventoryValidationError(f"{field_name} must be an integer") from exc
    if qty != value and not isinstance(value, str):
        raise InventoryValidationError(f"{field_name} must be a whole number")
    if qty <= 0:
        raise InventoryValidationError(f"{field_name} must be greater than zero")
    return qty


def _to_decimal(value, *, field_name="unit_price") -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InventoryValidationError(f"{field_name} must be a valid decimal") from exc
    if d < Decimal("0.00"):
        raise InventoryValidationError(f"{field_name} cannot be negative")
    return d.quantize(Decimal("0.01"))


def _to_date(value, *, field_name) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise InventoryValidationError(f"{field_name} must be YYYY-MM-DD")
    return parsed


def _to_kind(value) -> str:
    kind = (str(value or "")).strip().upper()
    if kind not in Movement.Kind.values:
        raise InventoryValidationError(
            f"kind must be one of {', '.join(Movement.Kind.values)}"
        )
    return kind


def _to_direction(value) -> str | None:
    if value is None or value == "":
        return None
    direction = str(value).strip().upper()
    if direction not in Movement.Direction.values:
        raise InventoryValidationError("direction must be IN or OUT")
    return direction


def _to_lot_number(value) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def _validation_error(exc: DjangoValidationError) -> InventoryValidationError:
    return InventoryValidationError("; ".join(exc.messages))


# ---------------------------------------------------------
# Locking + re-projection
# ---------------------------------------------------------
def lock_products(product_ids: Iterable) -> dict:
    """
    Lock Product rows (sorted pk order) for the rest of the transaction.
    Returns {pk: Product}. Raises NotFoundError on any unknown id.
    """
    try:
        ids = sorted({Product._meta.pk.to_python(pid) for pid in product_ids}, key=str)
    except DjangoValidationError as exc:
        raise NotFoundError(f"Product not found: {exc.messages[0]}") from exc
    locked = {
        p.pk: p
        for p in Product.objects.select_for_update().filter(pk__in=ids).order_by("pk")
    }
    missing = [str(pid) for pid in ids if pid not in locked]
    if missing:
        raise NotFoundError(f"Product not found: {', '.join(missing)}")
    return locked


def _get_movement(movement_id, *, for_update=False) -> Movement:
    qs = Movement.objects.select_related("product")
    if for_update:
        qs = qs.select_for_update(of=("self",))
    try:
        return qs.get(pk=movement_id)
    except (Movement.DoesNotExist, ValueError, DjangoValidationError) as exc:
        raise NotFoundError(f"Movement not found: {movement_id}") from exc


def rebuild_balances(product: Product, *, error_cls=NegativeStockError) -> int:
    """
    Re-fold a (locked) product's ledger, verify every running balance and
    every lot balance is >= 0, and rewrite the balance_after cache.
    Returns the product's current stock.
    """
    movements = list(
        Movement.objects.filter(product=product).order_by(*Movement.CANONICAL_ORDER)
    )

    changed = []
    balance = 0
    for m, balance in running_balances(movements):
        if balance < 0:
            raise error_cls(
                f"Stock for {product.code} would drop to {balance} on "
                f"{m.movement_date} ({m.kind} of {m.quantity})."
            )
        if m.balance_after != balance:
            m.balance_after = balance
            changed.append(m)

    for lot in fold_lots(movements).values():
        if lot.remaining_quantity < 0:
            raise error_cls(
                f"Lot '{lot.lot_number}' of {product.code} would drop to "
                f"{lot.remaining_quantity}."
            )

    if changed:
        Movement.objects.bulk_update(changed, ["balance_after"])

    return balance


def _check_lot_exit(movement: Movement, *, exclude_pk=None) -> None:
    """EXIT against a lot: lot must exist and hold enough, at commit time."""
    if movement.kind != Movement.Kind.EXIT or not movement.lot_number:
        return

    qs = Movement.objects.filter(
        product_id=movement.product_id,
        lot_number=movement.lot_number,
        kind__in=list(Movement.LOT_KINDS),
    )
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)

    lot = fold_lots(qs.order_by(*Movement.CANONICAL_ORDER)).get(
        (movement.product_id, movement.lot_number)
    )
    if lot is None:
        raise NotFoundError(
            f"Lot '{movement.lot_number}' not found for product {movement.product.code}"
        )
    if movement.quantity > lot.remaining_quantity:
        raise InsufficientStockError(
            f"Lot '{lot.lot_number}' has {lot.remaining_quantity} remaining; "
            f"requested {movement.quantity}."
        )


# ---------------------------------------------------------
# APPEND
# ---------------------------------------------------------
@transaction.atomic
def append_movement(
    *,
    product,
    kind,
    quantity,
    movement_date=None,
    direction=None,
    lot_number=None,
    expiry_date=None,
    unit_price=None,
    note: str = "",
    user=None,
) -> MovementResult:
    """
    Append one movement and re-project its product.

    unit_price defaults to the lot's receipt price for a lot EXIT, otherwise
    to the product's reference price.
    """
    kind = _to_kind(kind)
    qty = _to_positive_int(quantity)
    direction = _to_direction(direction)
    lot_number = _to_lot_number(lot_number)
    expiry = _to_date(expiry_date, field_name="expiry_date")
    price = _to_decimal(unit_price)
    on_date = _to_date(movement_date, field_name="movement_date") or timezone.localdate()

    if kind == Movement.Kind.ADJUSTMENT and direction is None:
        raise InventoryValidationError("ADJUSTMENT requires direction IN or OUT")

    product_pk = resolve_product(product).pk
    locked = lock_products([product_pk])[product_pk]

    if not locked.is_active:
        raise InventoryValidationError(f"Product {locked.code} is inactive")

    assert_period_open(movement_date=on_date)

    movement = Movement(
        product=locked,
        kind=kind,
        direction=direction or "",
        quantity=qty,
        movement_date=on_date,
        lot_number=lot_number,
        expiry_date=expiry,
        unit_price=price,
        note=(note or "").strip(),
        performed_by=user if getattr(user, "is_authenticated", False) else None,
    )

    _check_lot_exit(movement)

    if movement.unit_price is None:
        movement.unit_price = _default_unit_price(movement)

    try:
        movement.save()
    except DjangoValidationError as exc:
        raise _validation_error(exc) from exc

    try:
        rebuild_balances(locked, error_cls=InsufficientStockError)
    except InsufficientStockError:
        logger.warning(
            "Movement rejected: insufficient stock",
            extra={"product_id": str(locked.pk), "kind": kind, "quantity": qty},
        )
        raise

    movement.refresh_from_db(fields=["balance_after"])

    logger.info(
        "Stock movement appended",
        extra={
            "movement_id": str(movement.pk),
            "product_id": str(locked.pk),
            "kind": kind,
            "quantity": qty,
            "balance_after": movement.balance_after,
        },
    )

    return MovementResult(
        movement=movement,
        balance_after=movement.balance_after,
        affected_product_ids=(locked.pk,),
    )


def _default_unit_price(movement: Movement) -> Decimal:
    if movement.kind == Movement.Kind.EXIT and movement.lot_number:
        last_entry_price = (
            Movement.objects.filter(
                product_id=movement.product_id,
                lot_number=movement.lot_number,
                kind=Movement.Kind.ENTRY,
            )
            .order_by(*Movement.CANONICAL_ORDER)
            .values_list("unit_price", flat=True)
            .last()
        )
        if last_entry_price is not None:
            return last_entry_price
    return movement.product.unit_price


# ---------------------------------------------------------
# EDIT
# ---------------------------------------------------------
def _coerce_changes(changes: dict) -> dict:
    unknown = sorted(set(changes) - EDITABLE_FIELDS)
    if unknown:
        raise InventoryValidationError(f"Fields cannot be edited: {', '.join(unknown)}")

    out = {}
    for field, value in changes.items():
        if field == "kind":
            out[field] = _to_kind(value)
        elif field == "direction":
            out[field] = _to_direction(value)
        elif field == "quantity":
            out[field] = _to_positive_int(value)
        elif field == "movement_date":
            d = _to_date(value, field_name="movement_date")
            if d is None:
                raise InventoryValidationError("movement_date cannot be empty")
            out[field] = d
        elif field == "expiry_date":
            out[field] = _to_date(value, field_name="expiry_date")
        elif field == "lot_number":
            out[field] = _to_lot_number(value)
        elif field == "unit_price":
            price = _to_decimal(value)
            if price is None:
                raise InventoryValidationError("unit_price cannot be empty")
            out[field] = price
        elif field == "note":
            out[field] = (value or "").strip()
        else:
            out[field] = value
    return out


@transaction.atomic
def edit_movement(*, movement_id, changes: dict, user=None) -> MovementResult:
    """
    Apply `changes` to one movement and re-project every affected product
    (both the old and the new product when the product changes).
    """
    if not changes:
        raise InventoryValidationError("No changes supplied")

    coerced = _coerce_changes(changes)

    current = _get_movement(movement_id)
    if current.carried_forward:
        raise ConflictError(
            "Carried-forward openings belong to their period transfer and cannot be edited"
        )

    new_product_pk = current.product_id
    if "product" in coerced:
        new_product_pk = resolve_product(coerced.pop("product")).pk

    locked = lock_products({current.product_id, new_product_pk})
    movement = _get_movement(movement_id, for_update=True)
    if movement.product_id != current.product_id:
        raise ConflictError("Movement was changed concurrently; reload and retry")
    if new_product_pk != movement.product_id and not locked[new_product_pk].is_active:
        raise InventoryValidationError(f"Product {locked[new_product_pk].code} is inactive")

    assert_period_open(movement_date=movement.movement_date)

    candidate = Movement(
        **{f.attname: getattr(movement, f.attname) for f in Movement._meta.concrete_fields}
    )
    candidate._state.adding = False
    candidate.product = locked[new_product_pk]
    for field, value in coerced.items():
        setattr(candidate, field, value)

    if candidate.kind == Movement.Kind.ADJUSTMENT and "direction" in coerced:
        if coerced["direction"] is None:
            raise InventoryValidationError("ADJUSTMENT requires direction IN or OUT")

    assert_period_open(movement_date=candidate.movement_date)

    candidate.derive_fields()
    try:
        candidate.full_clean()
    except DjangoValidationError as exc:
        raise _validation_error(exc) from exc

    _check_lot_exit(candidate, exclude_pk=movement.pk)

    Movement.objects.filter(pk=movement.pk).update(
        **{field: getattr(candidate, field) for field in _UPDATE_FIELDS}
    )

    balance = 0
    for pk in sorted(locked, key=str):
        try:
            stock = rebuild_balances(locked[pk], error_cls=NegativeStockError)
        except NegativeStockError:
            logger.warning(
                "Movement edit rejected: negative stock",
                extra={"movement_id": str(movement.pk), "product_id": str(pk)},
            )
            raise
        if pk == new_product_pk:
            balance = stock

    updated = _get_movement(movement.pk)

    logger.info(
        "Stock movement edited",
        extra={
            "movement_id": str(updated.pk),
            "fields": sorted(changes),
            "user_id": getattr(user, "pk", None),
        },
    )

    return MovementResult(
        movement=updated,
        balance_after=balance,
        affected_product_ids=tuple(sorted(locked, key=str)),
    )


# ---------------------------------------------------------
# DELETE
# ---------------------------------------------------------
@transaction.atomic
def delete_movement(*, movement_id, user=None) -> MovementResult:
    """
    Delete one movement and re-project its product.

    balance_after on the result is the product's stock AFTER the delete.
    """
    current = _get_movement(movement_id)
    if current.carried_forward:
        raise ConflictError(
            "Carried-forward openings belong to their period transfer and cannot be deleted"
        )

    locked = lock_products([current.product_id])[current.product_id]
    movement = _get_movement(movement_id, for_update=True)
    if movement.product_id != current.product_id:
        raise ConflictError("Movement was changed concurrently; reload and retry")

    assert_period_open(movement_date=movement.movement_date)

    Movement.objects.filter(pk=movement.pk).delete()

    try:
        stock = rebuild_balances(locked, error_cls=NegativeStockError)
    except NegativeStockError:
        logger.warning(
            "Movement delete rejected: negative stock",
            extra={"movement_id": str(movement.pk), "product_id": str(locked.pk)},
        )
        raise

    logger.info(
        "Stock movement deleted",
        extra={
            "movement_id": str(movement.pk),
            "product_id": str(locked.pk),
            "kind": movement.kind,
            "quantity": movement.quantity,
            "user_id": getattr(user, "pk", None),
        },
    )

    return MovementResult(
        movement=movement,
        balance_after=stock,
        affected_product_ids=(locked.pk,),
    )


# ---------------------------------------------------------
# CARRIED-FORWARD OPENINGS (period transfer)
# ---------------------------------------------------------
@transaction.atomic
def append_opening_balances(
    *,
    balances: Iterable[OpeningBalance],
    movement_date: date,
    source_period: str,
    note: str = "",
    user=None,
) -> list[Movement]:
    """
    Write one carried-forward OPENING per balance, dated movement_date.

    Each opening is a checkpoint in the stock fold (see
    products.services.stock_projection). Called by the period transfer
    service inside its own transaction.
    """
    balances = [b for b in balances if int(b.quantity) > 0]
    if not balances:
        return []

    assert_period_open(movement_date=movement_date)

    to_pk = Product._meta.pk.to_python
    locked = lock_products(b.product_id for b in balances)
    actor = user if getattr(user, "is_authenticated", False) else None

    movements = []
    for b in balances:
        movement = Movement(
            product=locked[to_pk(b.product_id)],
            kind=Movement.Kind.OPENING,
            quantity=int(b.quantity),
            movement_date=movement_date,
            unit_price=b.unit_price,
            note=note,
            carried_forward=True,
            source_period=source_period,
            performed_by=actor,
        )
        try:
            movement.save()
        except DjangoValidationError as exc:
            raise _validation_error(exc) from exc
        movements.append(movement)

    for pk in sorted(locked, key=str):
        rebuild_balances(locked[pk], error_cls=InsufficientStockError)

    for movement in movements:
        movement.refresh_from_db(fields=["balance_after"])

    return movements
