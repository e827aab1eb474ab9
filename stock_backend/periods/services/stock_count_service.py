# periods/services/stock_count_service.py

"""
======================================================
PATH: periods/services/stock_count_service.py
======================================================
MONTHLY STOCK COUNT SERVICE

Flow:
1) open_stock_count(period)
   - get-or-create the period's count
   - a NEW count gets one line per active product, theoretical quantity
     = ledger stock as of the last day of the period
2) record_physical_count(line_id, physical_quantity)
   - stores the shelf quantity, variance derived on save
3) validate_stock_count(count_id, user)
   - every line must be counted
   - DRAFT -> VALIDATED (frozen afterwards)

Counts never write movements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from periods.models import StockCount, StockCountLine
from periods.services.calendar import last_day, normalize_period
from products.models import Product
from products.services.exceptions import (
    ConflictError,
    InventoryValidationError,
    NotFoundError,
)
from products.services.stock_projection import stock_map

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockCountSummary:
    line_count: int
    counted_lines: int
    lines_with_variance: int
    total_variance: int

    @property
    def is_complete(self) -> bool:
        return self.line_count == self.counted_lines


def _get_count(count_id, *, for_update=False) -> StockCount:
    qs = StockCount.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=count_id)
    except (StockCount.DoesNotExist, ValueError, DjangoValidationError) as exc:
        raise NotFoundError(f"Stock count not found: {count_id}") from exc


@transaction.atomic
def open_stock_count(*, period, user=None) -> tuple[StockCount, bool]:
    """Return (count, created)."""
    period = normalize_period(period)

    existing = StockCount.objects.filter(period=period).first()
    if existing is not None:
        return existing, False

    try:
        with transaction.atomic():
            count = StockCount.objects.create(
                period=period,
                created_by=user if getattr(user, "is_authenticated", False) else None,
            )
    except IntegrityError:
        # lost a create race; the other request built the lines
        return StockCount.objects.get(period=period), False

    products = list(Product.objects.filter(is_active=True).order_by("name"))
    theoretical = stock_map([p.pk for p in products], as_of=last_day(period))

    StockCountLine.objects.bulk_create(
        [
            StockCountLine(
                stock_count=count,
                product=p,
                theoretical_quantity=theoretical.get(p.pk, 0),
            )
            for p in products
        ]
    )

    logger.info(
        "Stock count opened",
        extra={"stock_count_id": str(count.pk), "period": period, "lines": len(products)},
    )
    return count, True


@transaction.atomic
def record_physical_count(*, line_id, physical_quantity, count_id=None) -> StockCountLine:
    """Set the counted quantity of one line (optionally scoped to count_id)."""
    if physical_quantity is None or isinstance(physical_quantity, bool):
        raise InventoryValidationError("physical_quantity is required")
    try:
        qty = int(physical_quantity)
    except (TypeError, ValueError) as exc:
        raise InventoryValidationError("physical_quantity must be an integer") from exc
    if qty < 0:
        raise InventoryValidationError("physical_quantity cannot be negative")

    lookup = {"pk": line_id}
    if count_id is not None:
        lookup["stock_count_id"] = count_id

    try:
        line = (
            StockCountLine.objects.select_for_update()
            .select_related("stock_count", "product")
            .get(**lookup)
        )
    except (StockCountLine.DoesNotExist, ValueError, DjangoValidationError) as exc:
        raise NotFoundError(f"Stock count line not found: {line_id}") from exc

    if line.stock_count.is_validated:
        raise ConflictError(f"Stock count {line.stock_count.period} is already validated")

    line.physical_quantity = qty
    line.save(update_fields=["physical_quantity", "variance", "updated_at"])
    return line


@transaction.atomic
def validate_stock_count(*, count_id, user=None) -> StockCount:
    count = _get_count(count_id, for_update=True)

    if count.is_validated:
        raise ConflictError(f"Stock count {count.period} is already validated")

    missing = count.lines.filter(physical_quantity__isnull=True).count()
    if missing:
        raise InventoryValidationError(
            f"{missing} line(s) have no physical quantity; count every product before validating"
        )

    count.status = StockCount.Status.VALIDATED
    count.validated_by = user if getattr(user, "is_authenticated", False) else None
    count.validated_at = timezone.now()
    count.full_clean()
    count.save(update_fields=["status", "validated_by", "validated_at", "updated_at"])

    logger.info(
        "Stock count validated",
        extra={"stock_count_id": str(count.pk), "period": count.period},
    )
    return count


def summarize_stock_count(count: StockCount) -> StockCountSummary:
    lines = list(count.lines.all())
    counted = [line for line in lines if line.is_counted]
    return StockCountSummary(
        line_count=len(lines),
        counted_lines=len(counted),
        lines_with_variance=sum(1 for line in counted if line.variance),
        total_variance=sum(int(line.variance or 0) for line in counted),
    )
