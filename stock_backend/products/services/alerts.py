# products/services/alerts.py

"""
======================================================
PATH: products/services/alerts.py
======================================================
EXPIRY & STOCK ALERT ENGINE

Expiry buckets (lots with remaining > 0 AND an expiry date):
    days < 0                    -> EXPIRED
    0 <= days <= SOON (7)       -> EXPIRING_7
    SOON < days <= WARNING (30) -> EXPIRING_30
    days > WARNING              -> OK
Every eligible lot lands in exactly one bucket.

Stock status (active products only, mutually exclusive):
    stock == 0                              -> OUT_OF_STOCK
    0 < stock <= threshold, threshold > 0   -> LOW_STOCK
    otherwise                               -> OK

Lists are complete: truncation is a presentation concern.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime

from django.conf import settings
from django.utils import timezone

from products.models import Product
from products.services.lots import Lot, all_lots, fefo_key
from products.services.stock_projection import current_stock_map


class ExpiryBucket(str, enum.Enum):
    EXPIRED = "expired"
    EXPIRING_7 = "expiring7"
    EXPIRING_30 = "expiring30"
    OK = "ok"


class StockStatus(str, enum.Enum):
    OUT_OF_STOCK = "outOfStock"
    LOW_STOCK = "lowStock"
    OK = "ok"


def _soon_days() -> int:
    return int(getattr(settings, "INVENTORY_EXPIRY_SOON_DAYS", 7))


def _warning_days() -> int:
    return int(getattr(settings, "INVENTORY_EXPIRY_WARNING_DAYS", 30))


def _today(now: datetime | date | None) -> date:
    if now is None:
        return timezone.localdate()
    if isinstance(now, datetime):
        if timezone.is_naive(now):
            return now.date()
        return timezone.localdate(now)
    return now


def classify_expiry(days_until_expiry: int) -> ExpiryBucket:
    if days_until_expiry < 0:
        return ExpiryBucket.EXPIRED
    if days_until_expiry <= _soon_days():
        return ExpiryBucket.EXPIRING_7
    if days_until_expiry <= _warning_days():
        return ExpiryBucket.EXPIRING_30
    return ExpiryBucket.OK


def classify_stock(stock: int, alert_threshold: int) -> StockStatus:
    if stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if alert_threshold and alert_threshold > 0 and stock <= alert_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.OK


@dataclass(frozen=True)
class LotAlert:
    lot: Lot
    product_code: str
    product_name: str
    days_until_expiry: int
    bucket: ExpiryBucket


@dataclass(frozen=True)
class ProductStockAlert:
    product_id: object
    product_code: str
    product_name: str
    current_stock: int
    alert_threshold: int
    status: StockStatus


@dataclass(frozen=True)
class AlertSummary:
    today: date
    lots: dict = field(default_factory=dict)
    products: dict = field(default_factory=dict)
    # product -> bucket of its earliest-expiring available lot
    products_by_expiry: dict = field(default_factory=dict)

    @property
    def lot_counts(self) -> dict:
        return {bucket: len(self.lots.get(bucket, [])) for bucket in ExpiryBucket}

    @property
    def stock_counts(self) -> dict:
        return {status: len(self.products.get(status, [])) for status in StockStatus}

    @property
    def eligible_lot_count(self) -> int:
        return sum(self.lot_counts.values())


def expiry_alerts(today: date, *, products: dict | None = None) -> dict:
    """Bucket every available lot that has an expiry date."""
    if products is None:
        products = {p.pk: p for p in Product.objects.all()}

    buckets = {bucket: [] for bucket in ExpiryBucket}
    eligible = sorted(
        (lot for lot in all_lots() if lot.is_available and lot.expiry_date is not None),
        key=fefo_key,
    )
    for lot in eligible:
        product = products.get(lot.product_id)
        days = (lot.expiry_date - today).days
        bucket = classify_expiry(days)
        buckets[bucket].append(
            LotAlert(
                lot=lot,
                product_code=getattr(product, "code", ""),
                product_name=getattr(product, "name", ""),
                days_until_expiry=days,
                bucket=bucket,
            )
        )
    return buckets


def stock_alerts(products: list[Product]) -> dict:
    stock = current_stock_map([p.pk for p in products])
    out = {status: [] for status in StockStatus}
    for p in products:
        qty = stock.get(p.pk, 0)
        status = classify_stock(qty, p.alert_threshold)
        out[status].append(
            ProductStockAlert(
                product_id=p.pk,
                product_code=p.code,
                product_name=p.name,
                current_stock=qty,
                alert_threshold=p.alert_threshold,
                status=status,
            )
        )
    return out


def alert_summary(now: datetime | date | None = None) -> AlertSummary:
    today = _today(now)

    all_products = {p.pk: p for p in Product.objects.all()}
    active = sorted(
        (p for p in all_products.values() if p.is_active),
        key=lambda p: p.name,
    )

    lots = expiry_alerts(today, products=all_products)

    # first alert per product in FEFO order is its earliest lot
    by_expiry = {bucket: [] for bucket in ExpiryBucket}
    seen = set()
    for alert in sorted(
        (a for bucket_alerts in lots.values() for a in bucket_alerts),
        key=lambda a: fefo_key(a.lot),
    ):
        if alert.lot.product_id in seen:
            continue
        seen.add(alert.lot.product_id)
        by_expiry[alert.bucket].append(alert)

    return AlertSummary(
        today=today,
        lots=lots,
        products=stock_alerts(active),
        products_by_expiry=by_expiry,
    )
