# reports/services/dashboard_service.py

"""
DASHBOARD AGGREGATION SERVICE

Ledger-driven KPI aggregation for one reporting period (YYYY-MM).

Contract:
- Read-only: no mutations, safe to call arbitrarily often.
- entries = ENTRY movements of the period, exits = EXIT movements of the
  period (value and quantity each); net flow = entries - exits.
- total_stock_value = sum of stock_value over ACTIVE products (current stock).
- top_products = active products with stock_value > 0, descending, top N.
- Alert counts come from the alert engine (same "now").
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db.models import Count, DecimalField, IntegerField, Sum, Value
from django.db.models.functions import Coalesce

from periods.services.calendar import normalize_period
from products.models import Movement, Product
from products.services.alerts import AlertSummary, alert_summary
from products.services.stock_projection import current_stock_map

TWOPLACES = Decimal("0.01")


def _q2(amount) -> Decimal:
    return Decimal(str(amount or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FlowTotals:
    value: Decimal
    quantity: int


@dataclass(frozen=True)
class ProductValuation:
    product_id: object
    product_code: str
    product_name: str
    current_stock: int
    unit_price: Decimal
    stock_value: Decimal


@dataclass(frozen=True)
class PeriodAggregate:
    period: str
    entries: FlowTotals
    exits: FlowTotals
    net_flow: FlowTotals
    total_stock_value: Decimal
    top_products: tuple
    active_product_count: int
    movement_count: int
    recent_movements: tuple
    alerts: AlertSummary


def _flow(period: str, kind: str) -> FlowTotals:
    totals = Movement.objects.filter(period=period, kind=kind).aggregate(
        value=Coalesce(
            Sum("total_value"),
            Value(Decimal("0.00")),
            output_field=DecimalField(max_digits=16, decimal_places=2),
        ),
        quantity=Coalesce(Sum("quantity"), Value(0), output_field=IntegerField()),
    )
    return FlowTotals(value=_q2(totals["value"]), quantity=int(totals["quantity"]))


def _valuations(products: list[Product]) -> list[ProductValuation]:
    stock = current_stock_map([p.pk for p in products])
    out = []
    for p in products:
        qty = stock.get(p.pk, 0)
        out.append(
            ProductValuation(
                product_id=p.pk,
                product_code=p.code,
                product_name=p.name,
                current_stock=qty,
                unit_price=_q2(p.unit_price),
                stock_value=_q2(Decimal(qty) * _q2(p.unit_price)),
            )
        )
    return out


def period_aggregate(
    period,
    *,
    top_n: int | None = None,
    now: datetime | date | None = None,
) -> PeriodAggregate:
    period = normalize_period(period)
    if top_n is None:
        top_n = int(getattr(settings, "DASHBOARD_TOP_PRODUCTS", 5))
    recent_n = int(getattr(settings, "DASHBOARD_RECENT_MOVEMENTS", 3))

    entries = _flow(period, Movement.Kind.ENTRY)
    exits = _flow(period, Movement.Kind.EXIT)

    active = list(Product.objects.filter(is_active=True).order_by("name"))
    valuations = _valuations(active)

    top = sorted(
        (v for v in valuations if v.stock_value > Decimal("0.00")),
        key=lambda v: (-v.stock_value, v.product_name),
    )[: max(int(top_n), 0)]

    period_qs = Movement.objects.filter(period=period)
    movement_count = period_qs.aggregate(n=Count("id"))["n"]
    recent = tuple(
        period_qs.select_related("product").order_by("-created_at", "-id")[:recent_n]
    )

    return PeriodAggregate(
        period=period,
        entries=entries,
        exits=exits,
        net_flow=FlowTotals(
            value=_q2(entries.value - exits.value),
            quantity=entries.quantity - exits.quantity,
        ),
        total_stock_value=_q2(sum((v.stock_value for v in valuations), Decimal("0.00"))),
        top_products=tuple(top),
        active_product_count=len(active),
        movement_count=movement_count,
        recent_movements=recent,
        alerts=alert_summary(now),
    )
