# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe ledger):

- Products are managed normally (no stock column to edit).
- Movements are VIEW-ONLY here. Every ledger write must go through
  products.services.ledger so balances are re-projected under lock;
  the admin has no add / change / delete for them.
"""

from __future__ import annotations

from django.contrib import admin
from django.utils import timezone

from products.models import Movement, Product
from products.services.alerts import ExpiryBucket, classify_expiry


# =====================================================
# PRODUCT
# =====================================================

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "therapeutic_class",
        "unit_price",
        "alert_threshold",
        "stock",
        "track_lots",
        "is_active",
    )
    list_filter = ("is_active", "track_lots", "therapeutic_class")
    search_fields = ("code", "name")
    ordering = ("name",)
    readonly_fields = ("created_at", "updated_at")

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Stock")
    def stock(self, obj):
        return obj.current_stock


# =====================================================
# MOVEMENT (VIEW-ONLY LEDGER)
# =====================================================

@admin.register(Movement)
class MovementAdmin(admin.ModelAdmin):
    list_display = (
        "movement_date",
        "product",
        "kind",
        "direction",
        "quantity",
        "balance_after",
        "lot_number",
        "expiry_status",
        "carried_forward",
        "performed_by",
    )
    list_filter = ("kind", "direction", "period", "carried_forward")
    search_fields = ("product__name", "product__code", "lot_number", "note")
    ordering = ("-movement_date", "-created_at")
    list_select_related = ("product", "performed_by")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Expiry")
    def expiry_status(self, obj):
        if obj.expiry_date is None:
            return "-"

        bucket = classify_expiry((obj.expiry_date - timezone.localdate()).days)
        if bucket == ExpiryBucket.EXPIRED:
            return "❌ EXPIRED"
        if bucket == ExpiryBucket.OK:
            return "OK"
        return "⚠ SOON"
