# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Product(models.Model):
    """
    Represents a stock-tracked product.

    STOCK MODEL (IMPORTANT):
    - Product itself does NOT store stock
    - Stock lives in the Movement ledger
    - current_stock / stock_value are folded from movements on read

    LOT POLICY:
    - track_lots=True makes a lot number mandatory on every ENTRY and EXIT.
    - track_lots=False still accepts lot numbers (lots are then optional).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255, db_index=True)

    # Descriptive catalog fields (free text)
    dosage_form = models.CharField(max_length=100, blank=True, default="")
    strength = models.CharField(max_length=100, blank=True, default="")
    unit = models.CharField(max_length=50, blank=True, default="")
    therapeutic_class = models.CharField(max_length=150, blank=True, default="")

    # Reference price used for stock valuation
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    alert_threshold = models.PositiveIntegerField(
        default=0,
        help_text="Stock at or below this level (and above zero) is LOW. 0 disables low-stock alerts.",
    )

    track_lots = models.BooleanField(default=False)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="product_name_idx"),
            models.Index(fields=["is_active"], name="product_active_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.code})"

    def clean(self):
        if not (self.code or "").strip():
            raise ValidationError("code is required")

        if not (self.name or "").strip():
            raise ValidationError("name is required")

        if self.unit_price is None or Decimal(self.unit_price) < Decimal("0.00"):
            raise ValidationError("unit_price cannot be negative")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    # ---------------------------------------------------------
    # Derived stock (never stored)
    # ---------------------------------------------------------
    @property
    def current_stock(self) -> int:
        from products.services.stock_projection import current_stock

        return current_stock(self)

    @property
    def stock_value(self) -> Decimal:
        from products.services.stock_projection import stock_value

        return stock_value(self)
