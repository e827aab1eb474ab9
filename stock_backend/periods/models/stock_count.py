# periods/models/stock_count.py

"""
======================================================
PATH: periods/models/stock_count.py
======================================================
MONTHLY PHYSICAL STOCK COUNT

StockCount      -> one per period (DRAFT -> VALIDATED)
StockCountLine  -> one per product counted:
                   theoretical_quantity (ledger stock at month end)
                   physical_quantity    (what was found on the shelf)
                   variance             = physical - theoretical

RULES:
- A VALIDATED count is frozen: no line can change afterwards.
- variance is derived on save, never accepted from input.
- A count never writes movements; variances are informational.
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from products.models import Product


class StockCount(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        VALIDATED = "VALIDATED", "Validated"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    period = models.CharField(max_length=7, unique=True)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_counts_created",
    )
    validated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_counts_validated",
    )
    validated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-period"]

    @property
    def is_validated(self) -> bool:
        return self.status == self.Status.VALIDATED

    def clean(self):
        if self.status == self.Status.VALIDATED and not self.validated_at:
            raise ValidationError("validated_at is required on a validated count")

    def __str__(self):
        return f"Stock count {self.period} ({self.status})"


class StockCountLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    stock_count = models.ForeignKey(
        StockCount, on_delete=models.CASCADE, related_name="lines"
    )
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="stock_count_lines"
    )

    theoretical_quantity = models.IntegerField()
    physical_quantity = models.PositiveIntegerField(null=True, blank=True)
    variance = models.IntegerField(null=True, blank=True, editable=False)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["product__name"]
        constraints = [
            models.UniqueConstraint(
                fields=["stock_count", "product"],
                name="uniq_stock_count_line_product",
            ),
        ]

    @property
    def is_counted(self) -> bool:
        return self.physical_quantity is not None

    def save(self, *args, **kwargs):
        if self.physical_quantity is None:
            self.variance = None
        else:
            self.variance = int(self.physical_quantity) - int(self.theoretical_quantity)
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.product} | theoretical={self.theoretical_quantity} physical={self.physical_quantity}"
