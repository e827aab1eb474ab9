# periods/models/stock_transfer.py

"""
======================================================
PATH: periods/models/stock_transfer.py
======================================================
STOCK TRANSFER (PERIOD CARRY-FORWARD RECORD)

One row per committed carry-forward of end-of-month stock into the next
month's OPENING movements.

GUARANTEES:
- At most ONE transfer per (source_period, destination_period): enforced by
  a database UniqueConstraint, not only by the service pre-check.
- destination_period is the month right after source_period.
- Immutable once created (no edits, no deletes).
- Committing a transfer freezes every movement dated on or before the last
  day of source_period (see periods.services.period_lock).
"""

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class StockTransfer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    source_period = models.CharField(max_length=7, db_index=True)
    destination_period = models.CharField(max_length=7)

    product_count = models.PositiveIntegerField(default=0)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_transfers",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-source_period"]
        constraints = [
            models.UniqueConstraint(
                fields=["source_period", "destination_period"],
                name="uniq_stock_transfer_period_pair",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockTransfer records are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("StockTransfer records are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.source_period} -> {self.destination_period} ({self.product_count} products)"
