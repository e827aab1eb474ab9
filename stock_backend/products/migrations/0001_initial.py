"""
======================================================
PATH: products/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Product + Movement (STOCK LEDGER)

Purpose:
- Product catalog (no stored stock).
- Movement ledger with check constraints:
    quantity > 0
    carried_forward only on OPENING rows
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("code", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("dosage_form", models.CharField(blank=True, default="", max_length=100)),
                ("strength", models.CharField(blank=True, default="", max_length=100)),
                ("unit", models.CharField(blank=True, default="", max_length=50)),
                (
                    "therapeutic_class",
                    models.CharField(blank=True, default="", max_length=150),
                ),
                (
                    "unit_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                    ),
                ),
                (
                    "alert_threshold",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Stock at or below this level (and above zero) is LOW. 0 disables low-stock alerts.",
                    ),
                ),
                ("track_lots", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["name"], name="product_name_idx"),
                    models.Index(fields=["is_active"], name="product_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Movement",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("ENTRY", "Entry"),
                            ("EXIT", "Exit"),
                            ("ADJUSTMENT", "Adjustment"),
                            ("OPENING", "Opening Balance"),
                            ("WRITE_OFF", "Write-off"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "direction",
                    models.CharField(
                        choices=[("IN", "Stock In"), ("OUT", "Stock Out")],
                        max_length=3,
                    ),
                ),
                ("quantity", models.PositiveIntegerField()),
                ("movement_date", models.DateField()),
                (
                    "period",
                    models.CharField(db_index=True, editable=False, max_length=7),
                ),
                ("lot_number", models.CharField(blank=True, max_length=64, null=True)),
                ("expiry_date", models.DateField(blank=True, null=True)),
                (
                    "unit_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                    ),
                ),
                (
                    "total_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        editable=False,
                        max_digits=14,
                    ),
                ),
                (
                    "balance_after",
                    models.IntegerField(blank=True, editable=False, null=True),
                ),
                ("note", models.TextField(blank=True, default="")),
                ("carried_forward", models.BooleanField(default=False)),
                ("source_period", models.CharField(blank=True, default="", max_length=7)),
                (
                    "created_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        editable=False,
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["movement_date", "-carried_forward", "created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["product", "movement_date"],
                        name="movement_product_date_idx",
                    ),
                    models.Index(
                        fields=["period", "kind"],
                        name="movement_period_kind_idx",
                    ),
                    models.Index(
                        fields=["product", "lot_number"],
                        name="movement_product_lot_idx",
                    ),
                    models.Index(fields=["created_at"], name="movement_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="movement_quantity_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(carried_forward=False)
                        | models.Q(kind="OPENING"),
                        name="movement_carried_forward_is_opening",
                    ),
                ],
            },
        ),
    ]
