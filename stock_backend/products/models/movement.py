# products/models/movement.py

"""
CANONICAL STOCK LEDGER

One row per stock event. The ledger is the ONLY authoritative stock state;
product stock, lot balances and period openings are all folded from it.

GUARANTEES:
- Model-level immutability: save() on an existing row and delete() raise.
  Edits / deletes go through products.services.ledger, which re-projects
  the affected products inside the same transaction.
- Direction is validated against kind (ADJUSTMENT is the only free one),
  in clean() and by a database check constraint
- period is always derived from movement_date (never trusted from input)
- total_value = quantity * unit_price (derived)
- Lot fields are only accepted where lot accounting applies:
    lot_number  -> ENTRY / EXIT
    expiry_date -> ENTRY
  (also enforced by the movement_lot_fields_by_kind check constraint)

CANONICAL ORDER:
    movement_date, carried-forward openings first, created_at, id
balance_after is a cache rebuilt by the ledger in that order.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .product import Product


class Movement(models.Model):
    class Kind(models.TextChoices):
        ENTRY = "ENTRY", "Entry"
        EXIT = "EXIT", "Exit"
        ADJUSTMENT = "ADJUSTMENT", "Adjustment"
        OPENING = "OPENING", "Opening Balance"
        WRITE_OFF = "WRITE_OFF", "Write-off"

    class Direction(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    # Canonical signed-effect table. None = caller picks the direction.
    KIND_TO_DIRECTION = {
        Kind.ENTRY: Direction.IN,
        Kind.OPENING: Direction.IN,
        Kind.EXIT: Direction.OUT,
        Kind.WRITE_OFF: Direction.OUT,
        Kind.ADJUSTMENT: None,
    }

    LOT_KINDS = frozenset({Kind.ENTRY, Kind.EXIT})

    CANONICAL_ORDER = ("movement_date", "-carried_forward", "created_at", "id")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="movements"
    )

    kind = models.CharField(max_length=16, choices=Kind.choices)
    direction = models.CharField(max_length=3, choices=Direction.choices)

    quantity = models.PositiveIntegerField()

    movement_date = models.DateField()
    period = models.CharField(max_length=7, editable=False, db_index=True)

    lot_number = models.CharField(max_length=64, null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)

    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    total_value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        editable=False,
    )

    # Cached running balance (ledger-managed)
    balance_after = models.IntegerField(null=True, blank=True, editable=False)

    note = models.TextField(blank=True, default="")

    # Set only on OPENING rows written by a period transfer
    carried_forward = models.BooleanField(default=False)
    source_period = models.CharField(max_length=7, blank=True, default="")

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["movement_date", "-carried_forward", "created_at", "id"]
        indexes = [
            models.Index(fields=["product", "movement_date"], name="movement_product_date_idx"),
            models.Index(fields=["period", "kind"], name="movement_period_kind_idx"),
            models.Index(fields=["product", "lot_number"], name="movement_product_lot_idx"),
            models.Index(fields=["created_at"], name="movement_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="movement_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(carried_forward=False) | models.Q(kind="OPENING"),
                name="movement_carried_forward_is_opening",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(kind__in=["ENTRY", "OPENING"], direction="IN")
                    | models.Q(kind__in=["EXIT", "WRITE_OFF"], direction="OUT")
                    | models.Q(kind="ADJUSTMENT", direction__in=["IN", "OUT"])
                ),
                name="movement_direction_matches_kind",
            ),
            models.CheckConstraint(
                condition=(
                    (models.Q(lot_number__isnull=True) | models.Q(kind__in=["ENTRY", "EXIT"]))
                    & (models.Q(expiry_date__isnull=True) | models.Q(kind="ENTRY"))
                ),
                name="movement_lot_fields_by_kind",
            ),
        ]

    # ---------------------------------------------------------
    # Derivations
    # ---------------------------------------------------------
    def derive_fields(self) -> None:
        """Fill the fields that are never trusted from input."""
        expected = self.KIND_TO_DIRECTION.get(self.kind)
        if expected is not None:
            self.direction = expected

        if self.lot_number is not None:
            self.lot_number = self.lot_number.strip() or None

        if self.movement_date:
            self.period = self.movement_date.strftime("%Y-%m")

        unit_price = Decimal(self.unit_price if self.unit_price is not None else "0.00")
        self.total_value = (unit_price * Decimal(int(self.quantity or 0))).quantize(
            Decimal("0.01")
        )

    @property
    def signed_quantity(self) -> int:
        qty = int(self.quantity or 0)
        return qty if self.direction == self.Direction.IN else -qty

    # ---------------------------------------------------------
    # Validation
    # ---------------------------------------------------------
    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        if self.kind not in self.KIND_TO_DIRECTION:
            raise ValidationError(f"Unknown movement kind: {self.kind}")

        expected = self.KIND_TO_DIRECTION[self.kind]
        if expected is None and self.direction not in self.Direction.values:
            raise ValidationError("ADJUSTMENT requires direction IN or OUT")
        if expected is not None and self.direction != expected:
            raise ValidationError(f"{self.kind} requires direction={expected}")

        if self.lot_number and self.kind not in self.LOT_KINDS:
            raise ValidationError(f"{self.kind} movements cannot carry a lot number")

        if self.expiry_date and self.kind != self.Kind.ENTRY:
            raise ValidationError("expiry_date is only accepted on ENTRY movements")

        if self.unit_price is not None and Decimal(self.unit_price) < Decimal("0.00"):
            raise ValidationError("unit_price cannot be negative")

        if self.carried_forward and self.kind != self.Kind.OPENING:
            raise ValidationError("Only OPENING movements can be carried forward")

        if self.product_id and self.kind in self.LOT_KINDS and not self.lot_number:
            track_lots = (
                Product.objects.filter(pk=self.product_id)
                .values_list("track_lots", flat=True)
                .first()
            )
            if track_lots:
                raise ValidationError(
                    f"Product requires a lot number on {self.kind} movements"
                )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Movement records are immutable")

        self.derive_fields()
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "Movement records are immutable; use the ledger service to delete"
        )

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.kind} | {self.quantity} | {self.movement_date}"
