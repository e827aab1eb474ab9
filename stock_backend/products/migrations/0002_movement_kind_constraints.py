"""
======================================================
PATH: products/migrations/0002_movement_kind_constraints.py
======================================================
MIGRATION: Movement kind rules enforced by the database

- direction is fixed by kind (ADJUSTMENT picks IN or OUT)
- lot_number only on ENTRY / EXIT, expiry_date only on ENTRY
"""

from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.AddConstraint(
            model_name="movement",
            constraint=models.CheckConstraint(
                condition=(
                    models.Q(kind__in=["ENTRY", "OPENING"], direction="IN")
                    | models.Q(kind__in=["EXIT", "WRITE_OFF"], direction="OUT")
                    | models.Q(kind="ADJUSTMENT", direction__in=["IN", "OUT"])
                ),
                name="movement_direction_matches_kind",
            ),
        ),
        migrations.AddConstraint(
            model_name="movement",
            constraint=models.CheckConstraint(
                condition=(
                    (models.Q(lot_number__isnull=True) | models.Q(kind__in=["ENTRY", "EXIT"]))
                    & (models.Q(expiry_date__isnull=True) | models.Q(kind="ENTRY"))
                ),
                name="movement_lot_fields_by_kind",
            ),
        ),
    ]
