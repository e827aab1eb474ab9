import random
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from products.models import Movement, Product
from products.services.catalog import create_product
from products.services.ledger import append_movement


class Command(BaseCommand):
    help = "Seed demo products and lot-tracked ENTRY movements through the ledger"

    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding products and stock..."))

        # -------------------------------
        # PRODUCTS
        # -------------------------------
        products_data = [
            ("Amoxicillin 500mg", "Capsule", "Antibiotics", "1200.00", 20),
            ("Paracetamol 500mg", "Tablet", "Analgesics", "300.00", 50),
            ("Vitamin C 1000mg", "Tablet", "Vitamins", "800.00", 10),
            ("Flu Stop Syrup", "Syrup", "Cold & Flu", "1500.00", 5),
            ("Artéméther/Luméfantrine", "Tablet", "Antimalarials", "2500.00", 10),
        ]

        product_objs = []

        for name, form, therapeutic_class, price, threshold in products_data:
            product = Product.objects.filter(name=name).first()
            if product is None:
                product = create_product(
                    name=name,
                    dosage_form=form,
                    therapeutic_class=therapeutic_class,
                    unit_price=price,
                    alert_threshold=threshold,
                    track_lots=True,
                )
            product_objs.append(product)

        # -------------------------------
        # LOT RECEPTIONS (ENTRY)
        # -------------------------------
        today = timezone.localdate()

        for product in product_objs:
            if Movement.objects.filter(product=product).exists():
                continue

            for i in range(2):  # 2 lots per product
                append_movement(
                    product=product,
                    kind=Movement.Kind.ENTRY,
                    quantity=random.randint(20, 50),
                    movement_date=today,
                    lot_number=f"LOT-{i + 1}",
                    expiry_date=today + timedelta(days=20 + i * 160),
                    unit_price=product.unit_price,
                    note="Seed reception",
                )

        self.stdout.write(
            self.style.SUCCESS("Products and stock seeded successfully.")
        )
