# products/tests/test_lots.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from products.models import Product
from products.services.exceptions import NotFoundError
from products.services.ledger import append_movement
from products.services.lots import (
    all_lots,
    available_lots,
    get_lot,
    lot_remaining,
    lots_for_product,
)

D = date(2025, 6, 1)


class LotTrackerTests(TestCase):
    """
    Lots folded from ENTRY / EXIT movements.

    GUARANTEES:
    - available_lots is FEFO: expiry ascending, no-expiry lots last
    - exhausted lots are never offered
    - reusing a lot number merges into one lot
    - ADJUSTMENT / WRITE_OFF never move a lot
    """

    def setUp(self):
        self.product = Product.objects.create(code="LOTS", name="Lot product")

    def _entry(self, lot, qty, expiry=None, price="1.00"):
        return append_movement(
            product=self.product,
            kind="ENTRY",
            quantity=qty,
            movement_date=D,
            lot_number=lot,
            expiry_date=expiry,
            unit_price=price,
        )

    def _exit(self, lot, qty):
        return append_movement(
            product=self.product,
            kind="EXIT",
            quantity=qty,
            movement_date=D,
            lot_number=lot,
        )

    def test_fefo_order_with_null_expiry_last(self):
        self._entry("C", 1, None)
        self._entry("B", 1, date(2026, 3, 1))
        self._entry("A", 1, date(2026, 1, 1))
        self._entry("D", 1, date(2026, 3, 1))

        self.assertEqual(
            [lot.lot_number for lot in available_lots(self.product)],
            ["A", "B", "D", "C"],
        )

    def test_exhausted_lots_are_not_available(self):
        self._entry("A", 2, date(2026, 1, 1))
        self._entry("B", 2, date(2026, 2, 1))
        self._exit("A", 2)

        self.assertEqual([lot.lot_number for lot in available_lots(self.product)], ["B"])
        self.assertEqual(
            {lot.lot_number: lot.remaining_quantity for lot in lots_for_product(self.product)},
            {"A": 0, "B": 2},
        )
        for lot in available_lots(self.product):
            self.assertGreater(lot.remaining_quantity, 0)

    def test_lot_number_collision_merges(self):
        self._entry("L1", 5, date(2026, 1, 1), price="1.00")
        self._entry("L1", 3, date(2026, 6, 1), price="1.20")

        lot = get_lot(self.product, "L1")
        self.assertEqual(lot.remaining_quantity, 8)
        # latest ENTRY wins for expiry and price
        self.assertEqual(lot.expiry_date, date(2026, 6, 1))
        self.assertEqual(lot.unit_price, Decimal("1.20"))

    def test_non_lot_kinds_do_not_move_lots(self):
        self._entry("L1", 5)
        append_movement(
            product=self.product, kind="ADJUSTMENT", direction="OUT", quantity=2, movement_date=D
        )
        append_movement(product=self.product, kind="WRITE_OFF", quantity=1, movement_date=D)

        self.assertEqual(lot_remaining(self.product, "L1"), 5)
        self.assertEqual(self.product.current_stock, 2)

    def test_unknown_lot(self):
        with self.assertRaises(NotFoundError):
            lot_remaining(self.product, "MISSING")

    def test_all_lots_spans_products(self):
        other = Product.objects.create(code="OTHER", name="Other")
        self._entry("L1", 1)
        append_movement(
            product=other, kind="ENTRY", quantity=1, movement_date=D, lot_number="L1"
        )

        keys = {(lot.product_id, lot.lot_number) for lot in all_lots()}
        self.assertEqual(keys, {(self.product.pk, "L1"), (other.pk, "L1")})
