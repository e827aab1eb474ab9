# products/tests/test_scenarios.py

from datetime import date, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from periods.services.transfer_service import transfer_stock
from products.models import Movement, Product
from products.services.alerts import ExpiryBucket, StockStatus, alert_summary
from products.services.exceptions import ConflictError, DuplicateTransferError
from products.services.ledger import append_movement
from products.services.lots import available_lots, lot_remaining
from products.services.stock_projection import current_stock, stock_as_of


class LotLifecycleScenarioTests(TestCase):
    """
    End-to-end walk through one lot.

    GUARANTEES:
    - ENTRY creates the lot and the stock
    - EXIT consumes the lot and the stock together
    - An over-sized EXIT is refused with no state change
    """

    def setUp(self):
        self.today = timezone.localdate()
        self.product = Product.objects.create(code="P", name="Product P")

        # Scenario A
        append_movement(
            product=self.product,
            kind=Movement.Kind.ENTRY,
            quantity=100,
            movement_date=self.today,
            lot_number="L1",
            unit_price=Decimal("2.00"),
            expiry_date=self.today + timedelta(days=10),
        )

    def test_entry_creates_stock_lot_and_expiry_alert(self):
        self.assertEqual(current_stock(self.product), 100)

        lots = available_lots(self.product)
        self.assertEqual(len(lots), 1)
        self.assertEqual(lots[0].lot_number, "L1")
        self.assertEqual(lots[0].remaining_quantity, 100)

        summary = alert_summary(self.today)
        bucket_of_l1 = [
            bucket
            for bucket, alerts in summary.lots.items()
            for a in alerts
            if a.lot.lot_number == "L1"
        ]
        self.assertEqual(bucket_of_l1, [ExpiryBucket.EXPIRING_30])

    def test_exit_consumes_lot(self):
        # Scenario B
        append_movement(
            product=self.product,
            kind=Movement.Kind.EXIT,
            quantity=40,
            movement_date=self.today,
            lot_number="L1",
        )

        self.assertEqual(current_stock(self.product), 60)
        self.assertEqual(lot_remaining(self.product, "L1"), 60)

    def test_oversized_exit_is_rejected_without_change(self):
        append_movement(
            product=self.product,
            kind=Movement.Kind.EXIT,
            quantity=40,
            movement_date=self.today,
            lot_number="L1",
        )
        count_before = Movement.objects.count()

        # Scenario C
        with self.assertRaises(ConflictError):
            append_movement(
                product=self.product,
                kind=Movement.Kind.EXIT,
                quantity=100,
                movement_date=self.today,
                lot_number="L1",
            )

        self.assertEqual(current_stock(self.product), 60)
        self.assertEqual(lot_remaining(self.product, "L1"), 60)
        self.assertEqual(Movement.objects.count(), count_before)


class TransferScenarioTests(TestCase):
    """
    Scenario D: month-end carry-forward is applied exactly once.
    """

    def setUp(self):
        self.product = Product.objects.create(code="P", name="Product P")
        append_movement(
            product=self.product,
            kind=Movement.Kind.ENTRY,
            quantity=100,
            movement_date=date(2025, 1, 5),
            unit_price=Decimal("2.00"),
        )
        append_movement(
            product=self.product,
            kind=Movement.Kind.EXIT,
            quantity=40,
            movement_date=date(2025, 1, 20),
        )

    def test_transfer_once_then_duplicate(self):
        self.assertEqual(stock_as_of(self.product, date(2025, 1, 31)), 60)

        result = transfer_stock(source_period="2025-01", destination_period="2025-02")

        self.assertEqual(len(result.movements), 1)
        opening = result.movements[0]
        self.assertEqual(opening.kind, Movement.Kind.OPENING)
        self.assertEqual(opening.quantity, 60)
        self.assertEqual(opening.movement_date, date(2025, 2, 1))
        self.assertEqual(opening.period, "2025-02")
        self.assertTrue(opening.carried_forward)

        february_stock = stock_as_of(self.product, date(2025, 2, 28))
        self.assertEqual(february_stock, 60)

        with self.assertRaises(DuplicateTransferError):
            transfer_stock(source_period="2025-01", destination_period="2025-02")

        self.assertEqual(
            Movement.objects.filter(kind=Movement.Kind.OPENING).count(), 1
        )
        self.assertEqual(stock_as_of(self.product, date(2025, 2, 28)), february_stock)


class StockAlertScenarioTests(TestCase):
    """
    Scenario E: low stock and out of stock never overlap.
    """

    def setUp(self):
        self.today = timezone.localdate()
        self.product = Product.objects.create(code="Q", name="Product Q", alert_threshold=10)

    def _status(self):
        summary = alert_summary(self.today)
        return [
            status
            for status, alerts in summary.products.items()
            for a in alerts
            if a.product_id == self.product.pk
        ]

    def test_low_then_out_of_stock(self):
        append_movement(
            product=self.product,
            kind=Movement.Kind.ENTRY,
            quantity=5,
            movement_date=self.today,
        )
        self.assertEqual(self._status(), [StockStatus.LOW_STOCK])

        append_movement(
            product=self.product,
            kind=Movement.Kind.EXIT,
            quantity=5,
            movement_date=self.today,
        )
        self.assertEqual(self._status(), [StockStatus.OUT_OF_STOCK])
