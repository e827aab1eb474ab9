# products/tests/test_alerts.py

from datetime import date, timedelta

from django.test import SimpleTestCase, TestCase, override_settings

from products.models import Product
from products.services.alerts import (
    ExpiryBucket,
    StockStatus,
    alert_summary,
    classify_expiry,
    classify_stock,
)
from products.services.ledger import append_movement

TODAY = date(2025, 6, 15)


class ClassificationTests(SimpleTestCase):
    def test_expiry_boundaries(self):
        self.assertEqual(classify_expiry(-1), ExpiryBucket.EXPIRED)
        self.assertEqual(classify_expiry(0), ExpiryBucket.EXPIRING_7)
        self.assertEqual(classify_expiry(7), ExpiryBucket.EXPIRING_7)
        self.assertEqual(classify_expiry(8), ExpiryBucket.EXPIRING_30)
        self.assertEqual(classify_expiry(30), ExpiryBucket.EXPIRING_30)
        self.assertEqual(classify_expiry(31), ExpiryBucket.OK)

    @override_settings(INVENTORY_EXPIRY_SOON_DAYS=3, INVENTORY_EXPIRY_WARNING_DAYS=10)
    def test_thresholds_come_from_settings(self):
        self.assertEqual(classify_expiry(4), ExpiryBucket.EXPIRING_30)
        self.assertEqual(classify_expiry(11), ExpiryBucket.OK)

    def test_stock_status_is_exclusive(self):
        self.assertEqual(classify_stock(0, 10), StockStatus.OUT_OF_STOCK)
        self.assertEqual(classify_stock(5, 10), StockStatus.LOW_STOCK)
        self.assertEqual(classify_stock(10, 10), StockStatus.LOW_STOCK)
        self.assertEqual(classify_stock(11, 10), StockStatus.OK)
        # threshold 0 disables low-stock
        self.assertEqual(classify_stock(1, 0), StockStatus.OK)
        self.assertEqual(classify_stock(0, 0), StockStatus.OUT_OF_STOCK)


class AlertSummaryTests(TestCase):
    """
    Alert engine over the ledger.

    GUARANTEES:
    - every available lot with an expiry lands in exactly one bucket
    - bucket counts sum to the eligible lot count
    - stock alerts cover active products only
    """

    def setUp(self):
        self.product = Product.objects.create(code="EXP", name="Expiring", alert_threshold=3)
        offsets = {"EXPIRED": -2, "SOON": 5, "WARN": 20, "FAR": 90}
        for lot, days in offsets.items():
            append_movement(
                product=self.product,
                kind="ENTRY",
                quantity=2,
                movement_date=TODAY - timedelta(days=30),
                lot_number=lot,
                expiry_date=TODAY + timedelta(days=days),
            )
        # no expiry: not eligible
        append_movement(
            product=self.product,
            kind="ENTRY",
            quantity=2,
            movement_date=TODAY - timedelta(days=30),
            lot_number="NOEXP",
        )
        # exhausted: not eligible
        append_movement(
            product=self.product,
            kind="ENTRY",
            quantity=1,
            movement_date=TODAY - timedelta(days=30),
            lot_number="GONE",
            expiry_date=TODAY + timedelta(days=1),
        )
        append_movement(
            product=self.product,
            kind="EXIT",
            quantity=1,
            movement_date=TODAY - timedelta(days=29),
            lot_number="GONE",
        )

    def test_lots_partition_into_buckets(self):
        summary = alert_summary(TODAY)

        placed = {
            a.lot.lot_number: bucket
            for bucket, alerts in summary.lots.items()
            for a in alerts
        }
        self.assertEqual(
            placed,
            {
                "EXPIRED": ExpiryBucket.EXPIRED,
                "SOON": ExpiryBucket.EXPIRING_7,
                "WARN": ExpiryBucket.EXPIRING_30,
                "FAR": ExpiryBucket.OK,
            },
        )
        self.assertEqual(sum(summary.lot_counts.values()), summary.eligible_lot_count)
        self.assertEqual(summary.eligible_lot_count, 4)

    def test_product_bucket_uses_earliest_lot(self):
        summary = alert_summary(TODAY)
        self.assertEqual(
            [a.lot.lot_number for a in summary.products_by_expiry[ExpiryBucket.EXPIRED]],
            ["EXPIRED"],
        )

    def test_inactive_products_have_no_stock_alert(self):
        Product.objects.create(code="OFF", name="Retired", is_active=False)
        empty = Product.objects.create(code="EMPTY", name="Empty")

        summary = alert_summary(TODAY)
        out = [a.product_id for a in summary.products[StockStatus.OUT_OF_STOCK]]
        self.assertEqual(out, [empty.pk])
        self.assertEqual(
            [a.product_id for a in summary.products[StockStatus.OK]], [self.product.pk]
        )
