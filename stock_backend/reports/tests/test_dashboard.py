# reports/tests/test_dashboard.py

from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from permissions.roles import ROLE_VIEWER
from products.models import Product
from products.services.exceptions import InventoryValidationError
from products.services.ledger import append_movement
from reports.services.dashboard_service import period_aggregate

User = get_user_model()


class PeriodAggregateTests(TestCase):
    """
    Dashboard KPIs.

    GUARANTEES:
    - entries / exits are the period's ENTRY / EXIT movements only
    - stock value covers active products at current stock
    - top products are ordered by stock value and capped
    """

    def setUp(self):
        self.a = Product.objects.create(code="A", name="Alpha", unit_price=Decimal("10.00"))
        self.b = Product.objects.create(code="B", name="Beta", unit_price=Decimal("1.00"))
        self.c = Product.objects.create(code="C", name="Gamma", unit_price=Decimal("3.00"))

        jan = date(2025, 1, 10)
        append_movement(product=self.a, kind="ENTRY", quantity=5, movement_date=jan, unit_price="8.00")
        append_movement(product=self.b, kind="ENTRY", quantity=20, movement_date=jan, unit_price="1.00")
        append_movement(product=self.b, kind="EXIT", quantity=4, movement_date=jan, unit_price="1.50")
        append_movement(product=self.b, kind="WRITE_OFF", quantity=1, movement_date=jan)
        append_movement(
            product=self.a, kind="ENTRY", quantity=1, movement_date=date(2025, 2, 1)
        )

    def test_flows_for_period(self):
        agg = period_aggregate("2025-01", now=date(2025, 1, 31))

        self.assertEqual(agg.entries.quantity, 25)
        self.assertEqual(agg.entries.value, Decimal("60.00"))
        self.assertEqual(agg.exits.quantity, 4)
        self.assertEqual(agg.exits.value, Decimal("6.00"))
        self.assertEqual(agg.net_flow.value, Decimal("54.00"))
        self.assertEqual(agg.net_flow.quantity, 21)
        self.assertEqual(agg.movement_count, 4)

    def test_stock_value_and_top_products(self):
        agg = period_aggregate("2025-01", top_n=1)

        # A: 6 x 10.00, B: 15 x 1.00, C: 0
        self.assertEqual(agg.total_stock_value, Decimal("75.00"))
        self.assertEqual([v.product_code for v in agg.top_products], ["A"])
        self.assertEqual(agg.active_product_count, 3)

    @override_settings(DASHBOARD_TOP_PRODUCTS=5, DASHBOARD_RECENT_MOVEMENTS=2)
    def test_defaults_from_settings(self):
        agg = period_aggregate("2025-01")

        # zero-value products are not "top"
        self.assertEqual([v.product_code for v in agg.top_products], ["A", "B"])
        self.assertEqual(len(agg.recent_movements), 2)

    def test_invalid_period(self):
        with self.assertRaises(InventoryValidationError):
            period_aggregate("2025/01")


class DashboardApiTests(TestCase):
    def setUp(self):
        call_command("seed_roles", verbosity=0)
        self.user = User.objects.create_user(username="viewer", password="pass")
        self.user.groups.add(Group.objects.get(name=ROLE_VIEWER))

        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

        today = timezone.localdate()
        product = Product.objects.create(code="P", name="P", alert_threshold=50)
        append_movement(
            product=product,
            kind="ENTRY",
            quantity=10,
            movement_date=today,
            lot_number="L1",
            expiry_date=today + timedelta(days=3),
        )

    def test_dashboard_defaults_to_current_month(self):
        res = self.client.get("/api/reports/dashboard/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["period"], timezone.localdate().strftime("%Y-%m"))
        self.assertEqual(res.data["entries"]["quantity"], 10)
        self.assertEqual(res.data["alerts"]["lot_counts"]["expiring7"], 1)
        self.assertEqual(res.data["alerts"]["stock_counts"]["lowStock"], 1)

    def test_invalid_period_is_400(self):
        res = self.client.get("/api/reports/dashboard/", {"period": "bad"})
        self.assertEqual(res.status_code, 400)
