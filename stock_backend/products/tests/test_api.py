# products/tests/test_api.py

from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from permissions.roles import ROLE_OPERATOR, ROLE_VIEWER
from products.models import Movement, Product
from products.services.ledger import append_movement

User = get_user_model()


class ProductsApiTests(TestCase):
    """
    HTTP surface of the catalog and the ledger.

    GUARANTEES:
    - every endpoint requires authentication + capability
    - service errors map to 400 / 404 / 409
    - stock in responses is ledger-derived
    """

    @classmethod
    def setUpTestData(cls):
        call_command("seed_roles", verbosity=0)

        cls.operator = User.objects.create_user(username="operator", password="pass")
        cls.operator.groups.add(Group.objects.get(name=ROLE_OPERATOR))

        cls.viewer = User.objects.create_user(username="viewer", password="pass")
        cls.viewer.groups.add(Group.objects.get(name=ROLE_VIEWER))

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.operator)
        self.today = timezone.localdate()
        self.product = Product.objects.create(code="PCM_500", name="Paracetamol 500mg")

    # --------------------------------------------------
    # Access
    # --------------------------------------------------

    def test_anonymous_is_rejected(self):
        anon = APIClient()
        res = anon.get("/api/products/products/")
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_viewer_reads_but_cannot_write(self):
        self.client.force_authenticate(user=self.viewer)

        self.assertEqual(self.client.get("/api/products/products/").status_code, 200)
        res = self.client.post(
            "/api/products/movements/",
            {"product": str(self.product.pk), "kind": "ENTRY", "quantity": 1},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    # --------------------------------------------------
    # Catalog
    # --------------------------------------------------

    def test_create_product_generates_code(self):
        res = self.client.post(
            "/api/products/products/",
            {"name": "Flu Stop Syrup", "unit_price": "15.00", "alert_threshold": 5},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["code"], "FLU_STOP_SYRUP")
        self.assertEqual(res.data["current_stock"], 0)

    def test_duplicate_code_is_conflict(self):
        res = self.client.post(
            "/api/products/products/",
            {"name": "Other", "code": "pcm 500"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)

    def test_products_cannot_be_deleted(self):
        res = self.client.delete(f"/api/products/products/{self.product.pk}/")
        self.assertEqual(res.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_list_includes_derived_stock(self):
        append_movement(product=self.product, kind="ENTRY", quantity=12)

        res = self.client.get("/api/products/products/")
        self.assertEqual(res.status_code, 200)
        row = next(r for r in res.data["results"] if r["id"] == str(self.product.pk))
        self.assertEqual(row["current_stock"], 12)

    def test_stock_as_of(self):
        append_movement(
            product=self.product,
            kind="ENTRY",
            quantity=5,
            movement_date=self.today - timedelta(days=3),
        )
        append_movement(product=self.product, kind="ENTRY", quantity=2, movement_date=self.today)

        url = f"/api/products/products/{self.product.pk}/stock/"
        past = (self.today - timedelta(days=1)).isoformat()

        self.assertEqual(self.client.get(url).data["stock"], 7)
        self.assertEqual(self.client.get(url, {"as_of": past}).data["stock"], 5)
        self.assertEqual(self.client.get(url, {"as_of": "nope"}).status_code, 400)

    def test_available_lots(self):
        append_movement(
            product=self.product,
            kind="ENTRY",
            quantity=3,
            lot_number="B",
            expiry_date=self.today + timedelta(days=60),
        )
        append_movement(
            product=self.product,
            kind="ENTRY",
            quantity=3,
            lot_number="A",
            expiry_date=self.today + timedelta(days=30),
        )

        res = self.client.get(
            f"/api/products/products/{self.product.pk}/lots/", {"available": "true"}
        )
        self.assertEqual([r["lot_number"] for r in res.data["results"]], ["A", "B"])

    # --------------------------------------------------
    # Ledger
    # --------------------------------------------------

    def test_append_movement(self):
        res = self.client.post(
            "/api/products/movements/",
            {
                "product": str(self.product.pk),
                "kind": "ENTRY",
                "quantity": 10,
                "lot_number": "L1",
                "expiry_date": (self.today + timedelta(days=90)).isoformat(),
                "unit_price": "2.00",
            },
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["balance_after"], 10)
        self.assertEqual(res.data["movement"]["performed_by"], "operator")
        self.assertEqual(res.data["movement"]["total_value"], "20.00")

    def test_error_mapping(self):
        append_movement(product=self.product, kind="ENTRY", quantity=2, lot_number="L1")

        cases = [
            ({"kind": "ADJUSTMENT", "quantity": 1}, 400, "VALIDATION_ERROR"),
            ({"kind": "EXIT", "quantity": 1, "lot_number": "NOPE"}, 404, "NOT_FOUND"),
            ({"kind": "EXIT", "quantity": 5, "lot_number": "L1"}, 409, "INSUFFICIENT_STOCK"),
        ]
        for payload, code, error_code in cases:
            with self.subTest(payload=payload):
                payload = {"product": str(self.product.pk), **payload}
                res = self.client.post("/api/products/movements/", payload, format="json")
                self.assertEqual(res.status_code, code)
                self.assertEqual(res.data["code"], error_code)

        self.assertEqual(Movement.objects.count(), 1)

    def test_serializer_rejects_malformed_payload(self):
        res = self.client.post(
            "/api/products/movements/",
            {"product": str(self.product.pk), "kind": "ENTRY", "quantity": 0},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_and_delete_movement(self):
        entry = append_movement(product=self.product, kind="ENTRY", quantity=10).movement
        append_movement(product=self.product, kind="EXIT", quantity=6)

        url = f"/api/products/movements/{entry.pk}/"

        res = self.client.patch(url, {"quantity": 8}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(self.product.current_stock, 2)

        res = self.client.patch(url, {"quantity": 5}, format="json")
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "NEGATIVE_STOCK")

        res = self.client.delete(url)
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)

        self.assertEqual(self.client.put(url, {"quantity": 9}, format="json").status_code, 405)

    def test_unknown_movement(self):
        res = self.client.delete(
            "/api/products/movements/00000000-0000-0000-0000-000000000000/"
        )
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_filter_movements_by_period_and_kind(self):
        append_movement(
            product=self.product, kind="ENTRY", quantity=5, movement_date=date(2025, 1, 5)
        )
        append_movement(
            product=self.product, kind="EXIT", quantity=1, movement_date=date(2025, 1, 6)
        )
        append_movement(
            product=self.product, kind="ENTRY", quantity=5, movement_date=date(2025, 2, 5)
        )

        res = self.client.get(
            "/api/products/movements/", {"period": "2025-01", "kind": "ENTRY"}
        )
        self.assertEqual(res.data["count"], 1)

    def test_alerts(self):
        Product.objects.create(code="EMPTY", name="Empty")

        res = self.client.get("/api/products/alerts/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["stock_counts"]["outOfStock"], 2)
        self.assertEqual(set(res.data["lot_counts"]), {"expired", "expiring7", "expiring30", "ok"})
