# products/tests/test_ledger.py

from datetime import date, timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase

from products.models import Movement, Product
from products.services.exceptions import (
    ConflictError,
    InsufficientStockError,
    InventoryValidationError,
    NegativeStockError,
    NotFoundError,
)
from products.services import ledger
from products.services.ledger import append_movement, delete_movement, edit_movement
from products.services.stock_projection import current_stock

User = get_user_model()

D1 = date(2025, 3, 1)
D2 = date(2025, 3, 2)
D3 = date(2025, 3, 3)


class AppendMovementTests(TestCase):
    """
    Append path of the ledger.

    GUARANTEES:
    - direction / period / total_value are derived, never trusted
    - every rule violation raises a typed error and writes nothing
    - balance_after tracks the running product balance
    """

    def setUp(self):
        self.user = User.objects.create_user(username="clerk", password="password123")
        self.product = Product.objects.create(
            code="AMOX_500",
            name="Amoxicillin 500mg",
            unit_price=Decimal("1.50"),
        )

    def _append(self, **kwargs):
        kwargs.setdefault("product", self.product)
        kwargs.setdefault("movement_date", D1)
        return append_movement(**kwargs)

    def test_entry_derives_fields(self):
        result = self._append(kind="ENTRY", quantity=10, unit_price="2.25", user=self.user)

        m = result.movement
        self.assertEqual(m.direction, Movement.Direction.IN)
        self.assertEqual(m.period, "2025-03")
        self.assertEqual(m.total_value, Decimal("22.50"))
        self.assertEqual(m.balance_after, 10)
        self.assertEqual(m.performed_by, self.user)
        self.assertEqual(result.balance_after, 10)
        self.assertEqual(result.affected_product_ids, (self.product.pk,))

    def test_unit_price_defaults_to_product_price(self):
        result = self._append(kind="ENTRY", quantity=4)
        self.assertEqual(result.movement.unit_price, Decimal("1.50"))
        self.assertEqual(result.movement.total_value, Decimal("6.00"))

    def test_lot_exit_defaults_to_lot_receipt_price(self):
        self._append(kind="ENTRY", quantity=10, lot_number="L1", unit_price="3.00")
        result = self._append(kind="EXIT", quantity=2, lot_number="L1")
        self.assertEqual(result.movement.unit_price, Decimal("3.00"))

    def test_kind_fixes_direction(self):
        self._append(kind="ENTRY", quantity=10)
        result = self._append(kind="WRITE_OFF", quantity=3, direction="IN")
        self.assertEqual(result.movement.direction, Movement.Direction.OUT)
        self.assertEqual(current_stock(self.product), 7)

    def test_adjustment_requires_direction(self):
        with self.assertRaises(InventoryValidationError):
            self._append(kind="ADJUSTMENT", quantity=1)
        self.assertFalse(Movement.objects.exists())

    def test_adjustment_in_and_out(self):
        self._append(kind="ADJUSTMENT", quantity=5, direction="IN")
        self._append(kind="ADJUSTMENT", quantity=2, direction="OUT")
        self.assertEqual(current_stock(self.product), 3)

    def test_quantity_must_be_positive(self):
        for bad in (0, -3, "abc", None, 1.5):
            with self.subTest(quantity=bad):
                with self.assertRaises(InventoryValidationError):
                    self._append(kind="ENTRY", quantity=bad)

    def test_unknown_kind(self):
        with self.assertRaises(InventoryValidationError):
            self._append(kind="TRANSFER", quantity=1)

    def test_lot_only_on_entry_and_exit(self):
        self._append(kind="ENTRY", quantity=10)
        with self.assertRaises(InventoryValidationError):
            self._append(kind="WRITE_OFF", quantity=1, lot_number="L1")
        with self.assertRaises(InventoryValidationError):
            self._append(kind="ADJUSTMENT", quantity=1, direction="OUT", lot_number="L1")

    def test_expiry_only_on_entry(self):
        self._append(kind="ENTRY", quantity=10, lot_number="L1")
        with self.assertRaises(InventoryValidationError):
            self._append(
                kind="EXIT",
                quantity=1,
                lot_number="L1",
                expiry_date=D1 + timedelta(days=30),
            )

    def test_tracked_product_requires_lot(self):
        self.product.track_lots = True
        self.product.save()

        with self.assertRaises(InventoryValidationError):
            self._append(kind="ENTRY", quantity=10)

        self._append(kind="ENTRY", quantity=10, lot_number="L1")
        with self.assertRaises(InventoryValidationError):
            self._append(kind="EXIT", quantity=1)

    def test_inactive_product_rejected(self):
        self.product.is_active = False
        self.product.save()
        with self.assertRaises(InventoryValidationError):
            self._append(kind="ENTRY", quantity=1)

    def test_unknown_product(self):
        with self.assertRaises(NotFoundError):
            append_movement(
                product="00000000-0000-0000-0000-000000000000",
                kind="ENTRY",
                quantity=1,
            )
        with self.assertRaises(NotFoundError):
            append_movement(product="not-a-uuid", kind="ENTRY", quantity=1)

    def test_unknown_lot_exit(self):
        self._append(kind="ENTRY", quantity=10, lot_number="L1")
        with self.assertRaises(NotFoundError):
            self._append(kind="EXIT", quantity=1, lot_number="NOPE")

    def test_product_level_insufficient_stock(self):
        self._append(kind="ENTRY", quantity=3)
        with self.assertRaises(InsufficientStockError):
            self._append(kind="EXIT", quantity=4)
        self.assertEqual(current_stock(self.product), 3)
        self.assertEqual(Movement.objects.count(), 1)

    def test_backdated_exit_cannot_overdraw_history(self):
        self._append(kind="ENTRY", quantity=5, movement_date=D2)
        # stock on D1 is 0 even though current stock is 5
        with self.assertRaises(InsufficientStockError):
            self._append(kind="EXIT", quantity=1, movement_date=D1)

    def test_backdated_entry_rebuilds_later_balances(self):
        later = self._append(kind="ENTRY", quantity=5, movement_date=D2).movement
        self._append(kind="ENTRY", quantity=7, movement_date=D1)

        later.refresh_from_db()
        self.assertEqual(later.balance_after, 12)


class EditDeleteMovementTests(TestCase):
    """
    Edit / delete re-project every affected product.

    GUARANTEES:
    - a change that would make any running balance negative is refused
    - refused changes leave the ledger untouched
    - carried-forward openings cannot be edited or deleted
    """

    def setUp(self):
        self.p1 = Product.objects.create(code="P1", name="Product 1")
        self.p2 = Product.objects.create(code="P2", name="Product 2")

        self.entry = append_movement(
            product=self.p1, kind="ENTRY", quantity=10, movement_date=D1
        ).movement
        self.exit = append_movement(
            product=self.p1, kind="EXIT", quantity=4, movement_date=D2
        ).movement

    def test_edit_quantity_rebuilds_balances(self):
        result = edit_movement(movement_id=self.entry.pk, changes={"quantity": 20})

        self.assertEqual(result.movement.quantity, 20)
        self.assertEqual(current_stock(self.p1), 16)

        self.exit.refresh_from_db()
        self.assertEqual(self.exit.balance_after, 16)

    def test_edit_date_and_price(self):
        entry = append_movement(
            product=self.p2, kind="ENTRY", quantity=3, movement_date=D1
        ).movement

        result = edit_movement(
            movement_id=entry.pk,
            changes={"movement_date": "2025-04-01", "unit_price": "2.00"},
        )

        self.assertEqual(result.movement.period, "2025-04")
        self.assertEqual(result.movement.total_value, Decimal("6.00"))

    def test_edit_that_goes_negative_is_rejected(self):
        with self.assertRaises(NegativeStockError):
            edit_movement(movement_id=self.entry.pk, changes={"quantity": 3})

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.quantity, 10)
        self.assertEqual(current_stock(self.p1), 6)

    def test_moving_entry_after_exit_is_rejected(self):
        with self.assertRaises(NegativeStockError):
            edit_movement(movement_id=self.entry.pk, changes={"movement_date": D3})

    def test_edit_moves_movement_between_products(self):
        result = edit_movement(movement_id=self.exit.pk, changes={"quantity": 2})
        self.assertEqual(result.balance_after, 8)

        extra = append_movement(
            product=self.p1, kind="ENTRY", quantity=5, movement_date=D3
        ).movement
        result = edit_movement(movement_id=extra.pk, changes={"product": self.p2.pk})

        self.assertEqual(current_stock(self.p1), 8)
        self.assertEqual(current_stock(self.p2), 5)
        self.assertEqual(set(result.affected_product_ids), {self.p1.pk, self.p2.pk})

    def test_edit_onto_inactive_product_is_rejected(self):
        retired = Product.objects.create(code="R", name="Retired", is_active=False)

        with self.assertRaises(InventoryValidationError):
            edit_movement(movement_id=self.exit.pk, changes={"product": retired.pk})

        self.exit.refresh_from_db()
        self.assertEqual(self.exit.product_id, self.p1.pk)
        self.assertFalse(retired.movements.exists())

    def _moved_before_lock(self, movement_id, target):
        """Make the unlocked read see the row before another writer moves it."""
        real_get = ledger._get_movement

        def get(pk, *, for_update=False):
            found = real_get(pk, for_update=for_update)
            if not for_update:
                Movement.objects.filter(pk=movement_id).update(product=target)
            return found

        return mock.patch("products.services.ledger._get_movement", side_effect=get)

    def test_edit_refuses_row_moved_by_concurrent_writer(self):
        with self._moved_before_lock(self.exit.pk, self.p2):
            with self.assertRaises(ConflictError):
                edit_movement(movement_id=self.exit.pk, changes={"quantity": 3})

        self.exit.refresh_from_db()
        self.assertEqual(self.exit.quantity, 4)
        self.assertEqual(current_stock(self.p1), 6)

    def test_delete_refuses_row_moved_by_concurrent_writer(self):
        with self._moved_before_lock(self.entry.pk, self.p2):
            with self.assertRaises(ConflictError):
                delete_movement(movement_id=self.entry.pk)

        self.assertTrue(Movement.objects.filter(pk=self.entry.pk).exists())

    def test_edit_rejects_unknown_fields(self):
        with self.assertRaises(InventoryValidationError):
            edit_movement(movement_id=self.entry.pk, changes={"balance_after": 99})
        with self.assertRaises(InventoryValidationError):
            edit_movement(movement_id=self.entry.pk, changes={})

    def test_edit_unknown_movement(self):
        with self.assertRaises(NotFoundError):
            edit_movement(
                movement_id="00000000-0000-0000-0000-000000000000",
                changes={"quantity": 1},
            )

    def test_delete_rebuilds(self):
        result = delete_movement(movement_id=self.exit.pk)
        self.assertEqual(result.balance_after, 10)
        self.assertFalse(Movement.objects.filter(pk=self.exit.pk).exists())

    def test_delete_that_goes_negative_is_rejected(self):
        with self.assertRaises(NegativeStockError):
            delete_movement(movement_id=self.entry.pk)
        self.assertTrue(Movement.objects.filter(pk=self.entry.pk).exists())
        self.assertEqual(current_stock(self.p1), 6)

    def test_lot_balance_checked_on_edit(self):
        entry = append_movement(
            product=self.p2, kind="ENTRY", quantity=5, movement_date=D1, lot_number="L1"
        ).movement
        append_movement(
            product=self.p2, kind="EXIT", quantity=5, movement_date=D2, lot_number="L1"
        )

        with self.assertRaises(NegativeStockError):
            edit_movement(movement_id=entry.pk, changes={"quantity": 4})

    def test_carried_forward_opening_is_owned_by_transfer(self):
        opening = Movement(
            product=self.p2,
            kind=Movement.Kind.OPENING,
            quantity=3,
            movement_date=date(2025, 5, 1),
            unit_price=Decimal("0.00"),
            carried_forward=True,
            source_period="2025-04",
        )
        opening.save()

        with self.assertRaises(ConflictError):
            edit_movement(movement_id=opening.pk, changes={"quantity": 1})
        with self.assertRaises(ConflictError):
            delete_movement(movement_id=opening.pk)


class MovementImmutabilityTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(code="P", name="Product")
        self.movement = append_movement(
            product=self.product, kind="ENTRY", quantity=1, movement_date=D1
        ).movement

    def test_save_on_existing_row_raises(self):
        self.movement.quantity = 99
        with self.assertRaises(ValidationError):
            self.movement.save()

    def test_model_delete_raises(self):
        with self.assertRaises(ValidationError):
            self.movement.delete()

    def test_carried_forward_only_on_opening(self):
        m = Movement(
            product=self.product,
            kind=Movement.Kind.ENTRY,
            quantity=1,
            movement_date=D1,
            carried_forward=True,
        )
        with self.assertRaises(ValidationError):
            m.save()

    def test_database_enforces_kind_rules(self):
        rows = Movement.objects.filter(pk=self.movement.pk)

        for bad in (
            {"direction": "OUT"},
            {"kind": "ADJUSTMENT", "direction": ""},
            {"kind": "WRITE_OFF", "direction": "OUT", "lot_number": "L1"},
            {"kind": "EXIT", "direction": "OUT", "expiry_date": D2},
        ):
            with self.subTest(update=bad):
                with self.assertRaises(IntegrityError), transaction.atomic():
                    rows.update(**bad)

        self.movement.refresh_from_db()
        self.assertEqual(self.movement.direction, Movement.Direction.IN)
