from decimal import Decimal
from io import StringIO

from django.core.exceptions import ValidationError as ModelValidationError
from django.core.management import call_command
from django.test import TestCase

from core.exceptions import ConflictError, InsufficientStockError, ValidationError
from core.tests.factories import make_product, make_shop, make_user
from products.models import InventoryTransaction, Product
from products.services.catalog import create_product
from products.services.inventory_ledger import apply_stock_change, stock_conservation_report
from products.services.stock_adjustments import adjust_stock

Direction = InventoryTransaction.Direction
TxType = InventoryTransaction.TransactionType


class InventoryLedgerTests(TestCase):
    """
    GUARANTEES:
    - Every quantity change writes exactly one ledger row
    - OUT never drives stock below zero
    - Ledger rows are immutable
    """

    def setUp(self):
        self.shop = make_shop()
        self.product = make_product(shop=self.shop, quantity=3)

    def test_opening_stock_enters_through_ledger(self):
        row = InventoryTransaction.objects.get(product=self.product)
        self.assertEqual(row.transaction_type, TxType.IN)
        self.assertEqual(row.reference_type, InventoryTransaction.ReferenceType.PRODUCT_CREATION)
        self.assertEqual((row.previous_quantity, row.new_quantity), (0, 3))
        self.assertEqual(row.reason, "Initial stock")
        self.assertEqual(self.product.opening_quantity, 0)
        self.assertTrue(stock_conservation_report(self.product).is_consistent)

    def test_out_change_updates_counter(self):
        row = apply_stock_change(
            product=self.product,
            quantity=2,
            direction=Direction.OUT,
            transaction_type=TxType.OUT,
            reason="Sent to exhibition",
        )
        self.assertEqual(row.signed_quantity, -2)
        self.assertEqual(self.product.quantity, 1)
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 1)

    def test_out_beyond_stock_rejected(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            apply_stock_change(
                product=self.product,
                quantity=4,
                direction=Direction.OUT,
                transaction_type=TxType.OUT,
                reason="Too many",
            )
        self.assertEqual((ctx.exception.requested, ctx.exception.available), (4, 3))
        self.assertEqual(InventoryTransaction.objects.filter(product=self.product).count(), 1)

    def test_sold_out_flips_status_and_back(self):
        apply_stock_change(
            product=self.product, quantity=3, direction=Direction.OUT, transaction_type=TxType.OUT, reason="x"
        )
        self.assertEqual(Product.objects.get(pk=self.product.pk).sale_status, Product.SaleStatus.SOLD)

        apply_stock_change(
            product=self.product, quantity=1, direction=Direction.IN, transaction_type=TxType.IN, reason="y"
        )
        self.assertEqual(Product.objects.get(pk=self.product.pk).sale_status, Product.SaleStatus.AVAILABLE)

    def test_bad_quantity_rejected(self):
        for qty in (0, -1, True, "1.5"):
            with self.subTest(qty=qty), self.assertRaises(ValidationError):
                apply_stock_change(
                    product=self.product, quantity=qty, direction=Direction.IN, transaction_type=TxType.IN, reason="z"
                )

    def test_rows_are_immutable(self):
        row = InventoryTransaction.objects.get(product=self.product)
        row.reason = "edited"
        with self.assertRaises(ModelValidationError):
            row.save()
        with self.assertRaises(ModelValidationError):
            row.delete()

    def test_direct_counter_write_breaks_conservation(self):
        Product.objects.filter(pk=self.product.pk).update(quantity=9)
        report = stock_conservation_report(self.product)
        self.assertFalse(report.is_consistent)
        self.assertEqual(report.expected_quantity, 3)


    def test_invalid_row_surfaces_as_engine_error(self):
        with self.assertRaises(ValidationError):
            apply_stock_change(
                product=self.product, quantity=1, direction=Direction.IN, transaction_type=TxType.IN, reason="r" * 256
            )
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 3)
        self.assertEqual(InventoryTransaction.objects.filter(product=self.product).count(), 1)

class StockAdjustmentTests(TestCase):
    def setUp(self):
        self.shop = make_shop()
        self.user = make_user(shop=self.shop)
        self.product = make_product(shop=self.shop, quantity=3)

    def test_positive_adjustment(self):
        result = adjust_stock(product=self.product, quantity_delta="2", user=self.user, note="Recount")
        self.assertEqual(result.quantity_delta, 2)
        self.assertEqual(result.transaction.transaction_type, TxType.ADJUSTMENT)
        self.assertEqual(result.transaction.direction, Direction.IN)
        self.assertEqual(result.transaction.reason, "Recount")
        self.assertEqual(self.product.quantity, 5)

    def test_damage_write_off(self):
        result = adjust_stock(product=self.product, quantity_delta=-1, damaged=True)
        self.assertEqual(result.transaction.transaction_type, TxType.DAMAGE)
        self.assertEqual(result.transaction.reason, "Manual stock adjustment")
        self.assertEqual(self.product.quantity, 2)

    def test_invalid_deltas(self):
        for delta in (0, None, "abc"):
            with self.subTest(delta=delta), self.assertRaises(ValidationError):
                adjust_stock(product=self.product, quantity_delta=delta)
        with self.assertRaises(ValidationError):
            adjust_stock(product=self.product, quantity_delta=1, damaged=True)

    def test_cannot_adjust_below_zero(self):
        with self.assertRaises(InsufficientStockError):
            adjust_stock(product=self.product, quantity_delta=-4)
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 3)


class CatalogTests(TestCase):
    def setUp(self):
        self.shop = make_shop()

    def test_product_without_opening_stock(self):
        product = make_product(shop=self.shop, quantity=0)
        self.assertEqual(product.quantity, 0)
        self.assertEqual(product.net_weight, Decimal("10.000"))
        self.assertFalse(InventoryTransaction.objects.filter(product=product).exists())

    def test_quantity_in_payload_is_ignored(self):
        product = create_product(
            shop=self.shop,
            data={"sku": "CHAIN-01", "name": "Chain", "gross_weight": Decimal("8.000"), "quantity": 99},
            initial_quantity=2,
        )
        self.assertEqual(product.quantity, 2)
        self.assertTrue(stock_conservation_report(product).is_consistent)

    def test_invalid_weights_rejected(self):
        with self.assertRaises(ValidationError):
            make_product(shop=self.shop, stone_weight=Decimal("11.000"))
        self.assertFalse(Product.objects.exists())

    def test_duplicate_sku_is_conflict(self):
        make_product(shop=self.shop)
        with self.assertRaises(ConflictError):
            make_product(shop=self.shop)

    def test_selling_price_from_cost(self):
        product = Product(markup_type=Product.MarkupType.PERCENT, markup_value=Decimal("20.00"))
        self.assertEqual(product.compute_selling_price_from_cost("1000"), Decimal("1200.00"))
        product.markup_type = Product.MarkupType.FIXED
        self.assertEqual(product.compute_selling_price_from_cost("1000"), Decimal("1020.00"))


class CheckStockLedgerCommandTests(TestCase):
    def setUp(self):
        self.shop = make_shop()
        self.product = make_product(shop=self.shop, quantity=3)

    def _run(self, *args):
        out, err = StringIO(), StringIO()
        call_command("check_stock_ledger", *args, stdout=out, stderr=err)
        return out.getvalue(), err.getvalue()

    def test_consistent_ledger(self):
        out, err = self._run()
        self.assertIn("[OK] 1 product(s) consistent", out)
        self.assertEqual(err, "")

    def test_drift_reported(self):
        Product.objects.filter(pk=self.product.pk).update(quantity=7)
        out, err = self._run()
        self.assertIn("[FAIL] RING-22K-01", err)

        with self.assertRaises(SystemExit):
            self._run("--strict")
