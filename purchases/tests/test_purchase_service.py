from decimal import Decimal

from django.test import TestCase

from core.exceptions import NotFoundError, ValidationError
from core.tests.factories import make_product, make_shop, make_user
from products.models import InventoryTransaction, Product
from products.services.inventory_ledger import stock_conservation_report
from purchases.models import Purchase, Supplier
from purchases.services import purchase_service

TxType = InventoryTransaction.TransactionType


class PurchaseServiceTests(TestCase):
    """
    GUARANTEES:
    - Stock enters only when a purchase is received
    - Receiving writes one ledger row per line, referencing the purchase
    - Supplier balance follows receive and payments
    """

    def setUp(self):
        self.shop = make_shop()
        self.user = make_user(shop=self.shop)
        self.supplier = Supplier.objects.create(shop=self.shop, name="Kundan Bullion")
        self.product = make_product(shop=self.shop, quantity=5)

    def _items(self):
        return [
            {
                "product_name": "Temple Necklace",
                "sku": "NECK-01",
                "purity": "22K",
                "gross_weight": "25.000",
                "quantity": 2,
                "unit_cost": "50000",
                "gst_percentage": "3",
            },
            {"product_id": self.product.pk, "quantity": 1, "unit_cost": "60000"},
        ]

    def _purchase(self, **kwargs):
        kwargs.setdefault("items", self._items())
        return purchase_service.create_purchase(shop=self.shop, supplier=self.supplier, user=self.user, **kwargs)

    def _supplier(self):
        return Supplier.objects.get(pk=self.supplier.pk)

    def test_create_computes_totals_without_touching_stock(self):
        purchase = self._purchase()

        self.assertEqual(purchase.status, Purchase.STATUS_DRAFT)
        self.assertTrue(purchase.purchase_number.startswith("PUR-"))
        self.assertTrue(purchase.purchase_number.endswith("-00001"))
        self.assertEqual(purchase.subtotal, Decimal("160000.00"))
        self.assertEqual(purchase.gst_amount, Decimal("3000.00"))
        self.assertEqual(purchase.grand_total, Decimal("163000.00"))
        self.assertEqual(purchase.due_amount, Decimal("163000.00"))
        self.assertEqual(purchase.payment_status, Purchase.PAYMENT_UNPAID)

        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 5)
        self.assertFalse(InventoryTransaction.objects.filter(reference_id=purchase.pk).exists())

    def test_receive_brings_stock_in(self):
        purchase = self._purchase(status=Purchase.STATUS_ORDERED)
        purchase = purchase_service.receive_purchase(shop=self.shop, purchase_id=purchase.pk, user=self.user)

        self.assertEqual(purchase.status, Purchase.STATUS_COMPLETED)
        self.assertIsNotNone(purchase.received_at)

        existing = Product.objects.get(pk=self.product.pk)
        self.assertEqual(existing.quantity, 6)
        row = InventoryTransaction.objects.get(product=existing, reference_id=purchase.pk)
        self.assertEqual(row.transaction_type, TxType.PURCHASE)
        self.assertEqual(row.reason, f"Received via purchase {purchase.purchase_number}")

        created = Product.objects.get(shop=self.shop, sku="NECK-01")
        self.assertEqual(created.quantity, 2)
        self.assertEqual(created.cost_price, Decimal("50000.00"))
        self.assertEqual(created.selling_price, Decimal("60000.00"))
        new_row = InventoryTransaction.objects.get(product=created)
        self.assertEqual((new_row.transaction_type, new_row.reason), (TxType.IN, "Initial stock from purchase"))
        self.assertEqual(purchase.items.get(sku="NECK-01").product_id, created.pk)

        self.assertTrue(stock_conservation_report(existing).is_consistent)
        self.assertTrue(stock_conservation_report(created).is_consistent)

        supplier = self._supplier()
        self.assertEqual(supplier.current_balance, Decimal("-163000.00"))
        self.assertEqual(supplier.total_purchases, Decimal("163000.00"))

    def test_receive_once(self):
        purchase = self._purchase()
        purchase_service.receive_purchase(shop=self.shop, purchase_id=purchase.pk)
        with self.assertRaises(ValidationError):
            purchase_service.receive_purchase(shop=self.shop, purchase_id=purchase.pk)
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 6)

    def test_supplier_balance_with_payments(self):
        purchase = self._purchase()
        purchase_service.add_purchase_payment(shop=self.shop, purchase_id=purchase.pk, amount="63000", mode="bank_transfer")
        purchase = purchase_service.receive_purchase(shop=self.shop, purchase_id=purchase.pk)
        self.assertEqual(self._supplier().current_balance, Decimal("-100000.00"))

        purchase, payment = purchase_service.add_purchase_payment(
            shop=self.shop, purchase_id=purchase.pk, amount="100000", mode="cash"
        )
        self.assertEqual(payment.amount, Decimal("100000.00"))
        self.assertEqual(purchase.payment_status, Purchase.PAYMENT_PAID)
        self.assertEqual(self._supplier().current_balance, Decimal("0.00"))

        with self.assertRaises(ValidationError):
            purchase_service.add_purchase_payment(shop=self.shop, purchase_id=purchase.pk, amount="1", mode="cash")

    def test_cancel(self):
        purchase = self._purchase()
        purchase = purchase_service.cancel_purchase(shop=self.shop, purchase_id=purchase.pk, reason="Supplier out of stock")
        self.assertEqual(purchase.status, Purchase.STATUS_CANCELLED)

        with self.assertRaises(ValidationError):
            purchase_service.receive_purchase(shop=self.shop, purchase_id=purchase.pk)
        with self.assertRaises(ValidationError):
            purchase_service.add_purchase_payment(shop=self.shop, purchase_id=purchase.pk, amount="10", mode="cash")

    def test_completed_purchase_cannot_be_cancelled(self):
        purchase = self._purchase()
        purchase_service.receive_purchase(shop=self.shop, purchase_id=purchase.pk)
        with self.assertRaises(ValidationError):
            purchase_service.cancel_purchase(shop=self.shop, purchase_id=purchase.pk)

    def test_update_and_delete_draft(self):
        purchase = self._purchase()
        purchase = purchase_service.update_purchase(
            shop=self.shop,
            purchase_id=purchase.pk,
            items=[{"product_id": self.product.pk, "quantity": 2, "unit_cost": "60000"}],
            discount_amount="5000",
        )
        self.assertEqual(purchase.grand_total, Decimal("115000.00"))
        self.assertEqual(purchase.items.count(), 1)

        with self.assertRaises(ValidationError):
            purchase_service.update_purchase(shop=self.shop, purchase_id=purchase.pk, discount_amount="200000")

        purchase_service.delete_purchase(shop=self.shop, purchase_id=purchase.pk)
        self.assertFalse(Purchase.objects.filter(pk=purchase.pk).exists())
        self.assertTrue(Purchase.all_objects.filter(pk=purchase.pk).exists())
        with self.assertRaises(NotFoundError):
            purchase_service.get_purchase(shop=self.shop, purchase_id=purchase.pk)

    def test_only_drafts_are_deleted(self):
        purchase = self._purchase(status=Purchase.STATUS_PENDING)
        with self.assertRaises(ValidationError):
            purchase_service.delete_purchase(shop=self.shop, purchase_id=purchase.pk)

    def test_invalid_lines(self):
        with self.assertRaises(ValidationError):
            self._purchase(items=[])
        with self.assertRaises(ValidationError):
            self._purchase(items=[{"quantity": 1, "unit_cost": "10"}])
        with self.assertRaises(ValidationError):
            self._purchase(status=Purchase.STATUS_COMPLETED)
        self.assertFalse(Purchase.all_objects.exists())

    def test_fractional_quantity_rejected(self):
        items = self._items()
        items[0]["quantity"] = 1.9
        with self.assertRaises(ValidationError):
            self._purchase(items=items)
        self.assertFalse(Purchase.all_objects.exists())

    def test_supplier_of_another_shop(self):
        other = make_shop(name="Other", code="OTH")
        foreign = Supplier.objects.create(shop=other, name="Elsewhere")
        with self.assertRaises(NotFoundError):
            purchase_service.create_purchase(shop=self.shop, supplier=foreign, items=self._items())
