from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from core.exceptions import NotFoundError, ValidationError
from core.tests.factories import RING_TOTAL, make_customer, make_product, make_shop
from customers.models import Customer
from customers.services import accumulator
from sales.services import sale_service


class CustomerAccumulatorTests(TestCase):
    """
    GUARANTEES:
    - Running aggregates stay equal to what sale history implies
    - rebuild_statistics() repairs any drift
    - Loyalty points never go negative
    """

    def setUp(self):
        self.shop = make_shop()
        self.customer = make_customer(shop=self.shop)
        self.product = make_product(shop=self.shop, quantity=5)

    def _sell(self, quantity=1, **kwargs):
        return sale_service.create_sale(
            shop=self.shop,
            customer=self.customer,
            items=[{"product_id": self.product.pk, "quantity": quantity}],
            **kwargs,
        )

    def _fresh(self):
        return Customer.objects.get(pk=self.customer.pk)

    def test_record_and_reverse(self):
        accumulator.record_sale(customer_id=self.customer.pk, grand_total=Decimal("1000.00"), due_amount=Decimal("400.00"))
        customer = self._fresh()
        self.assertEqual(customer.total_orders, 1)
        self.assertEqual(customer.average_order_value, Decimal("1000.00"))
        self.assertEqual(customer.current_balance, Decimal("-400.00"))

        accumulator.reverse_sale(customer_id=self.customer.pk, grand_total=Decimal("1000.00"), due_amount=Decimal("400.00"))
        customer = self._fresh()
        self.assertEqual((customer.total_orders, customer.total_spent), (0, Decimal("0.00")))
        self.assertEqual(customer.current_balance, Decimal("0.00"))
        self.assertEqual(customer.average_order_value, Decimal("0.00"))

    def test_unknown_customer(self):
        with self.assertRaises(NotFoundError):
            accumulator.record_sale(
                customer_id="00000000-0000-0000-0000-000000000000",
                grand_total=Decimal("1"),
                due_amount=Decimal("0"),
            )

    def test_history_matches_after_sale_lifecycle(self):
        self._sell(payments=[{"amount": RING_TOTAL, "mode": "cash"}])
        cancelled = self._sell()
        returned = self._sell(quantity=2)
        sale_service.cancel_sale(shop=self.shop, sale_id=cancelled.pk)
        sale_service.return_sale(shop=self.shop, sale_id=returned.pk, items=[{"sale_item_id": returned.items.get().pk, "quantity": 1}])

        report = accumulator.statistics_drift(self._fresh())
        self.assertEqual(report["drift"], {})
        self.assertEqual(report["stored"]["total_orders"], 2)
        self.assertEqual(report["stored"]["total_spent"], RING_TOTAL * 2)
        self.assertEqual(report["stored"]["total_due"], RING_TOTAL * 2)

    def test_rebuild_repairs_drift(self):
        self._sell()
        Customer.objects.filter(pk=self.customer.pk).update(total_orders=7, total_spent=Decimal("1.00"))

        drift = accumulator.statistics_drift(self._fresh())["drift"]
        self.assertEqual(set(drift), {"total_orders", "total_spent"})

        customer = accumulator.rebuild_statistics(customer_id=self.customer.pk)
        self.assertEqual(customer.total_orders, 1)
        self.assertEqual(customer.total_spent, RING_TOTAL)
        self.assertEqual(customer.total_due, RING_TOTAL)
        self.assertEqual(customer.current_balance, -RING_TOTAL)
        self.assertEqual(accumulator.statistics_drift(customer)["drift"], {})

    def test_loyalty_points(self):
        accumulator.add_loyalty_points(customer_id=self.customer.pk, points=50)
        customer = accumulator.redeem_loyalty_points(customer_id=self.customer.pk, points=20)
        self.assertEqual(customer.loyalty_points, 30)

        with self.assertRaises(ValidationError):
            accumulator.redeem_loyalty_points(customer_id=self.customer.pk, points=31)
        with self.assertRaises(ValidationError):
            accumulator.add_loyalty_points(customer_id=self.customer.pk, points=0)
        self.assertEqual(self._fresh().loyalty_points, 30)


class ReconcileCustomerStatsCommandTests(TestCase):
    def setUp(self):
        self.shop = make_shop()
        self.customer = make_customer(shop=self.shop)
        product = make_product(shop=self.shop)
        sale_service.create_sale(shop=self.shop, customer=self.customer, items=[{"product_id": product.pk}])

    def _run(self, *args):
        out, err = StringIO(), StringIO()
        call_command("reconcile_customer_stats", *args, stdout=out, stderr=err)
        return out.getvalue(), err.getvalue()

    def test_clean_history(self):
        out, err = self._run()
        self.assertIn("[OK] All customer aggregates match sale history", out)
        self.assertEqual(err, "")

    def test_fix_rebuilds(self):
        Customer.objects.filter(pk=self.customer.pk).update(total_spent=Decimal("0.00"))

        out, err = self._run()
        self.assertIn("[DRIFT] Asha Rao", err)
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).total_spent, Decimal("0.00"))

        out, err = self._run("--fix")
        self.assertIn("[FIXED] Asha Rao", out)
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).total_spent, RING_TOTAL)
