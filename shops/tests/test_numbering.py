import uuid

from django.test import TestCase
from django.utils import timezone

from core.exceptions import NotFoundError
from core.tests.factories import make_shop
from shops.models import Shop
from shops.services.numbering import next_invoice_number, next_purchase_number


class DocumentNumberingTests(TestCase):
    """
    GUARANTEES:
    - Invoice and purchase counters are independent and per shop
    - Numbers carry the shop prefix and the two-digit year
    """

    def setUp(self):
        self.yy = timezone.localdate().strftime("%y")
        self.shop = make_shop()

    def test_invoice_numbers_are_sequential(self):
        self.assertEqual(next_invoice_number(shop=self.shop), f"INV-{self.yy}-00001")
        self.assertEqual(next_invoice_number(shop=self.shop), f"INV-{self.yy}-00002")
        self.shop.refresh_from_db()
        self.assertEqual(self.shop.current_invoice_number, 2)

    def test_counters_do_not_share_state(self):
        next_invoice_number(shop=self.shop)
        self.assertEqual(next_purchase_number(shop=self.shop), f"PUR-{self.yy}-00001")

    def test_each_shop_has_its_own_sequence(self):
        other = make_shop(name="Second Branch", code="SEC", invoice_prefix="SB")
        next_invoice_number(shop=self.shop)
        self.assertEqual(next_invoice_number(shop=other), f"SB-{self.yy}-00001")

    def test_unsaved_shop_is_not_found(self):
        ghost = Shop(id=uuid.uuid4(), organization=self.shop.organization, name="Ghost")
        with self.assertRaises(NotFoundError):
            next_invoice_number(shop=ghost)
