from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from core.tests.factories import make_product, make_shop, make_user
from products.models import InventoryTransaction, Product

User = get_user_model()


class ProductApiTests(TestCase):
    """
    GUARANTEES:
    - quantity is never writable through the API
    - opening stock and adjustments land in the ledger
    """

    def setUp(self):
        self.shop = make_shop()
        self.client = APIClient()
        self.client.force_authenticate(make_user(shop=self.shop))
        self.base = f"/api/shops/{self.shop.pk}/products/"

    def test_create_with_opening_stock(self):
        res = self.client.post(
            self.base,
            {
                "sku": "ear-01",
                "name": "Jhumka Earrings",
                "gross_weight": "6.500",
                "cost_price": "30000.00",
                "quantity": 50,
                "initial_quantity": 4,
            },
            format="json",
        )

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["sku"], "EAR-01")
        self.assertEqual(res.data["quantity"], 4)
        self.assertEqual(res.data["opening_quantity"], 0)

        row = InventoryTransaction.objects.get(product_id=res.data["id"])
        self.assertEqual(row.reason, "Initial stock")

    def test_duplicate_sku_is_conflict(self):
        make_product(shop=self.shop)
        res = self.client.post(self.base, {"sku": "RING-22K-01", "name": "Copy"}, format="json")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "conflict")

    def test_patch_cannot_touch_quantity(self):
        product = make_product(shop=self.shop, quantity=2)
        res = self.client.patch(f"{self.base}{product.pk}/", {"quantity": 99, "name": "Renamed"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["quantity"], 2)
        self.assertEqual(Product.objects.get(pk=product.pk).name, "Renamed")

    def test_adjust_ledger_and_conservation(self):
        product = make_product(shop=self.shop, quantity=2)

        res = self.client.post(f"{self.base}{product.pk}/adjust/", {"quantity_delta": -1, "damaged": True}, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["transaction_type"], "DAMAGE")
        self.assertEqual(res.data["signed_quantity"], -1)

        res = self.client.post(f"{self.base}{product.pk}/adjust/", {"quantity_delta": -5}, format="json")
        self.assertEqual(res.status_code, 409)

        res = self.client.get(f"{self.base}{product.pk}/ledger/")
        self.assertEqual(res.data["count"], 2)

        res = self.client.get(f"{self.base}{product.pk}/conservation/")
        self.assertTrue(res.data["is_consistent"])
        self.assertEqual(res.data["current_quantity"], 1)

    def test_delete_deactivates(self):
        product = make_product(shop=self.shop)
        res = self.client.delete(f"{self.base}{product.pk}/")
        self.assertEqual(res.status_code, 204)
        self.assertFalse(Product.objects.get(pk=product.pk).is_active)

    def test_summary_and_filters(self):
        make_product(shop=self.shop, quantity=3)
        make_product(shop=self.shop, sku="PEND-01", quantity=0)

        res = self.client.get(f"{self.base}summary/")
        self.assertEqual(res.data["products"], 2)
        self.assertEqual(res.data["units_in_stock"], 3)
        self.assertEqual(res.data["stock_value"], "180000.00")

        res = self.client.get(self.base, {"in_stock": "false"})
        self.assertEqual(res.data["count"], 1)

    def test_viewer_cannot_adjust(self):
        product = make_product(shop=self.shop)
        self.client.force_authenticate(make_user(shop=self.shop, role=User.ROLE_VIEWER))
        res = self.client.post(f"{self.base}{product.pk}/adjust/", {"quantity_delta": 1}, format="json")
        self.assertEqual(res.status_code, 403)
        self.assertEqual(self.client.get(self.base).status_code, 200)
