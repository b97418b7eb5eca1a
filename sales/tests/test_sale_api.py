from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from core.tests.factories import make_customer, make_product, make_shop, make_user
from products.models import InventoryTransaction, Product
from sales.models import Sale

User = get_user_model()


class SaleApiTests(TestCase):
    """
    GUARANTEES:
    - Routes are scoped to the caller's shop (foreign shop -> 404)
    - Engine errors render as {"error": {"code", "message"}} with their status
    - Role capabilities gate every action
    """

    def setUp(self):
        self.shop = make_shop()
        self.customer = make_customer(shop=self.shop)
        self.product = make_product(shop=self.shop, quantity=5)
        self.client = APIClient()
        self.client.force_authenticate(make_user(shop=self.shop))
        self.base = f"/api/shops/{self.shop.pk}/sales/"

    def _create(self, quantity=1, **extra):
        payload = {
            "customer_id": str(self.customer.pk),
            "items": [{"product_id": str(self.product.pk), "quantity": quantity}],
            **extra,
        }
        return self.client.post(self.base, payload, format="json")

    def test_create_sale(self):
        res = self._create(payments=[{"amount": "10000.00", "mode": "cash"}])

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["status"], Sale.STATUS_CONFIRMED)
        self.assertEqual(res.data["grand_total"], "66950.00")
        self.assertEqual(res.data["due_amount"], "56950.00")
        self.assertEqual(res.data["payment_status"], Sale.PAYMENT_PARTIAL)
        self.assertEqual(len(res.data["items"]), 1)
        self.assertEqual(len(res.data["payments"]), 1)
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 4)

    def test_insufficient_stock_is_conflict(self):
        res = self._create(quantity=9)

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "insufficient_stock")
        self.assertEqual(res.data["error"]["context"]["available"], 5)
        self.assertFalse(Sale.all_objects.exists())

    def test_validation_errors(self):
        res = self.client.post(self.base, {"customer_id": str(self.customer.pk), "items": []}, format="json")
        self.assertEqual(res.status_code, 400)

        res = self._create(payments=[{"amount": "99999.00", "mode": "cash"}])
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "validation_error")

    def test_unknown_customer_is_not_found(self):
        other = make_shop(name="Other", code="OTH")
        stranger = make_customer(shop=other, phone="9222222222")
        res = self.client.post(
            self.base,
            {"customer_id": str(stranger.pk), "items": [{"product_id": str(self.product.pk)}]},
            format="json",
        )
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["code"], "not_found")

    def test_foreign_shop_is_hidden(self):
        other = make_shop(name="Other", code="OTH")
        res = self.client.get(f"/api/shops/{other.pk}/sales/")
        self.assertEqual(res.status_code, 404)

    def test_org_admin_reaches_any_shop(self):
        other = make_shop(name="Other", code="OTH")
        admin = make_user(role=User.ROLE_ADMIN)
        self.client.force_authenticate(admin)
        res = self.client.get(f"/api/shops/{other.pk}/sales/")
        self.assertEqual(res.status_code, 200)

    def test_anonymous_rejected(self):
        self.client.force_authenticate(None)
        res = self.client.get(self.base)
        self.assertEqual(res.status_code, 401)

    def test_sales_staff_cannot_cancel(self):
        sale_id = self._create().data["id"]
        self.client.force_authenticate(make_user(shop=self.shop, role=User.ROLE_SALES_STAFF))

        res = self.client.post(f"{self.base}{sale_id}/cancel/", {"reason": "no"}, format="json")
        self.assertEqual(res.status_code, 403)
        self.assertEqual(Sale.objects.get(pk=sale_id).status, Sale.STATUS_CONFIRMED)

        res = self.client.post(f"{self.base}{sale_id}/payments/", {"amount": "100", "mode": "cash"}, format="json")
        self.assertEqual(res.status_code, 201)

    def test_viewer_is_read_only(self):
        self.client.force_authenticate(make_user(shop=self.shop, role=User.ROLE_VIEWER))
        self.assertEqual(self.client.get(self.base).status_code, 200)
        self.assertEqual(self._create().status_code, 403)

    def test_cancel_and_invalid_transition(self):
        sale_id = self._create().data["id"]

        res = self.client.post(f"{self.base}{sale_id}/cancel/", {"reason": "Changed mind"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], Sale.STATUS_CANCELLED)
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 5)

        res = self.client.post(f"{self.base}{sale_id}/complete/")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "invalid_transition")

    def test_lifecycle_actions(self):
        sale_id = self._create(status="draft").data["id"]

        self.assertEqual(self.client.post(f"{self.base}{sale_id}/submit/").data["status"], "pending")
        self.assertEqual(self.client.post(f"{self.base}{sale_id}/confirm/").data["status"], "confirmed")
        res = self.client.post(f"{self.base}{sale_id}/deliver/", {"address": "12 MG Road"}, format="json")
        self.assertEqual(res.data["status"], "delivered")
        self.assertEqual(self.client.post(f"{self.base}{sale_id}/complete/").data["status"], "completed")

        res = self.client.post(f"{self.base}{sale_id}/return/", {"reason": "Defect"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "returned")
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 5)

    def test_discount_and_old_gold(self):
        sale_id = self._create().data["id"]

        res = self.client.post(
            f"{self.base}{sale_id}/discount/", {"discount_type": "flat", "value": "950"}, format="json"
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["grand_total"], "65972.00")

        res = self.client.delete(f"{self.base}{sale_id}/discount/")
        self.assertEqual(res.data["grand_total"], "66950.00")

        res = self.client.post(
            f"{self.base}{sale_id}/old-gold/",
            {"items": [{"gross_weight": "10.000", "rate_per_gram": "5000", "deduction_percentage": "2"}]},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["net_payable"], "17950.00")

        og_id = res.data["old_gold_items"][0]["id"]
        res = self.client.delete(f"{self.base}{sale_id}/old-gold/{og_id}/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["net_payable"], "66950.00")

    def test_draft_edit_and_bulk_delete(self):
        first = self._create(status="draft").data["id"]
        second = self._create(status="draft").data["id"]

        res = self.client.patch(
            f"{self.base}{first}/",
            {"items": [{"product_id": str(self.product.pk), "quantity": 2}], "notes": "Two rings"},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["grand_total"], "133900.00")

        res = self.client.post(f"{self.base}bulk-delete/", {"sale_ids": [first, second]}, format="json")
        self.assertEqual(res.data, {"deleted": 2})
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 5)
        self.assertEqual(self.client.get(self.base).data["count"], 0)

    def test_read_endpoints(self):
        sale_id = self._create(due_date="2020-01-01").data["id"]

        res = self.client.get(self.base, {"payment_status": "unpaid"})
        self.assertEqual(res.data["count"], 1)

        res = self.client.get(f"{self.base}{sale_id}/receipt/")
        self.assertEqual(res.data["totals"]["grand_total"], "66950.00")

        res = self.client.get(f"{self.base}{sale_id}/payments/")
        self.assertEqual(res.data, [])

        res = self.client.get(f"{self.base}pending-payments/", {"overdue": "true"})
        self.assertEqual(res.data["count"], 1)

        res = self.client.get(f"{self.base}summary/")
        self.assertEqual(res.data["pending_payments"]["count"], 1)
        self.assertEqual(res.data["overdue"]["value"], "66950.00")

    def test_long_return_reason_is_accepted(self):
        sale_id = self._create().data["id"]
        reason = "x" * 255

        res = self.client.post(f"{self.base}{sale_id}/return/", {"reason": reason}, format="json")

        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["return_reason"], reason)
        row = InventoryTransaction.objects.get(product=self.product, transaction_type="RETURN")
        self.assertEqual(row.reason, f"Returned via invoice {res.data['invoice_number']}")

    def test_amount_range_filter(self):
        self._create()
        self._create(quantity=2)

        res = self.client.get(self.base, {"min_amount": "100000"})
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["grand_total"], "133900.00")

        res = self.client.get(self.base, {"min_amount": "60000", "max_amount": "70000"})
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["grand_total"], "66950.00")

        res = self.client.get(self.base, {"max_amount": "1000"})
        self.assertEqual(res.data["count"], 0)

    def test_summary_nets_out_returns(self):
        sale_id = self._create().data["id"]
        self._create()
        self.client.post(f"{self.base}{sale_id}/return/", {}, format="json")

        res = self.client.get(f"{self.base}summary/")

        self.assertEqual(res.data["today"]["count"], 2)
        self.assertEqual(res.data["today"]["value"], "66950.00")
        self.assertEqual(res.data["month_to_date"]["value"], "66950.00")
