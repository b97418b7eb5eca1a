from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from core.tests.factories import make_customer, make_product, make_shop, make_user
from customers.models import Customer
from sales.services import sale_service

User = get_user_model()


class CustomerApiTests(TestCase):
    def setUp(self):
        self.shop = make_shop()
        self.client = APIClient()
        self.client.force_authenticate(make_user(shop=self.shop))
        self.base = f"/api/shops/{self.shop.pk}/customers/"

    def test_create_ignores_aggregates(self):
        res = self.client.post(
            self.base,
            {"name": "Meera Iyer", "phone": " 9333333333 ", "total_spent": "5000.00", "loyalty_points": 40},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["phone"], "9333333333")
        self.assertEqual(res.data["total_spent"], "0.00")
        self.assertEqual(res.data["loyalty_points"], 0)
        self.assertEqual(str(Customer.objects.get(pk=res.data["id"]).shop_id), str(self.shop.pk))

    def test_loyalty_points(self):
        customer = make_customer(shop=self.shop)
        url = f"{self.base}{customer.pk}/loyalty/"

        res = self.client.post(url, {"action": "add", "points": 100}, format="json")
        self.assertEqual(res.data["loyalty_points"], 100)

        res = self.client.post(url, {"action": "redeem", "points": 150}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "validation_error")

        res = self.client.post(url, {"action": "redeem", "points": 60}, format="json")
        self.assertEqual(res.data["loyalty_points"], 40)

    def test_statistics_and_rebuild(self):
        customer = make_customer(shop=self.shop)
        product = make_product(shop=self.shop)
        sale_service.create_sale(shop=self.shop, customer=customer, items=[{"product_id": product.pk}])
        Customer.objects.filter(pk=customer.pk).update(total_orders=0)

        res = self.client.get(f"{self.base}{customer.pk}/statistics/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["drift"]["total_orders"], {"stored": 0, "derived": 1})
        self.assertEqual(res.data["derived"]["total_spent"], "66950.00")

        res = self.client.post(f"{self.base}{customer.pk}/rebuild/")
        self.assertEqual(res.data["total_orders"], 1)
        self.assertEqual(self.client.get(f"{self.base}{customer.pk}/statistics/").data["drift"], {})

    def test_search_and_due_filter(self):
        make_customer(shop=self.shop)
        make_customer(shop=self.shop, name="Ravi Kumar", phone="9444444444")
        Customer.objects.filter(phone="9444444444").update(total_due="100.00")

        self.assertEqual(self.client.get(self.base, {"q": "ravi"}).data["count"], 1)
        self.assertEqual(self.client.get(self.base, {"has_due": "true"}).data["count"], 1)

    def test_sales_staff_cannot_touch_loyalty(self):
        customer = make_customer(shop=self.shop)
        self.client.force_authenticate(make_user(shop=self.shop, role=User.ROLE_SALES_STAFF))
        res = self.client.post(f"{self.base}{customer.pk}/loyalty/", {"action": "add", "points": 5}, format="json")
        self.assertEqual(res.status_code, 403)
        self.assertEqual(self.client.get(self.base).status_code, 200)
