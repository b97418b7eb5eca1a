# core/tests/factories.py

"""
Shared fixtures for engine tests.

Defaults describe one shop selling 22K gold at 6000/g with 3% GST:
a 10 g ring with 500/g making charges bills at 66,950.00.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model

from customers.models import Customer
from products.services.catalog import create_product
from shops.models import Organization, Shop

User = get_user_model()

RING_TOTAL = Decimal("66950.00")


def make_shop(*, name="Main Branch", code="MAIN", **overrides) -> Shop:
    organization = overrides.pop("organization", None) or Organization.objects.create(name=f"{name} Org")
    fields = {
        "gold_rate": Decimal("6000.00"),
        "silver_rate": Decimal("80.00"),
        "default_gst_percentage": Decimal("3.00"),
    }
    fields.update(overrides)
    return Shop.objects.create(organization=organization, name=name, code=code, **fields)


def make_user(*, shop=None, role=User.ROLE_SHOP_ADMIN, email=None) -> User:
    return User.objects.create_user(
        email=email or f"{role}@example.com",
        password="pass",
        role=role,
        shop=shop,
    )


def make_customer(*, shop, name="Asha Rao", phone="9000000001") -> Customer:
    return Customer.objects.create(shop=shop, name=name, phone=phone)


def make_product(*, shop, sku="RING-22K-01", quantity=5, **fields):
    data = {
        "sku": sku,
        "name": "Plain Gold Ring",
        "metal_type": "gold",
        "purity": "22K",
        "gross_weight": Decimal("10.000"),
        "stone_weight": Decimal("0.000"),
        "making_charges_type": "per_gram",
        "making_charges_value": Decimal("500.00"),
        "cost_price": Decimal("60000.00"),
    }
    data.update(fields)
    return create_product(shop=shop, data=data, initial_quantity=quantity)
