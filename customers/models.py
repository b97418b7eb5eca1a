# customers/models.py

"""
CUSTOMER (shop-scoped)

Running aggregates are a materialized cache of the customer's sale history.

GUARANTEES:
- Aggregates are written ONLY by customers.services.accumulator.
- They can always be rebuilt from sales (rebuild_statistics /
  `manage.py reconcile_customer_stats`).
"""

import uuid
from decimal import Decimal

from django.db import models


class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.PROTECT,
        related_name="customers",
    )

    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, db_index=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)

    # ---------------- credit ----------------
    credit_limit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    opening_balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    current_balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_due = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    loyalty_points = models.PositiveIntegerField(default=0)

    # ---------------- statistics ----------------
    total_orders = models.PositiveIntegerField(default=0)
    completed_orders = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    average_order_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    first_order_date = models.DateTimeField(null=True, blank=True)
    last_order_date = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["shop", "phone"], name="uniq_customer_phone_per_shop"),
        ]
        indexes = [
            models.Index(fields=["shop", "name"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone})"
