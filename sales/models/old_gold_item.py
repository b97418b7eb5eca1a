# sales/models/old_gold_item.py

import uuid
from decimal import Decimal

from django.db import models


class OldGoldItem(models.Model):
    """
    Customer-supplied used metal offsetting the bill.

    `deduction_percentage` is the shop's melting/wastage deduction at the
    time the item was taken in; `value` is recomputed from these inputs.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey("sales.Sale", on_delete=models.CASCADE, related_name="old_gold_items")

    description = models.CharField(max_length=255, blank=True, default="")
    metal_type = models.CharField(max_length=16, default="gold")
    purity = models.CharField(max_length=16, blank=True, default="")

    gross_weight = models.DecimalField(max_digits=10, decimal_places=3)
    stone_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))
    net_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))
    rate_per_gram = models.DecimalField(max_digits=12, decimal_places=2)
    deduction_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.metal_type} {self.net_weight}g = {self.value}"
