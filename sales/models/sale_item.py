# sales/models/sale_item.py

"""
SALE ITEM

Inputs (weights, rate, charges, discount, GST %) are a snapshot taken when
the line was added. Derived columns are rewritten on every recalculation.

Per-unit columns: net_weight, metal_value, making_charges, gross_taxable,
discount_amount, taxable_amount, gst_amount.
Line columns: sale_discount_share, line_taxable_amount, line_gst_amount,
item_total.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models


class SaleItem(models.Model):
    MAKING_PER_GRAM = "per_gram"
    MAKING_PERCENTAGE = "percentage"
    MAKING_FLAT = "flat"

    MAKING_CHOICES = [
        (MAKING_PER_GRAM, "Per Gram"),
        (MAKING_PERCENTAGE, "Percentage of Metal Value"),
        (MAKING_FLAT, "Flat"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey("sales.Sale", on_delete=models.CASCADE, related_name="items")
    line_number = models.PositiveIntegerField(default=1)

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sale_items",
        help_text="Empty for non-stock-tracked lines (e.g. repair labour).",
    )
    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=128, blank=True, default="")
    metal_type = models.CharField(max_length=16, blank=True, default="")
    purity = models.CharField(max_length=16, blank=True, default="")

    quantity = models.PositiveIntegerField(default=1)
    returned_quantity = models.PositiveIntegerField(default=0)

    # ---------------- inputs ----------------
    gross_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))
    stone_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))
    rate_per_gram = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    stone_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    making_charges_type = models.CharField(max_length=16, choices=MAKING_CHOICES, default=MAKING_PER_GRAM)
    making_charges_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    other_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_type = models.CharField(max_length=16, blank=True, default="")
    discount_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    gst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("3.00"))

    # ---------------- derived ----------------
    net_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))
    metal_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    making_charges = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    gross_taxable = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    taxable_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    gst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    sale_discount_share = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    line_taxable_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    line_gst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    item_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["line_number", "created_at"]
        indexes = [
            models.Index(fields=["sale"]),
            models.Index(fields=["product"]),
        ]

    @property
    def returnable_quantity(self) -> int:
        return self.quantity - self.returned_quantity

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"
