# products/models/product.py

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Product(models.Model):
    """
    A stock-bearing jewelry article.

    STOCK MODEL (IMPORTANT):
    - `quantity` is a counter owned by products.services.inventory_ledger
    - every change to it has exactly one InventoryTransaction row
    - `opening_quantity` is the counter value at creation; stock conservation
      is checked as quantity == opening_quantity + Σ signed ledger deltas
    """

    class MetalType(models.TextChoices):
        GOLD = "gold", "Gold"
        SILVER = "silver", "Silver"
        PLATINUM = "platinum", "Platinum"
        DIAMOND = "diamond", "Diamond"
        MIXED = "mixed", "Mixed"

    class SaleStatus(models.TextChoices):
        AVAILABLE = "available", "Available"
        RESERVED = "reserved", "Reserved"
        SOLD = "sold", "Sold"
        ON_HOLD = "on_hold", "On Hold"
        RETURNED = "returned", "Returned"

    class MarkupType(models.TextChoices):
        PERCENT = "PERCENT", "Percent"
        FIXED = "FIXED", "Fixed Amount"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    shop = models.ForeignKey(
        "shops.Shop",
        on_delete=models.PROTECT,
        related_name="products",
    )

    sku = models.CharField(max_length=128, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    category = models.CharField(max_length=100, blank=True)

    metal_type = models.CharField(max_length=16, choices=MetalType.choices, default=MetalType.GOLD)
    purity = models.CharField(max_length=16, blank=True, help_text="e.g. 22K, 18K, 925")

    gross_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))
    stone_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))
    net_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))

    making_charges_type = models.CharField(max_length=16, default="per_gram")
    making_charges_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    stone_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    cost_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    selling_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    markup_type = models.CharField(max_length=16, choices=MarkupType.choices, default=MarkupType.PERCENT)
    markup_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("20.00"),
        help_text="Percent (e.g. 20.00) if PERCENT; currency amount if FIXED.",
    )

    quantity = models.PositiveIntegerField(default=0)
    opening_quantity = models.PositiveIntegerField(default=0, editable=False)
    sale_status = models.CharField(max_length=16, choices=SaleStatus.choices, default=SaleStatus.AVAILABLE)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["shop", "sku"], name="uniq_product_sku_per_shop"),
            models.CheckConstraint(condition=Q(quantity__gte=0), name="product_quantity_non_negative"),
        ]
        indexes = [
            models.Index(fields=["shop", "sale_status"]),
            models.Index(fields=["name"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if self.stone_weight and self.gross_weight and self.stone_weight > self.gross_weight:
            raise ValidationError("stone_weight cannot exceed gross_weight")
        if self.markup_value is not None and Decimal(self.markup_value) < Decimal("0.00"):
            raise ValidationError("markup_value cannot be negative")

    def save(self, *args, **kwargs):
        if self._state.adding:
            self.opening_quantity = self.quantity
            if not self.net_weight and self.gross_weight:
                self.net_weight = self.gross_weight - (self.stone_weight or Decimal("0"))
        super().save(*args, **kwargs)

    def compute_selling_price_from_cost(self, unit_cost) -> Decimal:
        cost = Decimal(str(unit_cost))
        if cost <= Decimal("0.00"):
            raise ValidationError("unit_cost must be greater than zero")

        mv = Decimal(str(self.markup_value or "0.00"))
        if self.markup_type == self.MarkupType.PERCENT:
            selling = cost * (Decimal("1.00") + (mv / Decimal("100.00")))
        else:
            selling = cost + mv

        return selling.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
