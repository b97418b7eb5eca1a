# shops/models.py

"""
ORGANIZATION → SHOP

A shop is the tenant boundary for sales, stock and customers. Its settings
are read-only inputs to the financial calculator:

- invoice prefix + counter (sequential, shop-scoped)
- default GST rate
- discount ceiling
- old-gold deduction percentage
- refund-on-exchange policy
"""

import uuid
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q


class Organization(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Shop(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        Organization,
        on_delete=models.PROTECT,
        related_name="shops",
    )

    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, blank=True, default="", db_index=True)

    address = models.TextField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    gst_number = models.CharField(max_length=20, blank=True)
    currency = models.CharField(max_length=3, default="INR")

    # ---------------- numbering ----------------
    invoice_prefix = models.CharField(max_length=10, default="INV")
    current_invoice_number = models.PositiveIntegerField(default=0)
    purchase_prefix = models.CharField(max_length=10, default="PUR")
    current_purchase_number = models.PositiveIntegerField(default=0)

    # ---------------- pricing policy ----------------
    default_gst_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("3.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    max_discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Ceiling for any discount, as a percentage of the amount it applies to. Empty = no ceiling.",
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    old_gold_deduction_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Melting/wastage deduction applied to old-gold appraisal.",
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    allow_refund_on_exchange = models.BooleanField(
        default=False,
        help_text="If set, net payable may go negative when old gold exceeds the bill.",
    )

    # ---------------- metal rates (per gram) ----------------
    gold_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    silver_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    platinum_rate = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "code"],
                condition=~Q(code=""),
                name="uniq_shop_code_per_org",
            ),
        ]

    def rate_for_metal(self, metal_type: str) -> Decimal:
        return {
            "gold": self.gold_rate,
            "silver": self.silver_rate,
            "platinum": self.platinum_rate,
        }.get(metal_type, Decimal("0.00"))

    def __str__(self):
        return f"{self.name} ({self.code})" if self.code else self.name
