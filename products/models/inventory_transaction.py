# products/models/inventory_transaction.py

"""
INVENTORY LEDGER ROW

GUARANTEES:
- Append-only (no updates, no deletes)
- new_quantity == previous_quantity ± quantity, by direction
- Transaction type constrains direction where it is fixed
- Sale / return rows reference the document that caused them
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .product import Product


class InventoryTransaction(models.Model):
    class Direction(models.TextChoices):
        IN = "in", "Stock In"
        OUT = "out", "Stock Out"

    class TransactionType(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"
        SALE = "SALE", "Sale"
        RETURN = "RETURN", "Sale Return"
        PURCHASE = "PURCHASE", "Purchase"
        ADJUSTMENT = "ADJUSTMENT", "Adjustment"
        DAMAGE = "DAMAGE", "Damage"

    class ReferenceType(models.TextChoices):
        SALE = "sale", "Sale"
        PURCHASE = "purchase", "Purchase"
        MANUAL_ADJUSTMENT = "manual_adjustment", "Manual Adjustment"
        PRODUCT_CREATION = "product_creation", "Product Creation"

    TYPE_TO_DIRECTION = {
        TransactionType.IN: Direction.IN,
        TransactionType.PURCHASE: Direction.IN,
        TransactionType.RETURN: Direction.IN,
        TransactionType.OUT: Direction.OUT,
        TransactionType.SALE: Direction.OUT,
        TransactionType.DAMAGE: Direction.OUT,
        TransactionType.ADJUSTMENT: None,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="inventory_transactions"
    )
    shop = models.ForeignKey(
        "shops.Shop", on_delete=models.PROTECT, related_name="inventory_transactions"
    )

    transaction_type = models.CharField(max_length=16, choices=TransactionType.choices)
    direction = models.CharField(max_length=3, choices=Direction.choices)

    quantity = models.PositiveIntegerField()
    previous_quantity = models.PositiveIntegerField()
    new_quantity = models.PositiveIntegerField()

    reference_type = models.CharField(max_length=32, choices=ReferenceType.choices, blank=True)
    reference_id = models.UUIDField(null=True, blank=True, db_index=True)
    reference_number = models.CharField(max_length=64, blank=True)

    value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    reason = models.CharField(max_length=255)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_transactions",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["product", "created_at"]),
            models.Index(fields=["shop", "created_at"]),
            models.Index(fields=["transaction_type"]),
            models.Index(fields=["reference_type", "reference_id"]),
        ]

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.direction == self.Direction.IN else -self.quantity

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        expected = self.TYPE_TO_DIRECTION.get(self.transaction_type)
        if expected and self.direction != expected:
            raise ValidationError(f"{self.transaction_type} requires direction={expected}")

        if self.previous_quantity + self.signed_quantity != self.new_quantity:
            raise ValidationError(
                "new_quantity must equal previous_quantity ± quantity "
                f"({self.previous_quantity} {self.direction} {self.quantity} != {self.new_quantity})"
            )

        if (
            self.transaction_type in {self.TransactionType.SALE, self.TransactionType.RETURN}
            and not self.reference_id
        ):
            raise ValidationError("SALE / RETURN rows must reference a sale")

        if not (self.reason or "").strip():
            raise ValidationError("reason is required")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("InventoryTransaction records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("InventoryTransaction records are immutable and cannot be deleted")

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.transaction_type} | {self.signed_quantity:+d}"
