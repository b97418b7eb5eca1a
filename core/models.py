# core/models.py

"""
Abstract building blocks shared by Sale and Purchase.

- PaymentStateMixin: total / paid / due / status columns. Written ONLY by
  sales.services.payment_tracker.
- PaymentRecord: one append-only payment event.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class PaymentStateMixin(models.Model):
    PAYMENT_UNPAID = "unpaid"
    PAYMENT_PARTIAL = "partial"
    PAYMENT_PAID = "paid"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_UNPAID, "Unpaid"),
        (PAYMENT_PARTIAL, "Partially Paid"),
        (PAYMENT_PAID, "Paid"),
    ]

    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    due_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    credit_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Paid in excess of the current total (never shown as negative due).",
    )
    payment_status = models.CharField(
        max_length=16,
        choices=PAYMENT_STATUS_CHOICES,
        default=PAYMENT_UNPAID,
        db_index=True,
    )

    class Meta:
        abstract = True


class PaymentRecord(models.Model):
    MODE_CASH = "cash"
    MODE_CARD = "card"
    MODE_UPI = "upi"
    MODE_CHEQUE = "cheque"
    MODE_BANK_TRANSFER = "bank_transfer"

    MODE_CHOICES = [
        (MODE_CASH, "Cash"),
        (MODE_CARD, "Card"),
        (MODE_UPI, "UPI"),
        (MODE_CHEQUE, "Cheque"),
        (MODE_BANK_TRANSFER, "Bank Transfer"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    mode = models.CharField(max_length=16, choices=MODE_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    paid_at = models.DateTimeField()

    transaction_id = models.CharField(max_length=128, blank=True, default="")
    reference_number = models.CharField(max_length=128, blank=True, default="")
    bank_name = models.CharField(max_length=128, blank=True, default="")
    cheque_number = models.CharField(max_length=32, blank=True, default="")
    cheque_date = models.DateField(null=True, blank=True)
    notes = models.CharField(max_length=255, blank=True, default="")

    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ["paid_at", "created_at"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Payment records are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Payment records are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.mode} | {self.amount}"
