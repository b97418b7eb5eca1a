# sales/models/sale.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import PaymentStateMixin

User = settings.AUTH_USER_MODEL


class ActiveSaleManager(models.Manager):
    """Hides soft-deleted sales."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class Sale(PaymentStateMixin):
    """
    Aggregate root of one jewelry sale.

    GUARANTEES:
    - Financial columns are written ONLY by the financial calculator
      (through sales.services.sale_service), always from item data.
    - Payment columns are written ONLY by the payment tracker.
    - Stock changes for its items live in the inventory ledger, referenced
      by this sale's id.
    - Never physically deleted; `deleted_at` soft-marks a deleted draft.

    IDENTITIES:
    - grand_total = round(subtotal + total_gst - total_discount)
    - round_off   = grand_total - (subtotal + total_gst - total_discount)
    - net_payable = grand_total - old_gold_value (floored at 0 unless the
      shop allows refund-on-exchange; the floored excess is exchange_refund_due)
    - total_amount (payment) = net_payable
    """

    STATUS_DRAFT = "draft"
    STATUS_PENDING = "pending"
    STATUS_CONFIRMED = "confirmed"
    STATUS_DELIVERED = "delivered"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_RETURNED = "returned"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_RETURNED, "Returned"),
    ]

    APPROVAL_PENDING = "pending"
    APPROVAL_APPROVED = "approved"
    APPROVAL_REJECTED = "rejected"

    APPROVAL_CHOICES = [
        (APPROVAL_PENDING, "Pending"),
        (APPROVAL_APPROVED, "Approved"),
        (APPROVAL_REJECTED, "Rejected"),
    ]

    class SaleType(models.TextChoices):
        RETAIL = "retail", "Retail"
        WHOLESALE = "wholesale", "Wholesale"
        EXCHANGE = "exchange", "Exchange"
        ORDER_FULFILLMENT = "order_fulfillment", "Order Fulfillment"
        REPAIR_BILLING = "repair_billing", "Repair Billing"
        ESTIMATE = "estimate", "Estimate"

    class DeliveryType(models.TextChoices):
        IMMEDIATE = "immediate", "Immediate"
        SCHEDULED = "scheduled", "Scheduled"
        COURIER = "courier", "Courier"
        PICKUP = "pickup", "Pickup"

    class RefundStatus(models.TextChoices):
        NOT_APPLICABLE = "not_applicable", "Not Applicable"
        PENDING = "pending", "Pending"

    DISCOUNT_PERCENTAGE = "percentage"
    DISCOUNT_FLAT = "flat"
    DISCOUNT_TYPE_CHOICES = [
        (DISCOUNT_PERCENTAGE, "Percentage"),
        (DISCOUNT_FLAT, "Flat"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    shop = models.ForeignKey("shops.Shop", on_delete=models.PROTECT, related_name="sales")
    customer = models.ForeignKey("customers.Customer", on_delete=models.PROTECT, related_name="sales")

    invoice_number = models.CharField(max_length=64, help_text="Shop-scoped sequential number")
    invoice_date = models.DateTimeField(auto_now_add=True)
    sale_type = models.CharField(max_length=32, choices=SaleType.choices, default=SaleType.RETAIL)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_CONFIRMED, db_index=True)

    approval_status = models.CharField(max_length=16, choices=APPROVAL_CHOICES, default=APPROVAL_APPROVED)
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.CharField(max_length=255, blank=True, default="")

    # ---------------- sale-level discount (input) ----------------
    discount_type = models.CharField(max_length=16, choices=DISCOUNT_TYPE_CHOICES, blank=True, default="")
    discount_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_reason = models.CharField(max_length=255, blank=True, default="")

    # ---------------- financials (derived) ----------------
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_metal_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_stone_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_making_charges = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_other_charges = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_discount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_taxable_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_gst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    cgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    sgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    round_off = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal("0.00"))
    grand_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    old_gold_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    net_payable = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    exchange_refund_due = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Old-gold value above the bill, flagged for manual refund.",
    )

    due_date = models.DateField(null=True, blank=True)

    # ---------------- delivery ----------------
    delivery_type = models.CharField(max_length=16, choices=DeliveryType.choices, blank=True, default="")
    delivery_address = models.TextField(blank=True, default="")
    scheduled_delivery_date = models.DateField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    delivered_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    completed_at = models.DateTimeField(null=True, blank=True)

    # ---------------- cancellation (terminal payload) ----------------
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    cancellation_reason = models.CharField(max_length=255, blank=True, default="")
    cancellation_refund_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    cancellation_refund_status = models.CharField(
        max_length=16, choices=RefundStatus.choices, blank=True, default=""
    )

    # ---------------- return (terminal payload) ----------------
    returned_at = models.DateTimeField(null=True, blank=True)
    returned_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    return_reason = models.CharField(max_length=255, blank=True, default="")
    return_refund_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name="sales_created")
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveSaleManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["shop", "invoice_number"], name="uniq_sale_invoice_per_shop"),
            models.CheckConstraint(condition=Q(paid_amount__gte=0), name="sale_paid_non_negative"),
            models.CheckConstraint(condition=Q(due_amount__gte=0), name="sale_due_non_negative"),
            models.CheckConstraint(
                condition=Q(cancelled_at__isnull=True) | Q(returned_at__isnull=True),
                name="sale_cancel_xor_return",
            ),
        ]
        indexes = [
            models.Index(fields=["shop", "created_at"]),
            models.Index(fields=["shop", "status"]),
            models.Index(fields=["customer", "created_at"]),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in {self.STATUS_COMPLETED, self.STATUS_CANCELLED, self.STATUS_RETURNED}

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __str__(self):
        return f"{self.invoice_number} | {self.status}"
