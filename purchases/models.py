# purchases/models.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import PaymentRecord, PaymentStateMixin

User = settings.AUTH_USER_MODEL


class Supplier(models.Model):
    """
    Supplier master (shop-scoped).

    current_balance sign: negative = the shop owes the supplier.
    Written only by purchases.services.purchase_service.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    shop = models.ForeignKey("shops.Shop", on_delete=models.PROTECT, related_name="suppliers")

    name = models.CharField(max_length=200)
    contact_person = models.CharField(max_length=200, blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")
    gst_number = models.CharField(max_length=20, blank=True, default="")

    current_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_purchases = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["shop", "name"]),
            models.Index(fields=["is_active"]),
        ]

    def __str__(self):
        return self.name


class ActivePurchaseManager(models.Manager):
    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class Purchase(PaymentStateMixin):
    """
    Purchase order / supplier invoice.

    Receiving (status -> completed) is the only point where stock enters:
    one PURCHASE ledger row per line, referencing this purchase.
    """

    STATUS_DRAFT = "draft"
    STATUS_PENDING = "pending"
    STATUS_ORDERED = "ordered"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PENDING, "Pending"),
        (STATUS_ORDERED, "Ordered"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    shop = models.ForeignKey("shops.Shop", on_delete=models.PROTECT, related_name="purchases")
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name="purchases")

    purchase_number = models.CharField(max_length=64)
    supplier_invoice_number = models.CharField(max_length=64, blank=True, default="")
    purchase_date = models.DateField(auto_now_add=True)
    expected_date = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT, db_index=True)

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    gst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    grand_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")

    received_at = models.DateTimeField(null=True, blank=True)
    received_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True, default="")

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases_created",
    )
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActivePurchaseManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["shop", "purchase_number"], name="uniq_purchase_number_per_shop"),
            models.CheckConstraint(condition=Q(subtotal__gte=0), name="purchase_subtotal_nonnegative"),
            models.CheckConstraint(condition=Q(due_amount__gte=0), name="purchase_due_nonnegative"),
        ]
        indexes = [
            models.Index(fields=["shop", "status"]),
            models.Index(fields=["supplier", "created_at"]),
        ]

    def __str__(self):
        return f"{self.purchase_number} ({self.supplier.name})"


class PurchaseItem(models.Model):
    """
    Purchase line. `product` may be empty until receiving, when a new
    product is created from the line's description.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="purchase_items",
    )

    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=128, blank=True, default="")
    metal_type = models.CharField(max_length=16, blank=True, default="gold")
    purity = models.CharField(max_length=16, blank=True, default="")
    gross_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))
    stone_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0.000"))

    quantity = models.PositiveIntegerField()
    unit_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    gst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    gst_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name="purchase_item_quantity_gt_zero"),
            models.CheckConstraint(condition=Q(unit_cost__gte=0), name="purchase_item_unit_cost_nonnegative"),
        ]

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"


class PurchasePayment(PaymentRecord):
    """Append-only payment event on a Purchase."""

    purchase = models.ForeignKey(Purchase, on_delete=models.PROTECT, related_name="payments")

    class Meta(PaymentRecord.Meta):
        indexes = [
            models.Index(fields=["purchase", "paid_at"]),
        ]
