# purchases/api/serializers.py

from rest_framework import serializers

from core.models import PaymentRecord
from purchases.models import Purchase, PurchaseItem, PurchasePayment, Supplier


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            "id",
            "shop",
            "name",
            "contact_person",
            "phone",
            "email",
            "address",
            "gst_number",
            "current_balance",
            "total_purchases",
            "is_active",
            "created_at",
        ]
        read_only_fields = ("id", "shop", "current_balance", "total_purchases", "created_at")


class PurchaseItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = PurchaseItem
        fields = [
            "id",
            "product",
            "product_name",
            "sku",
            "metal_type",
            "purity",
            "gross_weight",
            "stone_weight",
            "quantity",
            "unit_cost",
            "gst_percentage",
            "line_total",
            "gst_amount",
        ]
        read_only_fields = fields


class PurchasePaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = PurchasePayment
        fields = [
            "id",
            "mode",
            "amount",
            "paid_at",
            "transaction_id",
            "reference_number",
            "bank_name",
            "cheque_number",
            "cheque_date",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class PurchaseSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    items = PurchaseItemSerializer(many=True, read_only=True)
    payments = PurchasePaymentSerializer(many=True, read_only=True)

    class Meta:
        model = Purchase
        fields = [
            "id",
            "shop",
            "supplier",
            "supplier_name",
            "purchase_number",
            "supplier_invoice_number",
            "purchase_date",
            "expected_date",
            "status",
            "subtotal",
            "gst_amount",
            "discount_amount",
            "grand_total",
            "total_amount",
            "paid_amount",
            "due_amount",
            "credit_amount",
            "payment_status",
            "received_at",
            "cancelled_at",
            "cancellation_reason",
            "notes",
            "created_at",
            "items",
            "payments",
        ]
        read_only_fields = fields


# ==========================================================
# COMMANDS
# ==========================================================


class PurchaseItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False, allow_null=True)
    product_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    sku = serializers.CharField(required=False, allow_blank=True, max_length=128)
    metal_type = serializers.CharField(required=False, allow_blank=True, max_length=16)
    purity = serializers.CharField(required=False, allow_blank=True, max_length=16)
    gross_weight = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, min_value=0)
    stone_weight = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, min_value=0)
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    gst_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, min_value=0, max_value=100)

    def validate(self, attrs):
        if not attrs.get("product_id") and not (attrs.get("product_name") or "").strip():
            raise serializers.ValidationError("Either product_id or product_name is required.")
        return attrs


class CreatePurchaseSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    status = serializers.ChoiceField(
        choices=[Purchase.STATUS_DRAFT, Purchase.STATUS_PENDING, Purchase.STATUS_ORDERED],
        default=Purchase.STATUS_DRAFT,
    )
    supplier_invoice_number = serializers.CharField(required=False, allow_blank=True, default="")
    expected_date = serializers.DateField(required=False, allow_null=True)
    discount_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, default=0)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = PurchaseItemInputSerializer(many=True, allow_empty=False)


class UpdatePurchaseSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[Purchase.STATUS_DRAFT, Purchase.STATUS_PENDING, Purchase.STATUS_ORDERED],
        required=False,
    )
    supplier_invoice_number = serializers.CharField(required=False, allow_blank=True)
    expected_date = serializers.DateField(required=False, allow_null=True)
    discount_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = PurchaseItemInputSerializer(many=True, required=False, allow_empty=False)


class CancelPurchaseSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")


class PurchasePaymentInputSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    mode = serializers.ChoiceField(choices=PaymentRecord.MODE_CHOICES)
    paid_at = serializers.DateTimeField(required=False)
    transaction_id = serializers.CharField(required=False, allow_blank=True, max_length=128)
    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=128)
    bank_name = serializers.CharField(required=False, allow_blank=True, max_length=128)
    cheque_number = serializers.CharField(required=False, allow_blank=True, max_length=32)
    cheque_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=255)
