# sales/serializers/commands.py

"""
COMMAND SERIALIZERS

Input validation only. They never touch the database; the validated
payloads are handed straight to sales.services.sale_service, which owns
every business rule (stock, ceilings, transitions).
"""

from rest_framework import serializers

from core.models import PaymentRecord
from sales.models import Sale, SaleItem

DISCOUNT_CHOICES = [Sale.DISCOUNT_PERCENTAGE, Sale.DISCOUNT_FLAT]

MONEY = {"max_digits": 14, "decimal_places": 2}
WEIGHT = {"max_digits": 10, "decimal_places": 3}


class LineDiscountSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=DISCOUNT_CHOICES)
    value = serializers.DecimalField(min_value=0, **MONEY)


class SaleDiscountSerializer(LineDiscountSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class SaleItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False, allow_null=True)
    product_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    sku = serializers.CharField(required=False, allow_blank=True, max_length=128)
    metal_type = serializers.CharField(required=False, allow_blank=True, max_length=16)
    purity = serializers.CharField(required=False, allow_blank=True, max_length=16)
    quantity = serializers.IntegerField(min_value=1, default=1)

    gross_weight = serializers.DecimalField(required=False, min_value=0, **WEIGHT)
    stone_weight = serializers.DecimalField(required=False, min_value=0, **WEIGHT)
    rate_per_gram = serializers.DecimalField(required=False, min_value=0, **MONEY)
    stone_value = serializers.DecimalField(required=False, min_value=0, **MONEY)
    making_charges_type = serializers.ChoiceField(choices=SaleItem.MAKING_CHOICES, required=False)
    making_charges_value = serializers.DecimalField(required=False, min_value=0, **MONEY)
    other_charges = serializers.DecimalField(required=False, min_value=0, **MONEY)
    gst_percentage = serializers.DecimalField(required=False, min_value=0, max_value=100, max_digits=5, decimal_places=2)
    discount = LineDiscountSerializer(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs.get("product_id") and not (attrs.get("product_name") or "").strip():
            raise serializers.ValidationError("Either product_id or product_name is required.")
        return attrs


class OldGoldInputSerializer(serializers.Serializer):
    description = serializers.CharField(required=False, allow_blank=True, max_length=255)
    metal_type = serializers.CharField(required=False, allow_blank=True, max_length=16)
    purity = serializers.CharField(required=False, allow_blank=True, max_length=16)
    gross_weight = serializers.DecimalField(min_value=0, **WEIGHT)
    stone_weight = serializers.DecimalField(required=False, min_value=0, **WEIGHT)
    rate_per_gram = serializers.DecimalField(required=False, min_value=0, **MONEY)
    deduction_percentage = serializers.DecimalField(
        required=False, min_value=0, max_value=100, max_digits=5, decimal_places=2
    )


class PaymentInputSerializer(serializers.Serializer):
    amount = serializers.DecimalField(**MONEY)
    mode = serializers.ChoiceField(choices=PaymentRecord.MODE_CHOICES)
    paid_at = serializers.DateTimeField(required=False)
    transaction_id = serializers.CharField(required=False, allow_blank=True, max_length=128)
    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=128)
    bank_name = serializers.CharField(required=False, allow_blank=True, max_length=128)
    cheque_number = serializers.CharField(required=False, allow_blank=True, max_length=32)
    cheque_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=255)


class CreateSaleSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    status = serializers.ChoiceField(
        choices=[Sale.STATUS_DRAFT, Sale.STATUS_PENDING, Sale.STATUS_CONFIRMED],
        required=False,
    )
    sale_type = serializers.ChoiceField(choices=Sale.SaleType.choices, default=Sale.SaleType.RETAIL)
    items = SaleItemInputSerializer(many=True, allow_empty=False)
    discount = SaleDiscountSerializer(required=False, allow_null=True)
    old_gold = OldGoldInputSerializer(many=True, required=False)
    payments = PaymentInputSerializer(many=True, required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class UpdateSaleSerializer(serializers.Serializer):
    items = SaleItemInputSerializer(many=True, required=False, allow_empty=False)
    sale_type = serializers.ChoiceField(choices=Sale.SaleType.choices, required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class DeliverSaleSerializer(serializers.Serializer):
    delivery_type = serializers.ChoiceField(choices=Sale.DeliveryType.choices, default=Sale.DeliveryType.IMMEDIATE)
    address = serializers.CharField(required=False, allow_blank=True, default="")
    scheduled_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CancelSaleSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")


class ReturnLineSerializer(serializers.Serializer):
    sale_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class ReturnSaleSerializer(serializers.Serializer):
    items = ReturnLineSerializer(many=True, required=False, allow_empty=True)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    refund_amount = serializers.DecimalField(required=False, allow_null=True, min_value=0, **MONEY)


class DiscountSerializer(serializers.Serializer):
    discount_type = serializers.ChoiceField(choices=DISCOUNT_CHOICES)
    value = serializers.DecimalField(min_value=0, **MONEY)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")


class AddOldGoldSerializer(serializers.Serializer):
    items = OldGoldInputSerializer(many=True, allow_empty=False)


class RejectSaleSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)


class BulkDeleteSerializer(serializers.Serializer):
    sale_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
