# sales/serializers/sale_item.py

from rest_framework import serializers

from sales.models import OldGoldItem, SaleItem, SalePayment


class SaleItemSerializer(serializers.ModelSerializer):
    """
    Sale line (read-only). Inputs are the snapshot taken when the line was
    added; the rest is derived by the financial calculator.
    """

    returnable_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = SaleItem
        fields = [
            "id",
            "line_number",
            "product",
            "product_name",
            "sku",
            "metal_type",
            "purity",
            "quantity",
            "returned_quantity",
            "returnable_quantity",
            "gross_weight",
            "stone_weight",
            "net_weight",
            "rate_per_gram",
            "metal_value",
            "stone_value",
            "making_charges_type",
            "making_charges_value",
            "making_charges",
            "other_charges",
            "discount_type",
            "discount_value",
            "discount_amount",
            "taxable_amount",
            "gst_percentage",
            "gst_amount",
            "sale_discount_share",
            "line_taxable_amount",
            "line_gst_amount",
            "item_total",
        ]
        read_only_fields = fields


class OldGoldItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OldGoldItem
        fields = [
            "id",
            "description",
            "metal_type",
            "purity",
            "gross_weight",
            "stone_weight",
            "net_weight",
            "rate_per_gram",
            "deduction_percentage",
            "value",
            "created_at",
        ]
        read_only_fields = fields


class SalePaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalePayment
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
            "received_by",
            "created_at",
        ]
        read_only_fields = fields
