# sales/serializers/sale.py

from rest_framework import serializers

from sales.models import Sale
from sales.serializers.sale_item import (
    OldGoldItemSerializer,
    SaleItemSerializer,
    SalePaymentSerializer,
)


class SaleListSerializer(serializers.ModelSerializer):
    """Compact row for sales history lists."""

    customer_name = serializers.CharField(source="customer.name", read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "invoice_number",
            "invoice_date",
            "customer",
            "customer_name",
            "sale_type",
            "status",
            "approval_status",
            "grand_total",
            "net_payable",
            "paid_amount",
            "due_amount",
            "payment_status",
            "due_date",
            "created_at",
        ]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    """
    CANONICAL SALE SERIALIZER (read-only)

    Every write goes through sales.services.sale_service; this serializer
    only renders the aggregate (items, old gold, payments included).
    """

    customer_name = serializers.CharField(source="customer.name", read_only=True)
    customer_phone = serializers.CharField(source="customer.phone", read_only=True)

    items = SaleItemSerializer(many=True, read_only=True)
    old_gold_items = OldGoldItemSerializer(many=True, read_only=True)
    payments = SalePaymentSerializer(many=True, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "shop",
            "invoice_number",
            "invoice_date",
            "customer",
            "customer_name",
            "customer_phone",
            "sale_type",
            "status",
            "approval_status",
            "approved_by",
            "approved_at",
            "rejection_reason",
            # discount input
            "discount_type",
            "discount_value",
            "discount_reason",
            # financials
            "subtotal",
            "total_metal_value",
            "total_stone_value",
            "total_making_charges",
            "total_other_charges",
            "total_discount",
            "total_taxable_amount",
            "total_gst",
            "cgst",
            "sgst",
            "round_off",
            "grand_total",
            "old_gold_value",
            "net_payable",
            "exchange_refund_due",
            # payment state
            "total_amount",
            "paid_amount",
            "due_amount",
            "credit_amount",
            "payment_status",
            "due_date",
            # delivery
            "delivery_type",
            "delivery_address",
            "scheduled_delivery_date",
            "delivered_at",
            "completed_at",
            # reversals
            "cancelled_at",
            "cancellation_reason",
            "cancellation_refund_amount",
            "cancellation_refund_status",
            "returned_at",
            "return_reason",
            "return_refund_amount",
            "notes",
            "created_by",
            "created_at",
            "updated_at",
            "items",
            "old_gold_items",
            "payments",
        ]
        read_only_fields = fields
