# products/serializers/product.py

"""
PRODUCT SERIALIZERS

GUARANTEES:
- `quantity` is read-only everywhere: stock only moves through the
  inventory ledger (sales, purchases, adjustments).
- Opening stock is accepted once, on create, as `initial_quantity`.
"""

from rest_framework import serializers

from products.models import InventoryTransaction, Product


class ProductSerializer(serializers.ModelSerializer):
    initial_quantity = serializers.IntegerField(write_only=True, required=False, min_value=0, default=0)

    class Meta:
        model = Product
        fields = [
            "id",
            "shop",
            "sku",
            "name",
            "category",
            "metal_type",
            "purity",
            "gross_weight",
            "stone_weight",
            "net_weight",
            "making_charges_type",
            "making_charges_value",
            "stone_value",
            "cost_price",
            "selling_price",
            "markup_type",
            "markup_value",
            "quantity",
            "opening_quantity",
            "initial_quantity",
            "sale_status",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "shop",
            "quantity",
            "opening_quantity",
            "sale_status",
            "created_at",
            "updated_at",
        ]

    def validate_sku(self, value):
        value = (value or "").strip().upper()
        if not value:
            raise serializers.ValidationError("SKU is required")
        return value

    def validate(self, attrs):
        gross = attrs.get("gross_weight", getattr(self.instance, "gross_weight", None))
        stone = attrs.get("stone_weight", getattr(self.instance, "stone_weight", None))
        if gross is not None and stone is not None and stone > gross:
            raise serializers.ValidationError({"stone_weight": "stone_weight cannot exceed gross_weight"})
        return attrs


class InventoryTransactionSerializer(serializers.ModelSerializer):
    signed_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = InventoryTransaction
        fields = [
            "id",
            "product",
            "transaction_type",
            "direction",
            "quantity",
            "signed_quantity",
            "previous_quantity",
            "new_quantity",
            "reference_type",
            "reference_id",
            "reference_number",
            "value",
            "reason",
            "performed_by",
            "created_at",
        ]
        read_only_fields = fields


class StockAdjustmentSerializer(serializers.Serializer):
    quantity_delta = serializers.IntegerField()
    note = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    damaged = serializers.BooleanField(required=False, default=False)

    def validate_quantity_delta(self, value):
        if value == 0:
            raise serializers.ValidationError("quantity_delta cannot be 0")
        return value
