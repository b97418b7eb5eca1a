# customers/serializers.py

from rest_framework import serializers

from customers.models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    """
    Profile fields are writable; running aggregates are read-only (they are
    maintained by the sale engine).
    """

    class Meta:
        model = Customer
        fields = [
            "id",
            "shop",
            "name",
            "phone",
            "email",
            "address",
            "credit_limit",
            "opening_balance",
            "current_balance",
            "total_due",
            "loyalty_points",
            "total_orders",
            "completed_orders",
            "total_spent",
            "average_order_value",
            "first_order_date",
            "last_order_date",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "shop",
            "current_balance",
            "total_due",
            "loyalty_points",
            "total_orders",
            "completed_orders",
            "total_spent",
            "average_order_value",
            "first_order_date",
            "last_order_date",
            "created_at",
            "updated_at",
        ]

    def validate_phone(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("phone is required")
        return value


class LoyaltyPointsSerializer(serializers.Serializer):
    ACTION_ADD = "add"
    ACTION_REDEEM = "redeem"

    action = serializers.ChoiceField(choices=[ACTION_ADD, ACTION_REDEEM])
    points = serializers.IntegerField(min_value=1)
