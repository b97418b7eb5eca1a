# customers/admin.py

from django.contrib import admin

from customers.models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "phone",
        "shop",
        "total_orders",
        "total_spent",
        "total_due",
        "loyalty_points",
        "is_active",
    )
    list_filter = ("is_active", "shop")
    search_fields = ("name", "phone", "email")
    readonly_fields = (
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
    )
