# products/admin.py
"""
Admin rules (audit-safe stock):

- Product quantity is never editable here; stock moves only through the
  inventory ledger (sales, purchases, stock adjustments).
- InventoryTransaction rows are append-only and view-only.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import InventoryTransaction, Product


class InventoryTransactionInline(admin.TabularInline):
    model = InventoryTransaction
    extra = 0
    can_delete = False
    fields = (
        "created_at",
        "transaction_type",
        "direction",
        "quantity",
        "previous_quantity",
        "new_quantity",
        "reference_number",
        "reason",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "sku",
        "name",
        "shop",
        "metal_type",
        "purity",
        "net_weight",
        "quantity",
        "sale_status",
        "is_active",
    )
    list_filter = ("is_active", "metal_type", "sale_status", "shop")
    search_fields = ("sku", "name")
    ordering = ("-created_at",)
    readonly_fields = ("quantity", "opening_quantity", "sale_status", "created_at", "updated_at")

    inlines = [InventoryTransactionInline]


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(admin.ModelAdmin):
    list_display = (
        "product",
        "transaction_type",
        "direction",
        "quantity",
        "new_quantity",
        "reference_number",
        "performed_by",
        "created_at",
    )
    list_filter = ("transaction_type", "direction", "shop")
    search_fields = ("product__sku", "product__name", "reference_number")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
