# purchases/admin.py

from django.contrib import admin

from purchases.models import Purchase, PurchaseItem, PurchasePayment, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "shop", "phone", "current_balance", "total_purchases", "is_active")
    list_filter = ("is_active", "shop")
    search_fields = ("name", "phone", "email")
    readonly_fields = ("current_balance", "total_purchases", "created_at", "updated_at")


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0
    can_delete = False
    fields = ("product", "product_name", "quantity", "unit_cost", "line_total")
    readonly_fields = fields


class PurchasePaymentInline(admin.TabularInline):
    model = PurchasePayment
    extra = 0
    can_delete = False
    fields = ("mode", "amount", "paid_at", "reference_number")
    readonly_fields = fields


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = ("purchase_number", "supplier", "status", "grand_total", "due_amount", "payment_status", "created_at")
    list_filter = ("status", "payment_status", "shop")
    search_fields = ("purchase_number", "supplier_invoice_number", "supplier__name")
    inlines = (PurchaseItemInline, PurchasePaymentInline)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
