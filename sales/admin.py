# sales/admin.py

from django.contrib import admin

from sales.models import OldGoldItem, Sale, SaleItem, SalePayment


# ======================================================
# INLINES (read-only: every write goes through sale_service)
# ======================================================


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    can_delete = False
    fields = ("line_number", "product_name", "quantity", "returned_quantity", "net_weight", "item_total")
    readonly_fields = fields


class OldGoldItemInline(admin.TabularInline):
    model = OldGoldItem
    extra = 0
    can_delete = False
    fields = ("description", "net_weight", "rate_per_gram", "deduction_percentage", "value")
    readonly_fields = fields


class SalePaymentInline(admin.TabularInline):
    model = SalePayment
    extra = 0
    can_delete = False
    fields = ("mode", "amount", "paid_at", "reference_number", "received_by")
    readonly_fields = fields


# ======================================================
# SALE ADMIN
# ======================================================


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "shop",
        "customer",
        "status",
        "grand_total",
        "paid_amount",
        "due_amount",
        "payment_status",
        "created_at",
    )
    search_fields = ("invoice_number", "customer__name", "customer__phone")
    list_filter = ("status", "payment_status", "approval_status", "shop")
    raw_id_fields = ("customer",)
    inlines = (SaleItemInline, OldGoldItemInline, SalePaymentInline)

    def get_queryset(self, request):
        return Sale.all_objects.select_related("shop", "customer")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(SalePayment)
class SalePaymentAdmin(admin.ModelAdmin):
    list_display = ("sale", "mode", "amount", "paid_at", "received_by")
    search_fields = ("sale__invoice_number", "reference_number", "transaction_id")
    list_filter = ("mode",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
