# shops/admin.py

from django.contrib import admin

from shops.models import Organization, Shop


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active", "created_at")
    search_fields = ("name",)


@admin.register(Shop)
class ShopAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "code",
        "organization",
        "invoice_prefix",
        "current_invoice_number",
        "default_gst_percentage",
        "is_active",
    )
    readonly_fields = ("current_invoice_number", "current_purchase_number", "created_at", "updated_at")
    search_fields = ("name", "code")
    list_filter = ("is_active", "organization")
