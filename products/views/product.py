# products/views/product.py

"""
PRODUCT VIEWSET

Routes (under /api/shops/<shop_id>/):
    GET/POST        products/
    GET/PATCH       products/<id>/
    DELETE          products/<id>/           deactivates (ledger rows keep it referenced)
    GET             products/<id>/ledger/    append-only stock history
    POST            products/<id>/adjust/    manual correction / damage write-off
    GET             products/<id>/conservation/
    GET             products/summary/        cached stock rollup

Key rule alignment:
- Stock is never written by this view; quantity is read-only.
"""

import django_filters
from django.core.cache import cache
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from drf_spectacular.utils import extend_schema
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.conf import engine_setting
from core.money import ZERO, money
from core.side_effects import shop_cache_key
from permissions.roles import CAP_INVENTORY_ADJUST, CAP_INVENTORY_VIEW, HasCapability
from products.models import Product
from products.serializers import (
    InventoryTransactionSerializer,
    ProductSerializer,
    StockAdjustmentSerializer,
)
from products.services.catalog import create_product
from products.services.inventory_ledger import stock_conservation_report
from products.services.stock_adjustments import adjust_stock
from shops.api import ShopScopedMixin


class ProductFilter(django_filters.FilterSet):
    metal_type = django_filters.ChoiceFilter(choices=Product.MetalType.choices)
    sale_status = django_filters.ChoiceFilter(choices=Product.SaleStatus.choices)
    is_active = django_filters.BooleanFilter()
    in_stock = django_filters.BooleanFilter(method="filter_in_stock")
    q = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Product
        fields = ["metal_type", "sale_status", "is_active", "category"]

    def filter_in_stock(self, queryset, name, value):
        return queryset.filter(quantity__gt=0) if value else queryset.filter(quantity=0)

    def filter_search(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        return queryset.filter(Q(sku__icontains=value) | Q(name__icontains=value))


def inventory_summary(*, shop_id) -> dict:
    key = shop_cache_key(shop_id, "inventory_summary")
    summary = cache.get(key)
    if summary is not None:
        return summary

    stock_value = ExpressionWrapper(F("quantity") * F("cost_price"), output_field=DecimalField(max_digits=16, decimal_places=2))
    agg = Product.objects.filter(shop_id=shop_id, is_active=True).aggregate(
        products=Count("id"),
        units=Sum("quantity"),
        value=Sum(stock_value),
        sold_out=Count("id", filter=Q(quantity=0)),
    )
    summary = {
        "products": agg["products"],
        "units_in_stock": agg["units"] or 0,
        "stock_value": str(money(agg["value"] or ZERO)),
        "sold_out": agg["sold_out"],
    }
    cache.set(key, summary, engine_setting("CACHE_TIMEOUT"))
    return summary


class ProductViewSet(ShopScopedMixin, viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    filterset_class = ProductFilter
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    required_capability = CAP_INVENTORY_VIEW
    action_capabilities = {
        "create": CAP_INVENTORY_ADJUST,
        "partial_update": CAP_INVENTORY_ADJUST,
        "destroy": CAP_INVENTORY_ADJUST,
        "adjust": CAP_INVENTORY_ADJUST,
    }

    def get_queryset(self):
        return Product.objects.filter(shop=self.get_shop()).order_by("-created_at")

    def create(self, request, *args, **kwargs):
        ser = self.get_serializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        initial_quantity = data.pop("initial_quantity", 0)

        product = create_product(
            shop=self.get_shop(),
            data=data,
            initial_quantity=initial_quantity,
            user=request.user,
        )
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        serializer.validated_data.pop("initial_quantity", None)
        serializer.save()

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.save(update_fields=["is_active", "updated_at"])

    @extend_schema(responses={200: InventoryTransactionSerializer(many=True)})
    @action(detail=True, methods=["get"])
    def ledger(self, request, shop_id=None, pk=None):
        product = self.get_object()
        qs = product.inventory_transactions.select_related("performed_by").order_by("created_at")
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(InventoryTransactionSerializer(page, many=True).data)
        return Response(InventoryTransactionSerializer(qs, many=True).data)

    @extend_schema(request=StockAdjustmentSerializer, responses={201: InventoryTransactionSerializer})
    @action(detail=True, methods=["post"])
    def adjust(self, request, shop_id=None, pk=None):
        product = self.get_object()
        ser = StockAdjustmentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        result = adjust_stock(
            product=product,
            quantity_delta=ser.validated_data["quantity_delta"],
            user=request.user,
            note=ser.validated_data["note"],
            damaged=ser.validated_data["damaged"],
        )
        return Response(InventoryTransactionSerializer(result.transaction).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: serializers.DictField()})
    @action(detail=True, methods=["get"])
    def conservation(self, request, shop_id=None, pk=None):
        report = stock_conservation_report(self.get_object())
        return Response(
            {
                "product_id": str(report.product_id),
                "opening_quantity": report.opening_quantity,
                "ledger_delta": report.ledger_delta,
                "expected_quantity": report.expected_quantity,
                "current_quantity": report.current_quantity,
                "is_consistent": report.is_consistent,
            }
        )

    @extend_schema(responses={200: serializers.DictField()})
    @action(detail=False, methods=["get"])
    def summary(self, request, shop_id=None):
        return Response(inventory_summary(shop_id=self.get_shop().pk))
