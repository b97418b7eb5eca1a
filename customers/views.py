# customers/views.py

"""
CUSTOMER VIEWSET

Routes (under /api/shops/<shop_id>/):
    GET/POST   customers/
    GET/PATCH  customers/<id>/
    POST       customers/<id>/loyalty/     {"action": "add"|"redeem", "points": n}
    GET        customers/<id>/statistics/  stored vs derived aggregates
    POST       customers/<id>/rebuild/     recompute aggregates from sale history
"""

import django_filters
from django.db.models import Q
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, serializers, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from customers.models import Customer
from customers.serializers import CustomerSerializer, LoyaltyPointsSerializer
from customers.services import accumulator
from permissions.roles import (
    CAP_CUSTOMERS_LOYALTY,
    CAP_CUSTOMERS_VIEW,
    CAP_SALES_CREATE,
    HasCapability,
)
from shops.api import ShopScopedMixin


class CustomerFilter(django_filters.FilterSet):
    is_active = django_filters.BooleanFilter()
    has_due = django_filters.BooleanFilter(method="filter_has_due")
    q = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Customer
        fields = ["is_active"]

    def filter_has_due(self, queryset, name, value):
        return queryset.filter(total_due__gt=0) if value else queryset.filter(total_due=0)

    def filter_search(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(phone__icontains=value) | Q(email__icontains=value))


def _stringify(summary: dict) -> dict:
    return {
        key: (str(value) if value is not None and not isinstance(value, (int, dict)) else value)
        for key, value in summary.items()
    }


class CustomerViewSet(
    ShopScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = CustomerSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    filterset_class = CustomerFilter
    http_method_names = ["get", "post", "patch", "head", "options"]

    required_capability = CAP_CUSTOMERS_VIEW
    action_capabilities = {
        "create": CAP_SALES_CREATE,
        "partial_update": CAP_SALES_CREATE,
        "loyalty": CAP_CUSTOMERS_LOYALTY,
        "rebuild": CAP_CUSTOMERS_LOYALTY,
    }

    def get_queryset(self):
        return Customer.objects.filter(shop=self.get_shop())

    def perform_create(self, serializer):
        serializer.save(shop=self.get_shop())

    @extend_schema(request=LoyaltyPointsSerializer, responses={200: CustomerSerializer})
    @action(detail=True, methods=["post"])
    def loyalty(self, request, shop_id=None, pk=None):
        customer = self.get_object()
        ser = LoyaltyPointsSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        if ser.validated_data["action"] == LoyaltyPointsSerializer.ACTION_ADD:
            customer = accumulator.add_loyalty_points(customer_id=customer.pk, points=ser.validated_data["points"])
        else:
            customer = accumulator.redeem_loyalty_points(customer_id=customer.pk, points=ser.validated_data["points"])
        return Response(CustomerSerializer(customer).data)

    @extend_schema(responses={200: serializers.DictField()})
    @action(detail=True, methods=["get"])
    def statistics(self, request, shop_id=None, pk=None):
        report = accumulator.statistics_drift(self.get_object())
        return Response(
            {
                "stored": _stringify(report["stored"]),
                "derived": _stringify(report["derived"]),
                "drift": {k: _stringify(v) for k, v in report["drift"].items()},
            }
        )

    @extend_schema(request=None, responses={200: CustomerSerializer})
    @action(detail=True, methods=["post"])
    def rebuild(self, request, shop_id=None, pk=None):
        customer = accumulator.rebuild_statistics(customer_id=self.get_object().pk)
        return Response(CustomerSerializer(customer).data)
