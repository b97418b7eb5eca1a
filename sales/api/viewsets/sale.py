# sales/api/viewsets/sale.py

"""
======================================================
PATH: sales/api/viewsets/sale.py
======================================================
SALE VIEWSET (STAFF)

Routes (all under /api/shops/<shop_id>/):
    GET    sales/                         history (filterable, paginated)
    POST   sales/                         create
    GET    sales/<id>/                    detail (items + old gold + payments)
    PATCH  sales/<id>/                    edit draft / pending
    DELETE sales/<id>/                    soft delete (draft only)
    POST   sales/<id>/submit|confirm|deliver|complete/
    POST   sales/<id>/approve|reject/
    POST   sales/<id>/cancel/
    POST   sales/<id>/return/
    POST   sales/<id>/discount/           apply; DELETE removes
    POST   sales/<id>/old-gold/           add; DELETE old-gold/<item_id>/ removes
    GET    sales/<id>/payments/           list; POST records one
    GET    sales/<id>/receipt/
    POST   sales/bulk-delete/
    GET    sales/summary/
    GET    sales/pending-payments/

Rules:
- Views only parse input and render output. Every rule lives in
  sales.services.sale_service.
- Engine errors are mapped to HTTP by core.api.engine_exception_handler;
  nothing here catches them.
======================================================
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import NotFoundError
from customers.models import Customer
from permissions.roles import (
    CAP_PAYMENTS_RECORD,
    CAP_SALES_APPROVE,
    CAP_SALES_CANCEL,
    CAP_SALES_CREATE,
    CAP_SALES_DELETE,
    CAP_SALES_DISCOUNT,
    CAP_SALES_EDIT,
    CAP_SALES_RETURN,
    CAP_SALES_VIEW,
    HasCapability,
)
from sales.api.filters import SaleFilter
from sales.models import Sale
from sales.serializers import (
    AddOldGoldSerializer,
    BulkDeleteSerializer,
    CancelSaleSerializer,
    CreateSaleSerializer,
    DeliverSaleSerializer,
    DiscountSerializer,
    PaymentInputSerializer,
    RejectSaleSerializer,
    ReturnSaleSerializer,
    SaleListSerializer,
    SalePaymentSerializer,
    SaleSerializer,
    UpdateSaleSerializer,
)
from sales.services import analytics, sale_service
from shops.api import ShopScopedMixin


class SaleViewSet(
    ShopScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated, HasCapability]
    filterset_class = SaleFilter

    required_capability = CAP_SALES_VIEW
    action_capabilities = {
        "list": CAP_SALES_VIEW,
        "retrieve": CAP_SALES_VIEW,
        "receipt": CAP_SALES_VIEW,
        "summary": CAP_SALES_VIEW,
        "pending_payments": CAP_SALES_VIEW,
        "create": CAP_SALES_CREATE,
        "partial_update": CAP_SALES_EDIT,
        "submit": CAP_SALES_EDIT,
        "confirm": CAP_SALES_EDIT,
        "deliver": CAP_SALES_EDIT,
        "complete": CAP_SALES_EDIT,
        "add_old_gold": CAP_SALES_EDIT,
        "remove_old_gold": CAP_SALES_EDIT,
        "approve": CAP_SALES_APPROVE,
        "reject": CAP_SALES_APPROVE,
        "cancel": CAP_SALES_CANCEL,
        "destroy": CAP_SALES_DELETE,
        "bulk_delete": CAP_SALES_DELETE,
        "return_sale": CAP_SALES_RETURN,
        "discount": CAP_SALES_DISCOUNT,
        "payments": CAP_PAYMENTS_RECORD,
    }

    # ======================================================
    # QUERYSET / SERIALIZERS
    # ======================================================

    def get_queryset(self):
        return (
            Sale.objects.filter(shop=self.get_shop())
            .select_related("customer")
            .prefetch_related("items", "old_gold_items", "payments")
            .order_by("-created_at")
        )

    def get_serializer_class(self):
        if self.action == "list":
            return SaleListSerializer
        return SaleSerializer

    def _render(self, sale: Sale, http_status=status.HTTP_200_OK):
        fresh = sale_service.get_sale(shop=self.get_shop(), sale_id=sale.pk)
        return Response(SaleSerializer(fresh).data, status=http_status)

    def _validated(self, serializer_class, data=None):
        ser = serializer_class(data=self.request.data if data is None else data)
        ser.is_valid(raise_exception=True)
        return ser.validated_data

    # ======================================================
    # CREATE / EDIT / DELETE
    # ======================================================

    @extend_schema(request=CreateSaleSerializer, responses={201: SaleSerializer})
    def create(self, request, *args, **kwargs):
        data = self._validated(CreateSaleSerializer)
        shop = self.get_shop()

        try:
            customer = Customer.objects.get(pk=data["customer_id"], shop=shop)
        except Customer.DoesNotExist:
            raise NotFoundError.for_entity("Customer", data["customer_id"])

        sale = sale_service.create_sale(
            shop=shop,
            customer=customer,
            items=data["items"],
            user=request.user,
            status=data.get("status"),
            sale_type=data["sale_type"],
            discount=data.get("discount"),
            old_gold=data.get("old_gold"),
            payments=data.get("payments"),
            due_date=data.get("due_date"),
            notes=data.get("notes", ""),
        )
        return self._render(sale, status.HTTP_201_CREATED)

    @extend_schema(request=UpdateSaleSerializer, responses={200: SaleSerializer})
    def partial_update(self, request, *args, **kwargs):
        data = self._validated(UpdateSaleSerializer)
        sale = sale_service.update_sale(
            shop=self.get_shop(),
            sale_id=kwargs["pk"],
            user=request.user,
            items=data.get("items"),
            notes=data.get("notes"),
            due_date=data.get("due_date"),
            sale_type=data.get("sale_type"),
        )
        return self._render(sale)

    @extend_schema(responses={204: None})
    def destroy(self, request, *args, **kwargs):
        sale_service.delete_sale(shop=self.get_shop(), sale_id=kwargs["pk"], user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=BulkDeleteSerializer, responses={200: serializers.DictField()})
    @action(detail=False, methods=["post"], url_path="bulk-delete")
    def bulk_delete(self, request, shop_id=None):
        data = self._validated(BulkDeleteSerializer)
        deleted = sale_service.bulk_delete_sales(
            shop=self.get_shop(),
            sale_ids=data["sale_ids"],
            user=request.user,
        )
        return Response({"deleted": deleted})

    # ======================================================
    # STATUS TRANSITIONS
    # ======================================================

    @extend_schema(request=None, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"])
    def submit(self, request, shop_id=None, pk=None):
        return self._render(sale_service.submit_sale(shop=self.get_shop(), sale_id=pk, user=request.user))

    @extend_schema(request=None, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"])
    def confirm(self, request, shop_id=None, pk=None):
        return self._render(sale_service.confirm_sale(shop=self.get_shop(), sale_id=pk, user=request.user))

    @extend_schema(request=DeliverSaleSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"])
    def deliver(self, request, shop_id=None, pk=None):
        data = self._validated(DeliverSaleSerializer)
        sale = sale_service.deliver_sale(
            shop=self.get_shop(),
            sale_id=pk,
            user=request.user,
            delivery_type=data["delivery_type"],
            address=data["address"],
            scheduled_date=data.get("scheduled_date"),
            notes=data["notes"],
        )
        return self._render(sale)

    @extend_schema(request=None, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"])
    def complete(self, request, shop_id=None, pk=None):
        return self._render(sale_service.complete_sale(shop=self.get_shop(), sale_id=pk, user=request.user))

    @extend_schema(request=None, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"])
    def approve(self, request, shop_id=None, pk=None):
        return self._render(sale_service.approve_sale(shop=self.get_shop(), sale_id=pk, user=request.user))

    @extend_schema(request=RejectSaleSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"])
    def reject(self, request, shop_id=None, pk=None):
        data = self._validated(RejectSaleSerializer)
        sale = sale_service.reject_sale(
            shop=self.get_shop(),
            sale_id=pk,
            user=request.user,
            reason=data["reason"],
        )
        return self._render(sale)

    # ======================================================
    # REVERSALS
    # ======================================================

    @extend_schema(request=CancelSaleSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, shop_id=None, pk=None):
        data = self._validated(CancelSaleSerializer)
        sale = sale_service.cancel_sale(
            shop=self.get_shop(),
            sale_id=pk,
            user=request.user,
            reason=data["reason"],
        )
        return self._render(sale)

    @extend_schema(request=ReturnSaleSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="return")
    def return_sale(self, request, shop_id=None, pk=None):
        data = self._validated(ReturnSaleSerializer)
        sale = sale_service.return_sale(
            shop=self.get_shop(),
            sale_id=pk,
            user=request.user,
            items=data.get("items") or None,
            reason=data["reason"],
            refund_amount=data.get("refund_amount"),
        )
        return self._render(sale)

    # ======================================================
    # FINANCIAL EDITS
    # ======================================================

    @extend_schema(request=DiscountSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post", "delete"])
    def discount(self, request, shop_id=None, pk=None):
        shop = self.get_shop()
        if request.method == "DELETE":
            return self._render(sale_service.remove_discount(shop=shop, sale_id=pk, user=request.user))

        data = self._validated(DiscountSerializer)
        sale = sale_service.apply_discount(
            shop=shop,
            sale_id=pk,
            user=request.user,
            discount_type=data["discount_type"],
            value=data["value"],
            reason=data["reason"],
        )
        return self._render(sale)

    @extend_schema(request=AddOldGoldSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="old-gold")
    def add_old_gold(self, request, shop_id=None, pk=None):
        data = self._validated(AddOldGoldSerializer)
        sale = sale_service.add_old_gold(
            shop=self.get_shop(),
            sale_id=pk,
            user=request.user,
            items=data["items"],
        )
        return self._render(sale)

    @extend_schema(request=None, responses={200: SaleSerializer})
    @action(detail=True, methods=["delete"], url_path=r"old-gold/(?P<old_gold_item_id>[0-9a-f-]+)")
    def remove_old_gold(self, request, shop_id=None, pk=None, old_gold_item_id=None):
        sale = sale_service.remove_old_gold(
            shop=self.get_shop(),
            sale_id=pk,
            old_gold_item_id=old_gold_item_id,
            user=request.user,
        )
        return self._render(sale)

    @extend_schema(request=PaymentInputSerializer, responses={200: SalePaymentSerializer(many=True), 201: SaleSerializer})
    @action(detail=True, methods=["get", "post"])
    def payments(self, request, shop_id=None, pk=None):
        shop = self.get_shop()
        if request.method == "GET":
            rows = sale_service.get_sale_payments(shop=shop, sale_id=pk)
            return Response(SalePaymentSerializer(rows, many=True).data)

        data = dict(self._validated(PaymentInputSerializer))
        sale, _payment = sale_service.add_payment(
            shop=shop,
            sale_id=pk,
            user=request.user,
            amount=data.pop("amount"),
            mode=data.pop("mode"),
            **data,
        )
        return self._render(sale, status.HTTP_201_CREATED)

    # ======================================================
    # READ-ONLY EXTRAS
    # ======================================================

    @extend_schema(responses={200: serializers.DictField()})
    @action(detail=True, methods=["get"])
    def receipt(self, request, shop_id=None, pk=None):
        sale = sale_service.get_sale(shop=self.get_shop(), sale_id=pk)
        return Response(sale_service.build_receipt(sale))

    @extend_schema(responses={200: serializers.DictField()})
    @action(detail=False, methods=["get"])
    def summary(self, request, shop_id=None):
        return Response(analytics.sales_summary(shop_id=self.get_shop().pk))

    @extend_schema(responses={200: SaleListSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="pending-payments")
    def pending_payments(self, request, shop_id=None):
        overdue_only = (request.query_params.get("overdue") or "").lower() in {"1", "true", "yes"}
        qs = analytics.pending_payment_sales(shop_id=self.get_shop().pk, overdue_only=overdue_only)
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(SaleListSerializer(page, many=True).data)
        return Response(SaleListSerializer(qs, many=True).data)
