# purchases/api/views.py

"""
PURCHASES API

Routes (under /api/shops/<shop_id>/):
    GET/POST        suppliers/
    GET/PATCH       suppliers/<id>/
    GET/POST        purchases/
    GET/PATCH       purchases/<id>/
    DELETE          purchases/<id>/            draft only (soft)
    POST            purchases/<id>/receive/
    POST            purchases/<id>/cancel/
    POST            purchases/<id>/payments/
"""

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import NotFoundError
from permissions.roles import (
    CAP_PURCHASES_MANAGE,
    CAP_PURCHASES_RECEIVE,
    CAP_PURCHASES_VIEW,
    HasCapability,
)
from purchases.api.serializers import (
    CancelPurchaseSerializer,
    CreatePurchaseSerializer,
    PurchasePaymentInputSerializer,
    PurchaseSerializer,
    SupplierSerializer,
    UpdatePurchaseSerializer,
)
from purchases.models import Purchase, Supplier
from purchases.services import purchase_service
from shops.api import ShopScopedMixin


class SupplierViewSet(
    ShopScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = SupplierSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    http_method_names = ["get", "post", "patch", "head", "options"]

    required_capability = CAP_PURCHASES_VIEW
    action_capabilities = {
        "create": CAP_PURCHASES_MANAGE,
        "partial_update": CAP_PURCHASES_MANAGE,
    }

    def get_queryset(self):
        return Supplier.objects.filter(shop=self.get_shop()).order_by("name")

    def perform_create(self, serializer):
        serializer.save(shop=self.get_shop())


class PurchaseViewSet(
    ShopScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = PurchaseSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    filterset_fields = ["status", "payment_status", "supplier"]

    required_capability = CAP_PURCHASES_VIEW
    action_capabilities = {
        "create": CAP_PURCHASES_MANAGE,
        "partial_update": CAP_PURCHASES_MANAGE,
        "destroy": CAP_PURCHASES_MANAGE,
        "cancel": CAP_PURCHASES_MANAGE,
        "payments": CAP_PURCHASES_MANAGE,
        "receive": CAP_PURCHASES_RECEIVE,
    }

    def get_queryset(self):
        return (
            Purchase.objects.filter(shop=self.get_shop())
            .select_related("supplier")
            .prefetch_related("items", "payments")
            .order_by("-created_at")
        )

    def _render(self, purchase, http_status=status.HTTP_200_OK):
        fresh = purchase_service.get_purchase(shop=self.get_shop(), purchase_id=purchase.pk)
        return Response(PurchaseSerializer(fresh).data, status=http_status)

    @extend_schema(tags=["purchases"], request=CreatePurchaseSerializer, responses={201: PurchaseSerializer})
    def create(self, request, *args, **kwargs):
        ser = CreatePurchaseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        shop = self.get_shop()

        try:
            supplier = Supplier.objects.get(pk=data["supplier_id"], shop=shop)
        except Supplier.DoesNotExist:
            raise NotFoundError.for_entity("Supplier", data["supplier_id"])

        purchase = purchase_service.create_purchase(
            shop=shop,
            supplier=supplier,
            items=data["items"],
            user=request.user,
            status=data["status"],
            supplier_invoice_number=data["supplier_invoice_number"],
            expected_date=data.get("expected_date"),
            discount_amount=data["discount_amount"],
            notes=data["notes"],
        )
        return self._render(purchase, status.HTTP_201_CREATED)

    @extend_schema(tags=["purchases"], request=UpdatePurchaseSerializer, responses={200: PurchaseSerializer})
    def partial_update(self, request, *args, **kwargs):
        ser = UpdatePurchaseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        purchase = purchase_service.update_purchase(
            shop=self.get_shop(),
            purchase_id=kwargs["pk"],
            user=request.user,
            **ser.validated_data,
        )
        return self._render(purchase)

    @extend_schema(tags=["purchases"], responses={204: None})
    def destroy(self, request, *args, **kwargs):
        purchase_service.delete_purchase(shop=self.get_shop(), purchase_id=kwargs["pk"], user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["purchases"], request=None, responses={200: PurchaseSerializer})
    @action(detail=True, methods=["post"])
    def receive(self, request, shop_id=None, pk=None):
        purchase = purchase_service.receive_purchase(shop=self.get_shop(), purchase_id=pk, user=request.user)
        return self._render(purchase)

    @extend_schema(tags=["purchases"], request=CancelPurchaseSerializer, responses={200: PurchaseSerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, shop_id=None, pk=None):
        ser = CancelPurchaseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        purchase = purchase_service.cancel_purchase(
            shop=self.get_shop(),
            purchase_id=pk,
            user=request.user,
            reason=ser.validated_data["reason"],
        )
        return self._render(purchase)

    @extend_schema(tags=["purchases"], request=PurchasePaymentInputSerializer, responses={201: PurchaseSerializer})
    @action(detail=True, methods=["post"])
    def payments(self, request, shop_id=None, pk=None):
        ser = PurchasePaymentInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        purchase, _payment = purchase_service.add_purchase_payment(
            shop=self.get_shop(),
            purchase_id=pk,
            user=request.user,
            amount=data.pop("amount"),
            mode=data.pop("mode"),
            **data,
        )
        return self._render(purchase, status.HTTP_201_CREATED)
