from .commands import (
    AddOldGoldSerializer,
    BulkDeleteSerializer,
    CancelSaleSerializer,
    CreateSaleSerializer,
    DeliverSaleSerializer,
    DiscountSerializer,
    PaymentInputSerializer,
    RejectSaleSerializer,
    ReturnSaleSerializer,
    UpdateSaleSerializer,
)
from .sale import SaleListSerializer, SaleSerializer
from .sale_item import OldGoldItemSerializer, SaleItemSerializer, SalePaymentSerializer

__all__ = [
    "AddOldGoldSerializer",
    "BulkDeleteSerializer",
    "CancelSaleSerializer",
    "CreateSaleSerializer",
    "DeliverSaleSerializer",
    "DiscountSerializer",
    "OldGoldItemSerializer",
    "PaymentInputSerializer",
    "RejectSaleSerializer",
    "ReturnSaleSerializer",
    "SaleItemSerializer",
    "SaleListSerializer",
    "SalePaymentSerializer",
    "SaleSerializer",
    "UpdateSaleSerializer",
]
