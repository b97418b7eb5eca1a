# products/serializers/__init__.py

from .product import InventoryTransactionSerializer, ProductSerializer, StockAdjustmentSerializer

__all__ = [
    "InventoryTransactionSerializer",
    "ProductSerializer",
    "StockAdjustmentSerializer",
]
