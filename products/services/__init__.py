# products/services/__init__.py

from .catalog import create_product
from .inventory_ledger import apply_stock_change, stock_conservation_report
from .stock_adjustments import adjust_stock

__all__ = [
    "adjust_stock",
    "apply_stock_change",
    "create_product",
    "stock_conservation_report",
]
