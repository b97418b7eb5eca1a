from .old_gold_item import OldGoldItem
from .sale import Sale
from .sale_item import SaleItem
from .sale_payment import SalePayment

__all__ = [
    "OldGoldItem",
    "Sale",
    "SaleItem",
    "SalePayment",
]
