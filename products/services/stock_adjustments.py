# products/services/stock_adjustments.py

"""
STOCK ADJUSTMENTS SERVICE

Purpose:
- Manual corrections (recount, damage, found stock) through the ledger.

Rules:
- quantity_delta must be a non-zero integer
- adjustment cannot reduce stock below zero (InsufficientStockError)
- writes ADJUSTMENT rows, or DAMAGE for write-offs
"""

from __future__ import annotations

from dataclasses import dataclass

from core.exceptions import ValidationError
from core.side_effects import emit_audit_event, invalidate_shop_cache
from core.unit_of_work import unit_of_work
from products.models import InventoryTransaction, Product
from products.services.inventory_ledger import apply_stock_change


@dataclass(frozen=True)
class AdjustmentResult:
    product: Product
    transaction: InventoryTransaction
    quantity_delta: int


def _to_int_delta(value) -> int:
    if value is None or value == "":
        raise ValidationError("quantity_delta is required")

    if isinstance(value, bool):
        raise ValidationError("quantity_delta must be an integer")

    try:
        delta = int(value)
    except (TypeError, ValueError):
        raise ValidationError("quantity_delta must be an integer")

    if delta == 0:
        raise ValidationError("quantity_delta cannot be 0")

    return delta


def adjust_stock(
    *,
    product: Product,
    quantity_delta,
    user=None,
    note: str = "",
    damaged: bool = False,
) -> AdjustmentResult:
    """
    +N -> IN adjustment
    -N -> OUT adjustment (or DAMAGE write-off when damaged=True)
    """
    delta = _to_int_delta(quantity_delta)
    if damaged and delta > 0:
        raise ValidationError("A damage write-off must reduce stock")

    if delta > 0:
        tx_type = InventoryTransaction.TransactionType.ADJUSTMENT
        direction = InventoryTransaction.Direction.IN
    else:
        tx_type = (
            InventoryTransaction.TransactionType.DAMAGE
            if damaged
            else InventoryTransaction.TransactionType.ADJUSTMENT
        )
        direction = InventoryTransaction.Direction.OUT

    with unit_of_work("inventory.adjust") as uow:
        row = apply_stock_change(
            product=product,
            quantity=abs(delta),
            direction=direction,
            transaction_type=tx_type,
            reason=(note or "").strip() or "Manual stock adjustment",
            reference_type=InventoryTransaction.ReferenceType.MANUAL_ADJUSTMENT,
            user=user,
        )
        uow.on_commit(invalidate_shop_cache, product.shop_id)
        uow.on_commit(
            emit_audit_event,
            action="inventory.adjust",
            actor_id=getattr(user, "pk", None),
            shop_id=product.shop_id,
            entity="product",
            entity_id=product.pk,
            delta=delta,
        )

    return AdjustmentResult(product=product, transaction=row, quantity_delta=delta)
