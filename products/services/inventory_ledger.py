# products/services/inventory_ledger.py

"""
INVENTORY LEDGER

The single primitive that changes Product.quantity.

Rules:
- One call = one counter change + one append-only InventoryTransaction row.
- Runs inside the caller's unit of work (nested atomic = savepoint).
- OUT changes re-validate stock against the row as it is NOW: the product
  row is locked and the decrement is a conditional UPDATE (quantity >= n),
  so a value read outside the transaction can never authorize a sale.
- Restoration (cancel / delete / return) is the same call with the inverse
  direction and its own reason text. Prior rows are never edited.
- Zero stock after an OUT flips sale_status to "sold"; stock coming back
  to a sold product flips it to "available".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.core.exceptions import ValidationError as ModelValidationError
from django.db import transaction
from django.db.models import Case, F, IntegerField, Sum, When

from core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from core.money import ZERO, money
from products.models import InventoryTransaction, Product

logger = logging.getLogger("inventory")

Direction = InventoryTransaction.Direction
TransactionType = InventoryTransaction.TransactionType


def _to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if isinstance(value, bool):
        raise ValidationError("quantity must be a whole integer unit")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, str) and value.strip().isdigit():
        qty = int(value.strip())
    else:
        raise ValidationError("quantity must be a whole integer unit")

    if qty <= 0:
        raise ValidationError("quantity must be greater than zero")
    return qty


def _product_id(product):
    return getattr(product, "pk", product)


@transaction.atomic
def apply_stock_change(
    *,
    product,
    quantity,
    direction: str,
    transaction_type: str,
    reason: str,
    reference_type: str = "",
    reference_id=None,
    reference_number: str = "",
    value: Decimal = ZERO,
    user=None,
) -> InventoryTransaction:
    """
    Move `quantity` units of `product` in `direction` and record it.

    Raises:
    - InsufficientStockError when an OUT change exceeds current stock
    - NotFoundError when the product does not exist
    - ValidationError on malformed quantity / direction
    """
    qty = _to_int_qty(quantity)
    if direction not in (Direction.IN, Direction.OUT):
        raise ValidationError(f"Unknown stock direction: {direction!r}")

    pid = _product_id(product)
    try:
        locked = Product.objects.select_for_update().get(pk=pid)
    except Product.DoesNotExist:
        raise NotFoundError.for_entity("Product", pid)

    if direction == Direction.OUT:
        updated = Product.objects.filter(pk=pid, quantity__gte=qty).update(
            quantity=F("quantity") - qty
        )
        if not updated:
            available = Product.objects.values_list("quantity", flat=True).get(pk=pid)
            logger.info(
                "Stock change rejected",
                extra={"product_id": str(pid), "requested": qty, "available": available},
            )
            raise InsufficientStockError(
                product_id=pid,
                product_name=locked.name,
                requested=qty,
                available=available,
            )
    else:
        Product.objects.filter(pk=pid).update(quantity=F("quantity") + qty)

    new_qty = Product.objects.values_list("quantity", flat=True).get(pk=pid)
    previous_qty = new_qty + qty if direction == Direction.OUT else new_qty - qty

    sale_status = locked.sale_status
    if direction == Direction.OUT and new_qty == 0:
        sale_status = Product.SaleStatus.SOLD
    elif direction == Direction.IN and locked.sale_status == Product.SaleStatus.SOLD:
        sale_status = Product.SaleStatus.AVAILABLE
    if sale_status != locked.sale_status:
        Product.objects.filter(pk=pid).update(sale_status=sale_status)

    try:
        row = InventoryTransaction.objects.create(
            product_id=pid,
            shop_id=locked.shop_id,
            transaction_type=transaction_type,
            direction=direction,
            quantity=qty,
            previous_quantity=previous_qty,
            new_quantity=new_qty,
            reference_type=reference_type,
            reference_id=reference_id,
            reference_number=reference_number,
            value=money(value),
            reason=reason,
            performed_by=user,
        )
    except ModelValidationError as exc:
        raise ValidationError("; ".join(exc.messages)) from exc

    # keep the caller's instance in step with the row
    if isinstance(product, Product):
        product.quantity = new_qty
        product.sale_status = sale_status

    logger.info(
        "Stock changed",
        extra={
            "product_id": str(pid),
            "type": transaction_type,
            "delta": row.signed_quantity,
            "new_quantity": new_qty,
            "reference": reference_number,
        },
    )
    return row


# ============================================================
# STOCK CONSERVATION
# ============================================================


@dataclass(frozen=True)
class ConservationReport:
    product_id: object
    opening_quantity: int
    ledger_delta: int
    current_quantity: int

    @property
    def expected_quantity(self) -> int:
        return self.opening_quantity + self.ledger_delta

    @property
    def is_consistent(self) -> bool:
        return self.expected_quantity == self.current_quantity


def ledger_delta_for(product) -> int:
    signed = Case(
        When(direction=Direction.IN, then=F("quantity")),
        default=-F("quantity"),
        output_field=IntegerField(),
    )
    total = InventoryTransaction.objects.filter(product_id=_product_id(product)).aggregate(
        delta=Sum(signed)
    )["delta"]
    return int(total or 0)


def stock_conservation_report(product) -> ConservationReport:
    fresh = Product.objects.only("id", "quantity", "opening_quantity").get(pk=_product_id(product))
    return ConservationReport(
        product_id=fresh.pk,
        opening_quantity=fresh.opening_quantity,
        ledger_delta=ledger_delta_for(fresh),
        current_quantity=fresh.quantity,
    )
