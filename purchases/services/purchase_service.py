# purchases/services/purchase_service.py

"""
======================================================
PATH: purchases/services/purchase_service.py
======================================================
PURCHASE SERVICE

Canonical flow:
1) create / update while draft, pending or ordered (no stock yet)
2) receive -> one PURCHASE ledger row per line, supplier owes += due
3) payments at any point before cancellation

Rules:
- Each operation is one unit of work, purchase row locked.
- Lines without a product create one at receiving time, at zero stock,
  followed by an IN row "Initial stock from purchase".
- Supplier balance: receive subtracts what is still due; payments made
  after receiving add back. Payments before receiving reduce the due that
  receiving subtracts, so the balance always ends at paid - total.
- Completed purchases cannot be cancelled (stock has already moved).
======================================================
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db.models import F
from django.utils import timezone

from core.exceptions import NotFoundError, ValidationError
from core.money import ZERO, money, to_decimal, to_quantity
from core.side_effects import emit_audit_event, invalidate_shop_cache
from core.unit_of_work import unit_of_work
from products.models import InventoryTransaction, Product
from products.services.inventory_ledger import apply_stock_change
from purchases.models import Purchase, PurchaseItem, Supplier
from sales.services import payment_tracker
from shops.services.numbering import next_purchase_number

logger = logging.getLogger("inventory")

HUNDRED = Decimal("100")

INITIAL_STATES = {Purchase.STATUS_DRAFT, Purchase.STATUS_PENDING, Purchase.STATUS_ORDERED}
EDITABLE_STATES = {Purchase.STATUS_DRAFT, Purchase.STATUS_PENDING}
RECEIVABLE_STATES = INITIAL_STATES


# ============================================================
# LOOKUPS
# ============================================================


def _shop_id(shop):
    return getattr(shop, "pk", shop)


def _locked_purchase(*, shop, purchase_id) -> Purchase:
    try:
        return Purchase.objects.select_for_update().get(pk=purchase_id, shop_id=_shop_id(shop))
    except Purchase.DoesNotExist:
        raise NotFoundError.for_entity("Purchase", purchase_id)


def _locked_supplier(supplier_id) -> Supplier:
    try:
        return Supplier.objects.select_for_update().get(pk=supplier_id)
    except Supplier.DoesNotExist:
        raise NotFoundError.for_entity("Supplier", supplier_id)


def get_purchase(*, shop, purchase_id) -> Purchase:
    try:
        return (
            Purchase.objects.select_related("supplier")
            .prefetch_related("items", "payments")
            .get(pk=purchase_id, shop_id=_shop_id(shop))
        )
    except Purchase.DoesNotExist:
        raise NotFoundError.for_entity("Purchase", purchase_id)


# ============================================================
# ITEMS / TOTALS
# ============================================================


def _build_items(*, shop, items) -> list:
    if not items:
        raise ValidationError("A purchase needs at least one item")

    built = []
    for raw in items:
        product = None
        if raw.get("product_id"):
            try:
                product = Product.objects.get(pk=raw["product_id"], shop_id=shop.pk)
            except Product.DoesNotExist:
                raise NotFoundError.for_entity("Product", raw["product_id"])

        name = (raw.get("product_name") or (product.name if product else "")).strip()
        if not name:
            raise ValidationError("product_name is required for lines without a product")

        qty = to_quantity(raw.get("quantity"), field="Item quantity")

        unit_cost = money(to_decimal(raw.get("unit_cost"), field="unit_cost"))
        if unit_cost < 0:
            raise ValidationError("unit_cost cannot be negative")

        gst_pct = to_decimal(raw.get("gst_percentage") or ZERO, field="gst_percentage")
        line_total = money(unit_cost * qty)

        built.append(
            PurchaseItem(
                product=product,
                product_name=name,
                sku=raw.get("sku") or (product.sku if product else ""),
                metal_type=raw.get("metal_type") or (product.metal_type if product else "gold"),
                purity=raw.get("purity") or (product.purity if product else ""),
                gross_weight=to_decimal(raw.get("gross_weight") or ZERO),
                stone_weight=to_decimal(raw.get("stone_weight") or ZERO),
                quantity=qty,
                unit_cost=unit_cost,
                gst_percentage=gst_pct,
                line_total=line_total,
                gst_amount=money(line_total * gst_pct / HUNDRED),
            )
        )
    return built


def _apply_totals(purchase: Purchase, items, discount_amount=None) -> None:
    if discount_amount is not None:
        purchase.discount_amount = money(to_decimal(discount_amount, field="discount_amount"))

    purchase.subtotal = money(sum((i.line_total for i in items), ZERO))
    purchase.gst_amount = money(sum((i.gst_amount for i in items), ZERO))
    if purchase.discount_amount < 0 or purchase.discount_amount > purchase.subtotal + purchase.gst_amount:
        raise ValidationError("discount_amount must be between 0 and the purchase total")

    purchase.grand_total = money(purchase.subtotal + purchase.gst_amount - purchase.discount_amount)
    payment_tracker.set_total(purchase, purchase.grand_total)


def _after_commit(uow, purchase: Purchase, *, action: str, user, **details) -> None:
    uow.on_commit(invalidate_shop_cache, purchase.shop_id)
    uow.on_commit(
        emit_audit_event,
        action=action,
        actor_id=getattr(user, "pk", None),
        shop_id=purchase.shop_id,
        entity="purchase",
        entity_id=purchase.pk,
        amounts={
            "grand_total": purchase.grand_total,
            "paid_amount": purchase.paid_amount,
            "due_amount": purchase.due_amount,
        },
        purchase_number=purchase.purchase_number,
        status=purchase.status,
        **details,
    )


# ============================================================
# CREATE / UPDATE / DELETE
# ============================================================


def create_purchase(
    *,
    shop,
    supplier: Supplier,
    items,
    user=None,
    status: str = Purchase.STATUS_DRAFT,
    supplier_invoice_number: str = "",
    expected_date=None,
    discount_amount=ZERO,
    notes: str = "",
) -> Purchase:
    if status not in INITIAL_STATES:
        raise ValidationError(f"A purchase can only be created as one of {sorted(INITIAL_STATES)}")
    if supplier.shop_id != shop.pk:
        raise NotFoundError.for_entity("Supplier", supplier.pk)

    with unit_of_work("purchase.create") as uow:
        built = _build_items(shop=shop, items=items)
        purchase = Purchase(
            shop=shop,
            supplier=supplier,
            status=status,
            supplier_invoice_number=supplier_invoice_number or "",
            expected_date=expected_date,
            notes=notes or "",
            created_by=user,
        )
        _apply_totals(purchase, built, discount_amount)
        purchase.purchase_number = next_purchase_number(shop=shop)
        purchase.save()

        for item in built:
            item.purchase = purchase
            item.save()

        _after_commit(uow, purchase, action="purchase.create", user=user)

    logger.info(
        "Purchase created",
        extra={"purchase_id": str(purchase.pk), "purchase_number": purchase.purchase_number},
    )
    return purchase


def update_purchase(
    *,
    shop,
    purchase_id,
    user=None,
    items=None,
    status=None,
    supplier_invoice_number=None,
    expected_date=None,
    discount_amount=None,
    notes=None,
) -> Purchase:
    with unit_of_work("purchase.update") as uow:
        purchase = _locked_purchase(shop=shop, purchase_id=purchase_id)
        if purchase.status not in EDITABLE_STATES:
            raise ValidationError(
                f"Purchase {purchase.purchase_number} cannot be edited in '{purchase.status}' status"
            )

        if status is not None:
            if status not in INITIAL_STATES:
                raise ValidationError(f"Cannot set purchase status to '{status}' by editing")
            purchase.status = status
        if supplier_invoice_number is not None:
            purchase.supplier_invoice_number = supplier_invoice_number
        if expected_date is not None:
            purchase.expected_date = expected_date
        if notes is not None:
            purchase.notes = notes

        if items is not None:
            built = _build_items(shop=purchase.shop, items=items)
            purchase.items.all().delete()
            for item in built:
                item.purchase = purchase
                item.save()
        else:
            built = list(purchase.items.all())

        _apply_totals(purchase, built, discount_amount)
        purchase.save()

        _after_commit(uow, purchase, action="purchase.update", user=user)
    return purchase


def delete_purchase(*, shop, purchase_id, user=None) -> Purchase:
    with unit_of_work("purchase.delete") as uow:
        purchase = _locked_purchase(shop=shop, purchase_id=purchase_id)
        if purchase.status != Purchase.STATUS_DRAFT:
            raise ValidationError(
                f"Only draft purchases can be deleted; {purchase.purchase_number} is '{purchase.status}'"
            )
        purchase.deleted_at = timezone.now()
        purchase.save(update_fields=["deleted_at", "updated_at"])
        _after_commit(uow, purchase, action="purchase.delete", user=user)
    return purchase


# ============================================================
# RECEIVE / CANCEL
# ============================================================


def _product_for_line(*, purchase: Purchase, item: PurchaseItem) -> Product:
    product = Product(
        shop_id=purchase.shop_id,
        sku=item.sku or f"{purchase.purchase_number}-{str(item.pk)[:8]}".upper(),
        name=item.product_name,
        metal_type=item.metal_type or Product.MetalType.GOLD,
        purity=item.purity,
        gross_weight=item.gross_weight,
        stone_weight=item.stone_weight,
        cost_price=item.unit_cost,
        quantity=0,
    )
    if item.unit_cost > 0:
        product.selling_price = product.compute_selling_price_from_cost(item.unit_cost)
    product.save()

    item.product = product
    item.save(update_fields=["product"])
    return product


def receive_purchase(*, shop, purchase_id, user=None) -> Purchase:
    """
    Bring the purchase into stock (status -> completed).
    """
    with unit_of_work("purchase.receive") as uow:
        purchase = _locked_purchase(shop=shop, purchase_id=purchase_id)
        if purchase.status == Purchase.STATUS_COMPLETED:
            raise ValidationError(f"Purchase {purchase.purchase_number} is already received")
        if purchase.status not in RECEIVABLE_STATES:
            raise ValidationError(
                f"Purchase {purchase.purchase_number} cannot be received in '{purchase.status}' status"
            )

        items = list(purchase.items.select_related("product"))
        if not items:
            raise ValidationError(f"Purchase {purchase.purchase_number} has no items")

        for item in items:
            if item.product_id is None:
                product = _product_for_line(purchase=purchase, item=item)
                tx_type = InventoryTransaction.TransactionType.IN
                reason = "Initial stock from purchase"
            else:
                product = item.product
                tx_type = InventoryTransaction.TransactionType.PURCHASE
                reason = f"Received via purchase {purchase.purchase_number}"

            apply_stock_change(
                product=product,
                quantity=item.quantity,
                direction=InventoryTransaction.Direction.IN,
                transaction_type=tx_type,
                reason=reason,
                reference_type=InventoryTransaction.ReferenceType.PURCHASE,
                reference_id=purchase.pk,
                reference_number=purchase.purchase_number,
                value=item.line_total,
                user=user,
            )

        supplier = _locked_supplier(purchase.supplier_id)
        supplier.current_balance = money(supplier.current_balance - purchase.due_amount)
        supplier.total_purchases = money(supplier.total_purchases + purchase.grand_total)
        supplier.save(update_fields=["current_balance", "total_purchases", "updated_at"])

        purchase.status = Purchase.STATUS_COMPLETED
        purchase.received_at = timezone.now()
        purchase.received_by = user
        purchase.save()

        _after_commit(uow, purchase, action="purchase.receive", user=user, lines=len(items))

    logger.info(
        "Purchase received",
        extra={"purchase_id": str(purchase.pk), "lines": len(items)},
    )
    return purchase


def cancel_purchase(*, shop, purchase_id, user=None, reason: str = "") -> Purchase:
    with unit_of_work("purchase.cancel") as uow:
        purchase = _locked_purchase(shop=shop, purchase_id=purchase_id)
        if purchase.status == Purchase.STATUS_CANCELLED:
            raise ValidationError(f"Purchase {purchase.purchase_number} is already cancelled")
        if purchase.status == Purchase.STATUS_COMPLETED:
            raise ValidationError(
                f"Purchase {purchase.purchase_number} has been received and cannot be cancelled"
            )

        purchase.status = Purchase.STATUS_CANCELLED
        purchase.cancelled_at = timezone.now()
        purchase.cancellation_reason = reason or ""
        purchase.save()

        _after_commit(uow, purchase, action="purchase.cancel", user=user, reason=purchase.cancellation_reason)
    return purchase


# ============================================================
# PAYMENTS
# ============================================================


def add_purchase_payment(*, shop, purchase_id, user=None, amount, mode: str, **details):
    """Returns (purchase, payment)."""
    with unit_of_work("purchase.add_payment") as uow:
        purchase = _locked_purchase(shop=shop, purchase_id=purchase_id)
        if purchase.status == Purchase.STATUS_CANCELLED:
            raise ValidationError(f"Cannot pay a cancelled purchase ({purchase.purchase_number})")

        payment = payment_tracker.add_payment(target=purchase, amount=amount, mode=mode, user=user, **details)

        if purchase.status == Purchase.STATUS_COMPLETED:
            Supplier.objects.filter(pk=purchase.supplier_id).update(
                current_balance=F("current_balance") + payment.amount,
                updated_at=timezone.now(),
            )

        _after_commit(uow, purchase, action="purchase.add_payment", user=user, payment_amount=payment.amount)
    return purchase, payment
