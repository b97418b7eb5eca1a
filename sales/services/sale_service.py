# sales/services/sale_service.py

"""
SALE LIFECYCLE ORCHESTRATOR

SINGLE SOURCE OF TRUTH for every sale mutation:
- creation (numbering, items, financials, stock, payments, customer stats)
- status transitions (submit / confirm / deliver / complete / approve / reject)
- reversals (cancel, soft delete, return)
- financial edits (update items, discount, old gold, payments)

GUARANTEES:
- Each public operation is ONE unit of work: the Sale write, every
  inventory ledger call and the Customer write commit together or not at all.
- Preconditions (state rules, stock) are checked inside that unit, against
  locked rows.
- Financials are always recomputed from item data.
- Cache invalidation + audit events run only after commit (best-effort).
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.utils import timezone

from core.conf import engine_setting, grand_total_quantum
from core.exceptions import NotFoundError, ValidationError
from core.money import ZERO, money, to_decimal, to_quantity
from core.side_effects import emit_audit_event, invalidate_shop_cache
from core.unit_of_work import unit_of_work
from customers.models import Customer
from customers.services import accumulator
from products.models import InventoryTransaction, Product
from products.services.inventory_ledger import apply_stock_change
from sales.models import OldGoldItem, Sale, SaleItem
from sales.services import payment_tracker
from sales.services.financial_calculator import (
    DiscountInput,
    LineInput,
    OldGoldInput,
    calculate_sale,
)
from sales.services.sale_lifecycle import (
    ensure_approvable,
    ensure_deletable,
    ensure_editable,
    ensure_financials_mutable,
    ensure_payable,
    validate_initial_status,
    validate_transition,
)
from shops.services.numbering import next_invoice_number

logger = logging.getLogger("sales")

Direction = InventoryTransaction.Direction
TxType = InventoryTransaction.TransactionType
RefType = InventoryTransaction.ReferenceType

ITEM_DERIVED_FIELDS = [
    "net_weight",
    "metal_value",
    "making_charges",
    "gross_taxable",
    "discount_amount",
    "taxable_amount",
    "gst_amount",
    "sale_discount_share",
    "line_taxable_amount",
    "line_gst_amount",
    "item_total",
]

SALE_TOTAL_FIELDS = [
    "subtotal",
    "total_metal_value",
    "total_stone_value",
    "total_making_charges",
    "total_other_charges",
    "total_discount",
    "total_taxable_amount",
    "total_gst",
    "cgst",
    "sgst",
    "round_off",
    "grand_total",
    "old_gold_value",
    "net_payable",
    "exchange_refund_due",
]


# ============================================================
# LOOKUPS
# ============================================================


def _shop_id(shop):
    return getattr(shop, "pk", shop)


def _locked_sale(*, shop, sale_id) -> Sale:
    try:
        return Sale.objects.select_for_update().get(pk=sale_id, shop_id=_shop_id(shop))
    except Sale.DoesNotExist:
        raise NotFoundError.for_entity("Sale", sale_id)


def get_sale(*, shop, sale_id) -> Sale:
    try:
        return (
            Sale.objects.select_related("customer", "shop")
            .prefetch_related("items", "old_gold_items", "payments")
            .get(pk=sale_id, shop_id=_shop_id(shop))
        )
    except Sale.DoesNotExist:
        raise NotFoundError.for_entity("Sale", sale_id)


def get_sale_payments(*, shop, sale_id):
    return list(get_sale(shop=shop, sale_id=sale_id).payments.all())


# ============================================================
# INPUT MAPPING
# ============================================================


def _pick(raw: dict, key: str, default):
    value = raw.get(key)
    return default if value in (None, "") else value


def _quantity(raw: dict) -> int:
    return to_quantity(raw.get("quantity", 1), field="Item quantity")


def _build_item(*, shop, raw: dict, line_number: int) -> SaleItem:
    """Unsaved SaleItem with inputs snapshotted from payload > product > shop."""
    product = None
    product_id = raw.get("product_id")
    if product_id:
        try:
            product = Product.objects.get(pk=product_id, shop_id=shop.pk)
        except Product.DoesNotExist:
            raise NotFoundError.for_entity("Product", product_id)
        if not product.is_active:
            raise ValidationError(f"Product {product.name} is inactive")

    metal_type = _pick(raw, "metal_type", product.metal_type if product else "")
    discount = raw.get("discount") or {}

    item = SaleItem(
        product=product,
        line_number=line_number,
        product_name=_pick(raw, "product_name", product.name if product else ""),
        sku=_pick(raw, "sku", product.sku if product else ""),
        metal_type=metal_type,
        purity=_pick(raw, "purity", product.purity if product else ""),
        quantity=_quantity(raw),
        gross_weight=to_decimal(_pick(raw, "gross_weight", product.gross_weight if product else ZERO)),
        stone_weight=to_decimal(_pick(raw, "stone_weight", product.stone_weight if product else ZERO)),
        rate_per_gram=to_decimal(_pick(raw, "rate_per_gram", shop.rate_for_metal(metal_type))),
        stone_value=to_decimal(_pick(raw, "stone_value", product.stone_value if product else ZERO)),
        making_charges_type=_pick(
            raw,
            "making_charges_type",
            product.making_charges_type if product else SaleItem.MAKING_FLAT,
        ),
        making_charges_value=to_decimal(
            _pick(raw, "making_charges_value", product.making_charges_value if product else ZERO)
        ),
        other_charges=to_decimal(_pick(raw, "other_charges", ZERO)),
        discount_type=discount.get("type") or "",
        discount_value=to_decimal(discount.get("value") or ZERO),
        gst_percentage=to_decimal(_pick(raw, "gst_percentage", shop.default_gst_percentage)),
    )
    if not item.product_name:
        raise ValidationError("product_name is required for items without a product")
    return item


def _build_old_gold(*, shop, raw: dict) -> OldGoldItem:
    metal_type = raw.get("metal_type") or "gold"
    return OldGoldItem(
        description=raw.get("description") or "",
        metal_type=metal_type,
        purity=raw.get("purity") or "",
        gross_weight=to_decimal(raw.get("gross_weight"), field="gross_weight"),
        stone_weight=to_decimal(raw.get("stone_weight") or ZERO, field="stone_weight"),
        rate_per_gram=to_decimal(_pick(raw, "rate_per_gram", shop.rate_for_metal(metal_type))),
        deduction_percentage=to_decimal(
            _pick(raw, "deduction_percentage", shop.old_gold_deduction_percentage)
        ),
    )


def _line_input(item: SaleItem) -> LineInput:
    discount = None
    if item.discount_type:
        discount = DiscountInput(type=item.discount_type, value=to_decimal(item.discount_value))
    return LineInput(
        quantity=item.quantity,
        gross_weight=to_decimal(item.gross_weight),
        stone_weight=to_decimal(item.stone_weight),
        rate_per_gram=to_decimal(item.rate_per_gram),
        stone_value=to_decimal(item.stone_value),
        making_charges_type=item.making_charges_type,
        making_charges_value=to_decimal(item.making_charges_value),
        other_charges=to_decimal(item.other_charges),
        gst_percentage=to_decimal(item.gst_percentage),
        discount=discount,
    )


def _old_gold_input(og: OldGoldItem) -> OldGoldInput:
    return OldGoldInput(
        gross_weight=to_decimal(og.gross_weight),
        stone_weight=to_decimal(og.stone_weight),
        rate_per_gram=to_decimal(og.rate_per_gram),
        deduction_percentage=to_decimal(og.deduction_percentage),
    )


def _set_sale_discount(sale: Sale, discount) -> None:
    discount = discount or {}
    sale.discount_type = discount.get("type") or ""
    sale.discount_value = money(to_decimal(discount.get("value") or ZERO)) if sale.discount_type else ZERO
    sale.discount_reason = (discount.get("reason") or "") if sale.discount_type else ""


# ============================================================
# RECALCULATION
# ============================================================


def _recalculate(sale: Sale, items, old_gold_items, *, enforce_ceiling: bool):
    """
    Re-derive every financial and payment column of `sale` from its item
    inputs. Mutates the instances; the caller persists them.
    """
    shop = sale.shop
    sale_discount = None
    if sale.discount_type:
        sale_discount = DiscountInput(type=sale.discount_type, value=to_decimal(sale.discount_value))

    totals = calculate_sale(
        [_line_input(i) for i in items],
        sale_discount=sale_discount,
        old_gold=[_old_gold_input(og) for og in old_gold_items],
        discount_ceiling=shop.max_discount_percentage if enforce_ceiling else None,
        allow_negative_net_payable=shop.allow_refund_on_exchange,
        grand_total_quantum=grand_total_quantum(),
    )

    for item, result in zip(items, totals.lines):
        for field in ITEM_DERIVED_FIELDS:
            setattr(item, field, getattr(result, field))

    for og, result in zip(old_gold_items, totals.old_gold):
        og.net_weight = result.net_weight
        og.value = result.value

    for field in SALE_TOTAL_FIELDS:
        setattr(sale, field, getattr(totals, field))

    payment_tracker.set_total(sale, totals.net_payable)
    return totals


def _persist_recalculation(sale: Sale, items, old_gold_items) -> None:
    for item in items:
        item.save()
    for og in old_gold_items:
        og.save()
    sale.save()


def _recalculate_existing(sale: Sale, *, enforce_ceiling: bool) -> None:
    items = list(sale.items.all())
    old_gold_items = list(sale.old_gold_items.all())
    _recalculate(sale, items, old_gold_items, enforce_ceiling=enforce_ceiling)
    _persist_recalculation(sale, items, old_gold_items)


# ============================================================
# STOCK
# ============================================================


def _deduct_stock(sale: Sale, items, *, user, reason: str) -> None:
    for item in items:
        if item.product_id is None:
            continue
        apply_stock_change(
            product=item.product,
            quantity=item.quantity,
            direction=Direction.OUT,
            transaction_type=TxType.SALE,
            reason=reason,
            reference_type=RefType.SALE,
            reference_id=sale.pk,
            reference_number=sale.invoice_number,
            value=item.item_total,
            user=user,
        )


def _restore_stock(sale: Sale, *, user, transaction_type: str, reason: str, quantities=None) -> Decimal:
    """
    Put stock back for every stock-bearing item (or the given subset).
    Returns the sale value of what was restored.
    """
    restored_value = ZERO
    for item in sale.items.all():
        qty = quantities.get(item.pk, 0) if quantities is not None else item.returnable_quantity
        if qty <= 0:
            continue
        value = money(item.item_total * qty / item.quantity)
        restored_value += value
        if item.product_id is None:
            continue
        apply_stock_change(
            product=item.product_id,
            quantity=qty,
            direction=Direction.IN,
            transaction_type=transaction_type,
            reason=reason,
            reference_type=RefType.SALE,
            reference_id=sale.pk,
            reference_number=sale.invoice_number,
            value=value,
            user=user,
        )
    return money(restored_value)


# ============================================================
# SIDE EFFECTS
# ============================================================


def _after_commit(uow, sale: Sale, *, action: str, user, **details) -> None:
    uow.on_commit(invalidate_shop_cache, sale.shop_id)
    uow.on_commit(
        emit_audit_event,
        action=action,
        actor_id=getattr(user, "pk", None),
        shop_id=sale.shop_id,
        entity="sale",
        entity_id=sale.pk,
        amounts={
            "grand_total": sale.grand_total,
            "net_payable": sale.net_payable,
            "paid_amount": sale.paid_amount,
            "due_amount": sale.due_amount,
        },
        invoice_number=sale.invoice_number,
        status=sale.status,
        **details,
    )


def _customer_delta(sale: Sale, *, grand_before: Decimal, due_before: Decimal) -> None:
    spent_delta = money(sale.grand_total - grand_before)
    due_delta = money(sale.due_amount - due_before)
    if spent_delta or due_delta:
        accumulator.apply_sale_delta(
            customer_id=sale.customer_id,
            spent_delta=spent_delta,
            due_delta=due_delta,
        )


# ============================================================
# CREATE
# ============================================================


def create_sale(
    *,
    shop,
    customer: Customer,
    items,
    user=None,
    status: str = None,
    sale_type: str = Sale.SaleType.RETAIL,
    discount=None,
    old_gold=None,
    payments=None,
    due_date=None,
    notes: str = "",
) -> Sale:
    """
    Create a sale and everything it implies, atomically.

    items:    [{product_id?, product_name?, quantity, gross_weight, stone_weight,
                rate_per_gram, making_charges_type, making_charges_value,
                stone_value, other_charges, gst_percentage,
                discount: {type, value}}]
    discount: {type, value, reason}  (sale-level)
    old_gold: [{gross_weight, stone_weight, rate_per_gram, deduction_percentage, ...}]
    payments: [{amount, mode, ...}]
    """
    if not items:
        raise ValidationError("A sale needs at least one item")

    initial_status = status or Sale.STATUS_CONFIRMED
    validate_initial_status(initial_status)

    if customer.shop_id != shop.pk:
        raise NotFoundError(f"Customer {customer.pk} does not belong to shop {shop.pk}")

    with unit_of_work("sale.create") as uow:
        sale_items = [_build_item(shop=shop, raw=raw, line_number=n) for n, raw in enumerate(items, start=1)]
        og_items = [_build_old_gold(shop=shop, raw=raw) for raw in (old_gold or [])]

        sale = Sale(
            shop=shop,
            customer=customer,
            sale_type=sale_type,
            status=initial_status,
            due_date=due_date,
            notes=notes or "",
            created_by=user,
        )
        _set_sale_discount(sale, discount)
        _recalculate(sale, sale_items, og_items, enforce_ceiling=True)

        sale.invoice_number = next_invoice_number(shop=shop)
        sale.save()

        for item in sale_items:
            item.sale = sale
            item.save()
        for og in og_items:
            og.sale = sale
            og.save()

        _deduct_stock(sale, sale_items, user=user, reason=f"Product sold via invoice {sale.invoice_number}")

        for p in payments or []:
            payment_tracker.add_payment(target=sale, user=user, **p)

        accumulator.record_sale(
            customer_id=customer.pk,
            grand_total=sale.grand_total,
            due_amount=sale.due_amount,
        )

        _after_commit(uow, sale, action="sale.create", user=user)

    logger.info(
        "Sale created",
        extra={
            "sale_id": str(sale.id),
            "invoice_number": sale.invoice_number,
            "grand_total": str(sale.grand_total),
            "items": len(sale_items),
        },
    )
    return sale


# ============================================================
# UPDATE (draft / pending only)
# ============================================================


def update_sale(*, shop, sale_id, user=None, items=None, notes=None, due_date=None, sale_type=None) -> Sale:
    with unit_of_work("sale.update") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        ensure_editable(sale=sale)

        grand_before, due_before = sale.grand_total, sale.due_amount

        if notes is not None:
            sale.notes = notes
        if due_date is not None:
            sale.due_date = due_date
        if sale_type is not None:
            sale.sale_type = sale_type

        if items is not None:
            if not items:
                raise ValidationError("A sale needs at least one item")
            _restore_stock(
                sale,
                user=user,
                transaction_type=TxType.ADJUSTMENT,
                reason=f"Sale {sale.invoice_number} updated - previous items restored",
            )
            sale.items.all().delete()

            new_items = [
                _build_item(shop=sale.shop, raw=raw, line_number=n) for n, raw in enumerate(items, start=1)
            ]
            og_items = list(sale.old_gold_items.all())
            _recalculate(sale, new_items, og_items, enforce_ceiling=True)
            for item in new_items:
                item.sale = sale
            _persist_recalculation(sale, new_items, og_items)
            _deduct_stock(
                sale,
                new_items,
                user=user,
                reason=f"Product sold via invoice {sale.invoice_number} (updated)",
            )
        else:
            sale.save()

        _customer_delta(sale, grand_before=grand_before, due_before=due_before)
        _after_commit(uow, sale, action="sale.update", user=user)

    return sale


# ============================================================
# STATUS TRANSITIONS (no stock / money)
# ============================================================


def _transition(*, shop, sale_id, user, target: str, action: str, apply=None) -> Sale:
    with unit_of_work(action) as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        validate_transition(sale=sale, target_status=target)
        sale.status = target
        if apply:
            apply(sale)
        sale.save()
        _after_commit(uow, sale, action=action, user=user)
    return sale


def submit_sale(*, shop, sale_id, user=None) -> Sale:
    return _transition(shop=shop, sale_id=sale_id, user=user, target=Sale.STATUS_PENDING, action="sale.submit")


def confirm_sale(*, shop, sale_id, user=None) -> Sale:
    return _transition(shop=shop, sale_id=sale_id, user=user, target=Sale.STATUS_CONFIRMED, action="sale.confirm")


def deliver_sale(
    *,
    shop,
    sale_id,
    user=None,
    delivery_type: str = Sale.DeliveryType.IMMEDIATE,
    address: str = "",
    scheduled_date=None,
    notes: str = "",
) -> Sale:
    if delivery_type not in Sale.DeliveryType.values:
        raise ValidationError(f"Unknown delivery type: {delivery_type!r}")

    def _apply(sale):
        sale.delivery_type = delivery_type
        sale.delivery_address = address or sale.delivery_address
        sale.scheduled_delivery_date = scheduled_date
        sale.delivered_at = timezone.now()
        sale.delivered_by = user
        if notes:
            sale.notes = f"{sale.notes}\n{notes}".strip()

    return _transition(
        shop=shop,
        sale_id=sale_id,
        user=user,
        target=Sale.STATUS_DELIVERED,
        action="sale.deliver",
        apply=_apply,
    )


def complete_sale(*, shop, sale_id, user=None) -> Sale:
    def _apply(sale):
        sale.completed_at = timezone.now()

    return _transition(
        shop=shop,
        sale_id=sale_id,
        user=user,
        target=Sale.STATUS_COMPLETED,
        action="sale.complete",
        apply=_apply,
    )


def approve_sale(*, shop, sale_id, user=None) -> Sale:
    with unit_of_work("sale.approve") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        ensure_approvable(sale=sale)
        sale.approval_status = Sale.APPROVAL_APPROVED
        sale.approved_by = user
        sale.approved_at = timezone.now()
        sale.rejection_reason = ""
        sale.save()
        _after_commit(uow, sale, action="sale.approve", user=user)
    return sale


def reject_sale(*, shop, sale_id, user=None, reason: str) -> Sale:
    if not (reason or "").strip():
        raise ValidationError("A rejection reason is required")
    with unit_of_work("sale.reject") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        ensure_approvable(sale=sale)
        sale.approval_status = Sale.APPROVAL_REJECTED
        sale.approved_by = user
        sale.approved_at = timezone.now()
        sale.rejection_reason = reason.strip()
        sale.save()
        _after_commit(uow, sale, action="sale.reject", user=user, reason=sale.rejection_reason)
    return sale


# ============================================================
# REVERSALS
# ============================================================


def _reverse_customer_stats(sale: Sale) -> None:
    if engine_setting("CANCEL_REVERSES_CUSTOMER_STATS"):
        accumulator.reverse_sale(
            customer_id=sale.customer_id,
            grand_total=sale.grand_total,
            due_amount=sale.due_amount,
        )


def cancel_sale(*, shop, sale_id, user=None, reason: str = "") -> Sale:
    """
    Cancel a non-terminal sale: every stock-bearing item goes back through
    the ledger and, unless disabled, the customer aggregates are reversed.
    Money already paid is flagged as a pending refund.
    """
    with unit_of_work("sale.cancel") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        validate_transition(sale=sale, target_status=Sale.STATUS_CANCELLED)

        _restore_stock(
            sale,
            user=user,
            transaction_type=TxType.ADJUSTMENT,
            reason=f"Sale {sale.invoice_number} cancelled - stock restored",
        )
        _reverse_customer_stats(sale)

        sale.status = Sale.STATUS_CANCELLED
        sale.cancelled_at = timezone.now()
        sale.cancelled_by = user
        sale.cancellation_reason = reason or ""
        sale.cancellation_refund_amount = sale.paid_amount
        sale.cancellation_refund_status = (
            Sale.RefundStatus.PENDING if sale.paid_amount > 0 else Sale.RefundStatus.NOT_APPLICABLE
        )
        sale.save()

        _after_commit(uow, sale, action="sale.cancel", user=user, reason=sale.cancellation_reason)

    logger.info(
        "Sale cancelled",
        extra={"sale_id": str(sale.id), "invoice_number": sale.invoice_number},
    )
    return sale


def _soft_delete(sale: Sale, *, user) -> None:
    ensure_deletable(sale=sale)
    _restore_stock(
        sale,
        user=user,
        transaction_type=TxType.ADJUSTMENT,
        reason=f"Sale {sale.invoice_number} deleted - stock restored",
    )
    _reverse_customer_stats(sale)
    sale.deleted_at = timezone.now()
    sale.deleted_by = user
    sale.save()


def delete_sale(*, shop, sale_id, user=None) -> Sale:
    with unit_of_work("sale.delete") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        _soft_delete(sale, user=user)
        _after_commit(uow, sale, action="sale.delete", user=user)
    return sale


def bulk_delete_sales(*, shop, sale_ids, user=None) -> int:
    """All-or-nothing: one non-draft sale aborts the whole batch."""
    sale_ids = list(dict.fromkeys(sale_ids or []))
    if not sale_ids:
        raise ValidationError("No sales selected")

    with unit_of_work("sale.bulk_delete") as uow:
        for sale_id in sale_ids:
            sale = _locked_sale(shop=shop, sale_id=sale_id)
            _soft_delete(sale, user=user)
            _after_commit(uow, sale, action="sale.delete", user=user, bulk=True)
    return len(sale_ids)


def _normalize_return_items(sale: Sale, items) -> dict:
    by_id = {str(i.pk): i for i in sale.items.all()}

    if not items:
        return {i.pk: i.returnable_quantity for i in by_id.values() if i.returnable_quantity > 0}

    quantities = {}
    for row in items:
        key = str(row.get("sale_item_id") or "")
        item = by_id.get(key)
        if item is None:
            raise NotFoundError.for_entity("Sale item", key)
        qty = _quantity(row)
        quantities[item.pk] = quantities.get(item.pk, 0) + qty
        if quantities[item.pk] > item.returnable_quantity:
            raise ValidationError(
                f"Cannot return {quantities[item.pk]} of {item.product_name}; "
                f"only {item.returnable_quantity} returnable"
            )
    return quantities


def return_sale(*, shop, sale_id, user=None, items=None, reason: str = "", refund_amount=None) -> Sale:
    """
    Return a sale (once). `items` = [{sale_item_id, quantity}] for a partial
    return; omitted = everything. Refund defaults to the value of the
    returned lines.
    """
    with unit_of_work("sale.return") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        validate_transition(sale=sale, target_status=Sale.STATUS_RETURNED)

        quantities = _normalize_return_items(sale, items)
        if not quantities:
            raise ValidationError(f"Sale {sale.invoice_number} has nothing left to return")

        returned_value = _restore_stock(
            sale,
            user=user,
            transaction_type=TxType.RETURN,
            reason=f"Returned via invoice {sale.invoice_number}",
            quantities=quantities,
        )

        for item in sale.items.all():
            qty = quantities.get(item.pk, 0)
            if qty:
                item.returned_quantity += qty
                item.save(update_fields=["returned_quantity"])

        refund = returned_value if refund_amount is None else money(to_decimal(refund_amount, field="refund_amount"))
        if refund < 0:
            raise ValidationError("Refund amount cannot be negative")
        if refund > sale.grand_total:
            raise ValidationError(
                f"Refund of {refund} exceeds the sale total ({sale.grand_total})"
            )

        accumulator.record_return(customer_id=sale.customer_id, refund_amount=refund)

        sale.status = Sale.STATUS_RETURNED
        sale.returned_at = timezone.now()
        sale.returned_by = user
        sale.return_reason = reason or ""
        sale.return_refund_amount = refund
        sale.save()

        _after_commit(uow, sale, action="sale.return", user=user, refund_amount=refund)

    logger.info(
        "Sale returned",
        extra={"sale_id": str(sale.id), "refund_amount": str(sale.return_refund_amount)},
    )
    return sale


# ============================================================
# FINANCIAL EDITS
# ============================================================


def apply_discount(*, shop, sale_id, user=None, discount_type: str, value, reason: str = "") -> Sale:
    with unit_of_work("sale.apply_discount") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        ensure_financials_mutable(sale=sale)
        grand_before, due_before = sale.grand_total, sale.due_amount

        _set_sale_discount(sale, {"type": discount_type, "value": value, "reason": reason})
        _recalculate_existing(sale, enforce_ceiling=True)
        _customer_delta(sale, grand_before=grand_before, due_before=due_before)

        _after_commit(uow, sale, action="sale.apply_discount", user=user, discount=sale.total_discount)
    return sale


def remove_discount(*, shop, sale_id, user=None) -> Sale:
    with unit_of_work("sale.remove_discount") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        ensure_financials_mutable(sale=sale)
        grand_before, due_before = sale.grand_total, sale.due_amount

        _set_sale_discount(sale, None)
        _recalculate_existing(sale, enforce_ceiling=False)
        _customer_delta(sale, grand_before=grand_before, due_before=due_before)

        _after_commit(uow, sale, action="sale.remove_discount", user=user)
    return sale


def add_old_gold(*, shop, sale_id, user=None, items) -> Sale:
    if not items:
        raise ValidationError("No old gold items supplied")
    with unit_of_work("sale.add_old_gold") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        ensure_financials_mutable(sale=sale)
        grand_before, due_before = sale.grand_total, sale.due_amount

        for raw in items:
            og = _build_old_gold(shop=sale.shop, raw=raw)
            og.sale = sale
            og.save()

        _recalculate_existing(sale, enforce_ceiling=False)
        _customer_delta(sale, grand_before=grand_before, due_before=due_before)

        _after_commit(uow, sale, action="sale.add_old_gold", user=user, old_gold_value=sale.old_gold_value)
    return sale


def remove_old_gold(*, shop, sale_id, old_gold_item_id, user=None) -> Sale:
    with unit_of_work("sale.remove_old_gold") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        ensure_financials_mutable(sale=sale)
        grand_before, due_before = sale.grand_total, sale.due_amount

        deleted, _ = sale.old_gold_items.filter(pk=old_gold_item_id).delete()
        if not deleted:
            raise NotFoundError.for_entity("Old gold item", old_gold_item_id)

        _recalculate_existing(sale, enforce_ceiling=False)
        _customer_delta(sale, grand_before=grand_before, due_before=due_before)

        _after_commit(uow, sale, action="sale.remove_old_gold", user=user, old_gold_value=sale.old_gold_value)
    return sale


def add_payment(*, shop, sale_id, user=None, amount, mode: str, **details):
    """Returns (sale, payment)."""
    with unit_of_work("sale.add_payment") as uow:
        sale = _locked_sale(shop=shop, sale_id=sale_id)
        ensure_payable(sale=sale)
        due_before = sale.due_amount

        payment = payment_tracker.add_payment(target=sale, amount=amount, mode=mode, user=user, **details)
        _customer_delta(sale, grand_before=sale.grand_total, due_before=due_before)

        _after_commit(uow, sale, action="sale.add_payment", user=user, payment_amount=payment.amount, mode=mode)
    return sale, payment


# ============================================================
# RECEIPT
# ============================================================


def build_receipt(sale: Sale) -> dict:
    """Print-ready payload (rendering is the caller's concern)."""
    shop = sale.shop
    customer = sale.customer
    return {
        "invoice_number": sale.invoice_number,
        "invoice_date": sale.invoice_date,
        "status": sale.status,
        "shop": {
            "name": shop.name,
            "address": shop.address,
            "phone": shop.phone,
            "gst_number": shop.gst_number,
            "currency": shop.currency,
        },
        "customer": {"name": customer.name, "phone": customer.phone},
        "items": [
            {
                "line": i.line_number,
                "name": i.product_name,
                "purity": i.purity,
                "quantity": i.quantity,
                "net_weight": str(i.net_weight),
                "rate_per_gram": str(i.rate_per_gram),
                "making_charges": str(i.making_charges),
                "discount": str(money(i.discount_amount * i.quantity + i.sale_discount_share)),
                "gst": str(i.line_gst_amount),
                "total": str(i.item_total),
            }
            for i in sale.items.all()
        ],
        "old_gold": [
            {"description": og.description, "net_weight": str(og.net_weight), "value": str(og.value)}
            for og in sale.old_gold_items.all()
        ],
        "totals": {f: str(getattr(sale, f)) for f in SALE_TOTAL_FIELDS},
        "payment": {
            "status": sale.payment_status,
            "paid_amount": str(sale.paid_amount),
            "due_amount": str(sale.due_amount),
            "payments": [
                {"mode": p.mode, "amount": str(p.amount), "paid_at": p.paid_at}
                for p in sale.payments.all()
            ],
        },
    }
