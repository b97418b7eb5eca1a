# sales/services/financial_calculator.py

"""
FINANCIAL CALCULATOR

Pure Decimal arithmetic. No ORM, no settings, no I/O.

Pipeline (per item, then per sale):
1. net = gross - stone; metal = net x rate; making by type;
   taxable = metal + stone value + making + other
2. item discount: percentage of taxable or flat, capped at taxable
3. sale-level discount on the post-item-discount base, spread across
   lines pro rata (last line takes the remainder)
4. GST on the discounted line base
5. item_total = line taxable + line GST  (= (taxable + gst) x qty when no
   sale-level discount)
6. subtotal = Σ pre-discount taxable x qty
   grand_total = round(subtotal + total_gst - total_discount); round_off kept
7. net_payable = grand_total - old gold value, floored at 0 unless
   refund-on-exchange is allowed (excess reported as exchange_refund_due)

Callers always rebuild LineInput/OldGoldInput from stored item data, so
re-running never compounds earlier rounding.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from core.exceptions import ValidationError
from core.money import ZERO, money, round_to, to_decimal, weight

HUNDRED = Decimal("100")

PERCENTAGE = "percentage"
FLAT = "flat"
DISCOUNT_TYPES = (PERCENTAGE, FLAT)

MAKING_PER_GRAM = "per_gram"
MAKING_PERCENTAGE = "percentage"
MAKING_FLAT = "flat"
MAKING_TYPES = (MAKING_PER_GRAM, MAKING_PERCENTAGE, MAKING_FLAT)


# ============================================================
# INPUTS
# ============================================================


@dataclass(frozen=True)
class DiscountInput:
    type: str
    value: Decimal


@dataclass(frozen=True)
class LineInput:
    quantity: int = 1
    gross_weight: Decimal = ZERO
    stone_weight: Decimal = ZERO
    rate_per_gram: Decimal = ZERO
    stone_value: Decimal = ZERO
    making_charges_type: str = MAKING_PER_GRAM
    making_charges_value: Decimal = ZERO
    other_charges: Decimal = ZERO
    gst_percentage: Decimal = ZERO
    discount: Optional[DiscountInput] = None


@dataclass(frozen=True)
class OldGoldInput:
    gross_weight: Decimal
    rate_per_gram: Decimal
    stone_weight: Decimal = ZERO
    deduction_percentage: Decimal = ZERO


# ============================================================
# RESULTS
# ============================================================


@dataclass(frozen=True)
class LineResult:
    net_weight: Decimal
    metal_value: Decimal
    making_charges: Decimal
    gross_taxable: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    gst_amount: Decimal
    sale_discount_share: Decimal
    line_taxable_amount: Decimal
    line_gst_amount: Decimal
    item_total: Decimal


@dataclass(frozen=True)
class OldGoldResult:
    net_weight: Decimal
    value: Decimal


@dataclass(frozen=True)
class SaleTotals:
    lines: tuple
    old_gold: tuple
    subtotal: Decimal
    total_metal_value: Decimal
    total_stone_value: Decimal
    total_making_charges: Decimal
    total_other_charges: Decimal
    item_discount: Decimal
    sale_discount: Decimal
    total_discount: Decimal
    total_taxable_amount: Decimal
    total_gst: Decimal
    cgst: Decimal
    sgst: Decimal
    grand_total: Decimal
    round_off: Decimal
    old_gold_value: Decimal
    net_payable: Decimal
    exchange_refund_due: Decimal


# ============================================================
# VALIDATION HELPERS
# ============================================================


def _non_negative(value, field: str) -> Decimal:
    d = to_decimal(value, field=field)
    if d < 0:
        raise ValidationError(f"{field} cannot be negative")
    return d


def _percentage(value, field: str) -> Decimal:
    d = _non_negative(value, field)
    if d > HUNDRED:
        raise ValidationError(f"{field} cannot exceed 100")
    return d


def discount_amount(base: Decimal, discount: Optional[DiscountInput], *, ceiling_percentage=None) -> Decimal:
    """
    Discount on `base`.

    - percentage > 100 is rejected, never clamped
    - flat is capped at base
    - ceiling_percentage (shop policy) rejects anything above it
    """
    if discount is None or not discount.type:
        return ZERO
    if discount.type not in DISCOUNT_TYPES:
        raise ValidationError(f"Unknown discount type: {discount.type!r}")

    value = _non_negative(discount.value, "discount value")
    ceiling = None if ceiling_percentage is None else to_decimal(ceiling_percentage)

    if discount.type == PERCENTAGE:
        if value > HUNDRED:
            raise ValidationError("Percentage discount cannot exceed 100")
        if ceiling is not None and value > ceiling:
            raise ValidationError(f"Discount of {value}% exceeds the shop ceiling of {ceiling}%")
        amount = money(base * value / HUNDRED)
    else:
        if ceiling is not None and base > 0 and value > money(base * ceiling / HUNDRED):
            raise ValidationError(f"Discount of {value} exceeds the shop ceiling of {ceiling}%")
        amount = money(value)

    return min(amount, money(base))


# ============================================================
# PER ITEM
# ============================================================


def _base_line(line: LineInput, *, ceiling_percentage=None) -> dict:
    if not isinstance(line.quantity, int) or isinstance(line.quantity, bool) or line.quantity <= 0:
        raise ValidationError("Item quantity must be a positive integer")

    gross = _non_negative(line.gross_weight, "gross_weight")
    stone_wt = _non_negative(line.stone_weight, "stone_weight")
    if stone_wt > gross:
        raise ValidationError("stone_weight cannot exceed gross_weight")

    rate = _non_negative(line.rate_per_gram, "rate_per_gram")
    stone_value = _non_negative(line.stone_value, "stone_value")
    making_value = _non_negative(line.making_charges_value, "making_charges_value")
    other = _non_negative(line.other_charges, "other_charges")
    gst_pct = _percentage(line.gst_percentage, "gst_percentage")

    net = weight(gross - stone_wt)
    metal = money(net * rate)

    if line.making_charges_type == MAKING_PER_GRAM:
        making = money(net * making_value)
    elif line.making_charges_type == MAKING_PERCENTAGE:
        making = money(metal * making_value / HUNDRED)
    elif line.making_charges_type == MAKING_FLAT:
        making = money(making_value)
    else:
        raise ValidationError(f"Unknown making charges type: {line.making_charges_type!r}")

    gross_taxable = money(metal + stone_value + making + other)
    disc = discount_amount(gross_taxable, line.discount, ceiling_percentage=ceiling_percentage)
    taxable = money(gross_taxable - disc)

    return {
        "net_weight": net,
        "metal_value": metal,
        "making_charges": making,
        "stone_value": money(stone_value),
        "other_charges": money(other),
        "gross_taxable": gross_taxable,
        "discount_amount": disc,
        "taxable_amount": taxable,
        "gst_percentage": gst_pct,
        "quantity": line.quantity,
    }


def calculate_line(line: LineInput, *, ceiling_percentage=None) -> LineResult:
    """One item on its own (no sale-level discount)."""
    b = _base_line(line, ceiling_percentage=ceiling_percentage)
    return _finish_line(b, share=ZERO)


def _finish_line(b: dict, *, share: Decimal) -> LineResult:
    qty = b["quantity"]
    gst_unit = money(b["taxable_amount"] * b["gst_percentage"] / HUNDRED)

    if share:
        line_taxable = money(b["taxable_amount"] * qty - share)
        line_gst = money(line_taxable * b["gst_percentage"] / HUNDRED)
    else:
        line_taxable = money(b["taxable_amount"] * qty)
        line_gst = money(gst_unit * qty)

    return LineResult(
        net_weight=b["net_weight"],
        metal_value=b["metal_value"],
        making_charges=b["making_charges"],
        gross_taxable=b["gross_taxable"],
        discount_amount=b["discount_amount"],
        taxable_amount=b["taxable_amount"],
        gst_amount=gst_unit,
        sale_discount_share=share,
        line_taxable_amount=line_taxable,
        line_gst_amount=line_gst,
        item_total=money(line_taxable + line_gst),
    )


def _allocate(total: Decimal, weights: Sequence[Decimal]) -> list:
    base = sum(weights, ZERO)
    if not total or base <= 0:
        return [ZERO for _ in weights]

    shares = []
    remaining = total
    for i, w in enumerate(weights):
        if i == len(weights) - 1:
            share = remaining
        else:
            share = money(total * w / base)
            remaining -= share
        shares.append(share)
    return shares


# ============================================================
# OLD GOLD
# ============================================================


def calculate_old_gold(item: OldGoldInput) -> OldGoldResult:
    gross = _non_negative(item.gross_weight, "old gold gross_weight")
    stone_wt = _non_negative(item.stone_weight, "old gold stone_weight")
    if stone_wt > gross:
        raise ValidationError("old gold stone_weight cannot exceed gross_weight")
    rate = _non_negative(item.rate_per_gram, "old gold rate_per_gram")
    deduction = _percentage(item.deduction_percentage, "deduction_percentage")

    net = weight(gross - stone_wt)
    value = money(net * rate * (HUNDRED - deduction) / HUNDRED)
    return OldGoldResult(net_weight=net, value=value)


# ============================================================
# SALE
# ============================================================


def calculate_sale(
    lines: Sequence[LineInput],
    *,
    sale_discount: Optional[DiscountInput] = None,
    old_gold: Sequence[OldGoldInput] = (),
    discount_ceiling=None,
    allow_negative_net_payable: bool = False,
    grand_total_quantum: Decimal = Decimal("1"),
) -> SaleTotals:
    if not lines:
        raise ValidationError("A sale needs at least one item")

    bases = [_base_line(line, ceiling_percentage=discount_ceiling) for line in lines]

    line_bases = [money(b["taxable_amount"] * b["quantity"]) for b in bases]
    discount_base = sum(line_bases, ZERO)
    sale_disc = discount_amount(discount_base, sale_discount, ceiling_percentage=discount_ceiling)
    shares = _allocate(sale_disc, line_bases)

    results = tuple(_finish_line(b, share=s) for b, s in zip(bases, shares))

    def _sum_qty(key: str) -> Decimal:
        return money(sum((b[key] * b["quantity"] for b in bases), ZERO))

    subtotal = _sum_qty("gross_taxable")
    item_disc = _sum_qty("discount_amount")
    total_discount = money(item_disc + sale_disc)
    total_taxable = money(sum((r.line_taxable_amount for r in results), ZERO))
    total_gst = money(sum((r.line_gst_amount for r in results), ZERO))

    raw_total = subtotal + total_gst - total_discount
    grand_total = money(round_to(raw_total, grand_total_quantum))
    round_off = money(grand_total - raw_total)

    cgst = money(total_gst / 2)
    sgst = money(total_gst - cgst)

    og_results = tuple(calculate_old_gold(item) for item in old_gold)
    old_gold_value = money(sum((r.value for r in og_results), ZERO))

    net_payable = money(grand_total - old_gold_value)
    exchange_refund_due = ZERO
    if net_payable < 0 and not allow_negative_net_payable:
        exchange_refund_due = -net_payable
        net_payable = ZERO

    return SaleTotals(
        lines=results,
        old_gold=og_results,
        subtotal=subtotal,
        total_metal_value=_sum_qty("metal_value"),
        total_stone_value=_sum_qty("stone_value"),
        total_making_charges=_sum_qty("making_charges"),
        total_other_charges=_sum_qty("other_charges"),
        item_discount=item_disc,
        sale_discount=sale_disc,
        total_discount=total_discount,
        total_taxable_amount=total_taxable,
        total_gst=total_gst,
        cgst=cgst,
        sgst=sgst,
        grand_total=grand_total,
        round_off=round_off,
        old_gold_value=old_gold_value,
        net_payable=net_payable,
        exchange_refund_due=exchange_refund_due,
    )
