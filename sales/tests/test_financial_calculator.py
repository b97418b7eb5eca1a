from decimal import Decimal

from django.test import SimpleTestCase

from core.exceptions import ValidationError
from sales.services.financial_calculator import (
    DiscountInput,
    LineInput,
    OldGoldInput,
    calculate_line,
    calculate_old_gold,
    calculate_sale,
    discount_amount,
)

D = Decimal


def ring(**overrides) -> LineInput:
    fields = {
        "quantity": 1,
        "gross_weight": D("10.000"),
        "rate_per_gram": D("6000.00"),
        "making_charges_type": "per_gram",
        "making_charges_value": D("500.00"),
        "gst_percentage": D("3.00"),
    }
    fields.update(overrides)
    return LineInput(**fields)


def service_line(amount, **overrides) -> LineInput:
    """A line whose taxable value is just `other_charges` (no metal, no GST)."""
    return LineInput(other_charges=D(amount), **overrides)


class LineCalculationTests(SimpleTestCase):
    """
    GUARANTEES:
    - Metal, making, discount and GST follow the per-item pipeline
    - Invalid inputs are rejected, never clamped
    """

    def test_per_gram_making(self):
        r = calculate_line(ring())
        self.assertEqual(r.net_weight, D("10.000"))
        self.assertEqual(r.metal_value, D("60000.00"))
        self.assertEqual(r.making_charges, D("5000.00"))
        self.assertEqual(r.taxable_amount, D("65000.00"))
        self.assertEqual(r.gst_amount, D("1950.00"))
        self.assertEqual(r.item_total, D("66950.00"))

    def test_percentage_and_flat_making(self):
        pct = calculate_line(ring(making_charges_type="percentage", making_charges_value=D("12")))
        flat = calculate_line(ring(making_charges_type="flat", making_charges_value=D("1500")))
        self.assertEqual(pct.making_charges, D("7200.00"))
        self.assertEqual(flat.making_charges, D("1500.00"))

    def test_stone_weight_reduces_net_weight(self):
        r = calculate_line(ring(stone_weight=D("0.500"), stone_value=D("2000")))
        self.assertEqual(r.net_weight, D("9.500"))
        self.assertEqual(r.metal_value, D("57000.00"))
        self.assertEqual(r.gross_taxable, D("57000.00") + D("4750.00") + D("2000.00"))

    def test_item_discount_applies_before_gst(self):
        r = calculate_line(ring(discount=DiscountInput(type="percentage", value=D("10"))))
        self.assertEqual(r.discount_amount, D("6500.00"))
        self.assertEqual(r.taxable_amount, D("58500.00"))
        self.assertEqual(r.gst_amount, D("1755.00"))
        self.assertEqual(r.item_total, D("60255.00"))

    def test_quantity_multiplies_line(self):
        r = calculate_line(ring(quantity=2))
        self.assertEqual(r.taxable_amount, D("65000.00"))
        self.assertEqual(r.line_taxable_amount, D("130000.00"))
        self.assertEqual(r.item_total, D("133900.00"))

    def test_invalid_lines_rejected(self):
        with self.assertRaises(ValidationError):
            calculate_line(ring(stone_weight=D("11")))
        with self.assertRaises(ValidationError):
            calculate_line(ring(quantity=0))
        with self.assertRaises(ValidationError):
            calculate_line(ring(making_charges_type="per_piece"))
        with self.assertRaises(ValidationError):
            calculate_line(ring(gst_percentage=D("101")))


class DiscountTests(SimpleTestCase):
    def test_percentage_over_hundred_rejected(self):
        with self.assertRaises(ValidationError):
            discount_amount(D("100"), DiscountInput(type="percentage", value=D("150")))

    def test_flat_capped_at_base(self):
        self.assertEqual(discount_amount(D("100"), DiscountInput(type="flat", value=D("500"))), D("100.00"))

    def test_ceiling_rejects_larger_discounts(self):
        with self.assertRaises(ValidationError):
            discount_amount(D("100"), DiscountInput(type="percentage", value=D("20")), ceiling_percentage=D("10"))
        with self.assertRaises(ValidationError):
            discount_amount(D("100"), DiscountInput(type="flat", value=D("50")), ceiling_percentage=D("10"))
        self.assertEqual(
            discount_amount(D("100"), DiscountInput(type="flat", value=D("10")), ceiling_percentage=D("10")),
            D("10.00"),
        )

    def test_no_discount(self):
        self.assertEqual(discount_amount(D("100"), None), D("0.00"))


class SaleCalculationTests(SimpleTestCase):
    """
    GUARANTEES:
    - subtotal is pre-discount; grand_total = round(subtotal + gst - discount)
    - sale-level discount is spread pro rata, last line takes the remainder
    - net_payable never goes negative unless refund-on-exchange is allowed
    """

    def test_single_ring_totals(self):
        t = calculate_sale([ring()])
        self.assertEqual(t.subtotal, D("65000.00"))
        self.assertEqual(t.total_gst, D("1950.00"))
        self.assertEqual(t.cgst + t.sgst, t.total_gst)
        self.assertEqual(t.grand_total, D("66950.00"))
        self.assertEqual(t.round_off, D("0.00"))
        self.assertEqual(t.net_payable, D("66950.00"))

    def test_sale_discount_allocated_pro_rata(self):
        t = calculate_sale(
            [service_line("100.00"), service_line("200.00")],
            sale_discount=DiscountInput(type="flat", value=D("100")),
        )
        shares = [line.sale_discount_share for line in t.lines]
        self.assertEqual(shares, [D("33.33"), D("66.67")])
        self.assertEqual(sum(shares), D("100.00"))
        self.assertEqual(t.total_discount, D("100.00"))
        self.assertEqual(t.grand_total, D("200.00"))
        self.assertEqual(sum(line.item_total for line in t.lines), t.grand_total)

    def test_subtotal_is_before_discounts(self):
        t = calculate_sale([ring(discount=DiscountInput(type="percentage", value=D("10")))])
        self.assertEqual(t.subtotal, D("65000.00"))
        self.assertEqual(t.total_discount, D("6500.00"))
        self.assertEqual(t.grand_total, D("60255.00"))

    def test_grand_total_rounds_half_up(self):
        down = calculate_sale([service_line("100.40")])
        up = calculate_sale([service_line("100.50")])
        self.assertEqual((down.grand_total, down.round_off), (D("100.00"), D("-0.40")))
        self.assertEqual((up.grand_total, up.round_off), (D("101.00"), D("0.50")))

    def test_old_gold_reduces_net_payable(self):
        t = calculate_sale(
            [ring()],
            old_gold=[OldGoldInput(gross_weight=D("10"), rate_per_gram=D("5000"), deduction_percentage=D("2"))],
        )
        self.assertEqual(t.old_gold_value, D("49000.00"))
        self.assertEqual(t.grand_total, D("66950.00"))
        self.assertEqual(t.net_payable, D("17950.00"))

    def test_old_gold_above_bill_is_floored(self):
        old_gold = [OldGoldInput(gross_weight=D("10"), rate_per_gram=D("5000"))]

        floored = calculate_sale([service_line("1000")], old_gold=old_gold)
        self.assertEqual(floored.net_payable, D("0.00"))
        self.assertEqual(floored.exchange_refund_due, D("49000.00"))

        allowed = calculate_sale([service_line("1000")], old_gold=old_gold, allow_negative_net_payable=True)
        self.assertEqual(allowed.net_payable, D("-49000.00"))
        self.assertEqual(allowed.exchange_refund_due, D("0.00"))

    def test_empty_sale_rejected(self):
        with self.assertRaises(ValidationError):
            calculate_sale([])

    def test_old_gold_value(self):
        r = calculate_old_gold(
            OldGoldInput(gross_weight=D("5.000"), stone_weight=D("0.500"), rate_per_gram=D("6000"), deduction_percentage=D("10"))
        )
        self.assertEqual(r.net_weight, D("4.500"))
        self.assertEqual(r.value, D("24300.00"))
