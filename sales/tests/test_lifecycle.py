from decimal import Decimal

from django.test import SimpleTestCase

from core.exceptions import ValidationError
from core.models import PaymentStateMixin
from sales.models import Sale
from sales.services.payment_tracker import derive_payment_status, refresh_payment_state, set_total
from sales.services.sale_lifecycle import (
    InvalidSaleTransitionError,
    can_transition,
    ensure_deletable,
    ensure_editable,
    ensure_payable,
    validate_initial_status,
    validate_transition,
)


def sale_in(status, **fields) -> Sale:
    return Sale(status=status, invoice_number="INV-26-00001", **fields)


class SaleLifecycleRuleTests(SimpleTestCase):
    """
    GUARANTEES:
    - Forward path draft -> pending -> confirmed -> delivered -> completed
    - Cancel / return reachable from every non-terminal state
    - Terminal states stay terminal (return from completed excepted)
    - Repeating a terminal transition is rejected
    """

    def test_forward_path(self):
        path = [
            Sale.STATUS_DRAFT,
            Sale.STATUS_PENDING,
            Sale.STATUS_CONFIRMED,
            Sale.STATUS_DELIVERED,
            Sale.STATUS_COMPLETED,
        ]
        for current, target in zip(path, path[1:]):
            self.assertTrue(can_transition(from_status=current, to_status=target), f"{current}->{target}")

    def test_diversions_from_non_terminal_states(self):
        for status in (Sale.STATUS_DRAFT, Sale.STATUS_PENDING, Sale.STATUS_CONFIRMED, Sale.STATUS_DELIVERED):
            self.assertTrue(can_transition(from_status=status, to_status=Sale.STATUS_CANCELLED))
            self.assertTrue(can_transition(from_status=status, to_status=Sale.STATUS_RETURNED))

    def test_terminal_states(self):
        self.assertTrue(can_transition(from_status=Sale.STATUS_COMPLETED, to_status=Sale.STATUS_RETURNED))
        self.assertFalse(can_transition(from_status=Sale.STATUS_COMPLETED, to_status=Sale.STATUS_CANCELLED))
        self.assertFalse(can_transition(from_status=Sale.STATUS_CANCELLED, to_status=Sale.STATUS_CONFIRMED))
        self.assertFalse(can_transition(from_status=Sale.STATUS_RETURNED, to_status=Sale.STATUS_RETURNED))

    def test_no_skipping_to_completed(self):
        with self.assertRaises(InvalidSaleTransitionError):
            validate_transition(sale=sale_in(Sale.STATUS_DRAFT), target_status=Sale.STATUS_COMPLETED)

    def test_repeated_terminal_transition_rejected(self):
        with self.assertRaises(InvalidSaleTransitionError) as ctx:
            validate_transition(sale=sale_in(Sale.STATUS_CANCELLED), target_status=Sale.STATUS_CANCELLED)
        self.assertIn("already cancelled", str(ctx.exception))

    def test_redelivery_allowed(self):
        validate_transition(sale=sale_in(Sale.STATUS_DELIVERED), target_status=Sale.STATUS_DELIVERED)

    def test_initial_status(self):
        validate_initial_status(Sale.STATUS_DRAFT)
        with self.assertRaises(InvalidSaleTransitionError):
            validate_initial_status(Sale.STATUS_COMPLETED)

    def test_edit_delete_and_payment_guards(self):
        ensure_editable(sale=sale_in(Sale.STATUS_PENDING))
        with self.assertRaises(ValidationError):
            ensure_editable(sale=sale_in(Sale.STATUS_CONFIRMED))

        ensure_deletable(sale=sale_in(Sale.STATUS_DRAFT))
        with self.assertRaises(ValidationError):
            ensure_deletable(sale=sale_in(Sale.STATUS_PENDING))

        ensure_payable(sale=sale_in(Sale.STATUS_COMPLETED, due_amount=Decimal("10.00")))
        with self.assertRaises(ValidationError):
            ensure_payable(sale=sale_in(Sale.STATUS_COMPLETED, due_amount=Decimal("0.00")))
        with self.assertRaises(ValidationError):
            ensure_payable(sale=sale_in(Sale.STATUS_CANCELLED))


class PaymentStateTests(SimpleTestCase):
    """
    GUARANTEES:
    - payment_status is derived from paid vs total
    - due is never negative; any excess shows up as credit
    """

    def test_status_derivation(self):
        total = Decimal("100.00")
        self.assertEqual(derive_payment_status(total=total, paid=Decimal("0")), PaymentStateMixin.PAYMENT_UNPAID)
        self.assertEqual(derive_payment_status(total=total, paid=Decimal("40")), PaymentStateMixin.PAYMENT_PARTIAL)
        self.assertEqual(derive_payment_status(total=total, paid=Decimal("100")), PaymentStateMixin.PAYMENT_PAID)

    def test_zero_total_with_nothing_paid_is_unpaid(self):
        sale = Sale()
        set_total(sale, Decimal("0"))
        self.assertEqual(sale.payment_status, PaymentStateMixin.PAYMENT_UNPAID)
        self.assertEqual(sale.due_amount, Decimal("0.00"))

    def test_lower_total_turns_excess_into_credit(self):
        sale = Sale(paid_amount=Decimal("500.00"))
        set_total(sale, Decimal("1000"))
        self.assertEqual((sale.due_amount, sale.payment_status), (Decimal("500.00"), "partial"))

        sale.total_amount = Decimal("400.00")
        refresh_payment_state(sale)
        self.assertEqual(sale.due_amount, Decimal("0.00"))
        self.assertEqual(sale.credit_amount, Decimal("100.00"))
        self.assertEqual(sale.payment_status, PaymentStateMixin.PAYMENT_PAID)
