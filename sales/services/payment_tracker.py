# sales/services/payment_tracker.py

"""
PAYMENT TRACKER

Owns the payment columns of any PaymentStateMixin document (Sale, Purchase)
and appends PaymentRecord rows through `target.payments`.

Rules:
- payment_status is ALWAYS derived, never set directly:
    paid == 0           -> unpaid
    0 < paid < total    -> partial
    paid >= total       -> paid   (due clamped to 0)
- Any change to total_amount goes through set_total(), which re-runs the
  derivation, so status and due can never disagree.
- Overpayment is never stored as negative due. With the "reject" policy a
  payment above the current due is refused; with "credit" the excess is
  kept in credit_amount.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.utils import timezone

from core.conf import OVERPAYMENT_CREDIT, engine_setting
from core.exceptions import ValidationError
from core.models import PaymentRecord, PaymentStateMixin
from core.money import ZERO, money, to_decimal

logger = logging.getLogger("payments")

PAYMENT_FIELDS = ["total_amount", "paid_amount", "due_amount", "credit_amount", "payment_status"]

VALID_MODES = {code for code, _ in PaymentRecord.MODE_CHOICES}


def derive_payment_status(*, total: Decimal, paid: Decimal) -> str:
    if paid <= 0:
        return PaymentStateMixin.PAYMENT_UNPAID
    if paid < total:
        return PaymentStateMixin.PAYMENT_PARTIAL
    return PaymentStateMixin.PAYMENT_PAID


def refresh_payment_state(target) -> None:
    total = money(target.total_amount)
    paid = money(target.paid_amount)

    target.due_amount = max(ZERO, money(total - paid))
    target.credit_amount = max(ZERO, money(paid - max(total, ZERO)))
    target.payment_status = derive_payment_status(total=total, paid=paid)


def set_total(target, total) -> None:
    target.total_amount = money(total)
    refresh_payment_state(target)


def add_payment(
    *,
    target,
    amount,
    mode: str,
    user=None,
    paid_at=None,
    transaction_id: str = "",
    reference_number: str = "",
    bank_name: str = "",
    cheque_number: str = "",
    cheque_date=None,
    notes: str = "",
):
    """
    Append one payment to `target` and persist its payment columns.
    Must run inside the caller's unit of work with `target` locked.
    """
    amt = money(to_decimal(amount, field="amount"))
    if amt <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    if mode not in VALID_MODES:
        raise ValidationError(f"Unknown payment mode: {mode!r}")
    if mode == PaymentRecord.MODE_CHEQUE and not cheque_number:
        raise ValidationError("cheque_number is required for cheque payments")

    if amt > target.due_amount and engine_setting("OVERPAYMENT_POLICY") != OVERPAYMENT_CREDIT:
        raise ValidationError(
            f"Payment of {amt} exceeds the amount due ({target.due_amount})",
        )

    payment = target.payments.create(
        amount=amt,
        mode=mode,
        paid_at=paid_at or timezone.now(),
        transaction_id=transaction_id or "",
        reference_number=reference_number or "",
        bank_name=bank_name or "",
        cheque_number=cheque_number or "",
        cheque_date=cheque_date,
        notes=notes or "",
        received_by=user,
    )

    target.paid_amount = money(target.paid_amount + amt)
    refresh_payment_state(target)
    target.save(update_fields=PAYMENT_FIELDS + ["updated_at"])

    logger.info(
        "Payment recorded",
        extra={
            "document_id": str(target.pk),
            "amount": str(amt),
            "mode": mode,
            "payment_status": target.payment_status,
            "due_amount": str(target.due_amount),
        },
    )
    return payment
