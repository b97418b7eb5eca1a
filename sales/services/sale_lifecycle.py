"""
SALE LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed lifecycle transitions
for Sale entities.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth

STATE MACHINE:
    draft -> pending -> confirmed -> delivered -> completed
    cancelled / returned from any non-terminal state
    returned also from completed
"""

from core.exceptions import ValidationError
from sales.models import Sale

# ============================================================
# DOMAIN ERRORS
# ============================================================


class InvalidSaleTransitionError(ValidationError):
    code = "invalid_transition"


# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Sale.STATUS_COMPLETED,
    Sale.STATUS_CANCELLED,
    Sale.STATUS_RETURNED,
}

INITIAL_STATES = {
    Sale.STATUS_DRAFT,
    Sale.STATUS_PENDING,
    Sale.STATUS_CONFIRMED,
}

EDITABLE_STATES = {
    Sale.STATUS_DRAFT,
    Sale.STATUS_PENDING,
}

_DIVERSIONS = {Sale.STATUS_CANCELLED, Sale.STATUS_RETURNED}

ALLOWED_TRANSITIONS = {
    Sale.STATUS_DRAFT: {Sale.STATUS_PENDING, Sale.STATUS_CONFIRMED, Sale.STATUS_DELIVERED} | _DIVERSIONS,
    Sale.STATUS_PENDING: {Sale.STATUS_CONFIRMED, Sale.STATUS_DELIVERED} | _DIVERSIONS,
    Sale.STATUS_CONFIRMED: {Sale.STATUS_DELIVERED, Sale.STATUS_COMPLETED} | _DIVERSIONS,
    Sale.STATUS_DELIVERED: {Sale.STATUS_DELIVERED, Sale.STATUS_COMPLETED} | _DIVERSIONS,
    Sale.STATUS_COMPLETED: {Sale.STATUS_RETURNED},
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, sale: Sale, target_status: str):
    if sale.status == target_status and target_status in TERMINAL_STATES:
        raise InvalidSaleTransitionError(
            f"Sale {sale.invoice_number} is already {sale.status}"
        )
    if not can_transition(from_status=sale.status, to_status=target_status):
        raise InvalidSaleTransitionError(
            f"Sale {sale.invoice_number} cannot transition from "
            f"'{sale.status}' to '{target_status}'"
        )


def validate_initial_status(status: str):
    if status not in INITIAL_STATES:
        raise InvalidSaleTransitionError(
            f"A sale can only be created as one of {sorted(INITIAL_STATES)}, not '{status}'"
        )


def ensure_editable(*, sale: Sale):
    if sale.status not in EDITABLE_STATES:
        raise ValidationError(
            f"Sale {sale.invoice_number} cannot be edited in '{sale.status}' status"
        )


def ensure_deletable(*, sale: Sale):
    if sale.status != Sale.STATUS_DRAFT:
        raise ValidationError(
            f"Only draft sales can be deleted; sale {sale.invoice_number} is '{sale.status}'"
        )


def ensure_financials_mutable(*, sale: Sale):
    if sale.status in TERMINAL_STATES:
        raise ValidationError(
            f"Sale {sale.invoice_number} is '{sale.status}'; its items and amounts are final"
        )


def ensure_payable(*, sale: Sale):
    if sale.status in {Sale.STATUS_CANCELLED, Sale.STATUS_RETURNED}:
        raise ValidationError(
            f"Cannot record a payment on a {sale.status} sale ({sale.invoice_number})"
        )
    if sale.status == Sale.STATUS_COMPLETED and sale.due_amount <= 0:
        raise ValidationError(
            f"Sale {sale.invoice_number} is completed and fully paid"
        )


def ensure_approvable(*, sale: Sale):
    if sale.status in TERMINAL_STATES:
        raise ValidationError(
            f"Sale {sale.invoice_number} is '{sale.status}'; approval can no longer change"
        )
