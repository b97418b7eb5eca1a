# customers/services/accumulator.py

"""
CUSTOMER ACCUMULATOR

The only writer of Customer running aggregates.

Rules:
- Every function locks the customer row and runs inside the caller's
  unit of work; it never opens its own commit boundary.
- Sign convention: total_due grows with unpaid amounts, current_balance is
  what the shop owes the customer (negative = customer owes the shop).
- rebuild_statistics() recomputes everything from sale history and is the
  reconciliation path for any drift.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Max, Min, Q, Sum
from django.utils import timezone

from core.exceptions import NotFoundError, ValidationError
from core.money import ZERO, money
from customers.models import Customer

logger = logging.getLogger("sales")


def _locked(customer_id) -> Customer:
    try:
        return Customer.objects.select_for_update().get(pk=customer_id)
    except Customer.DoesNotExist:
        raise NotFoundError.for_entity("Customer", customer_id)


def _refresh_average(customer: Customer) -> None:
    if customer.completed_orders:
        customer.average_order_value = money(customer.total_spent / customer.completed_orders)
    else:
        customer.average_order_value = ZERO


# ============================================================
# SALE EVENTS
# ============================================================


@transaction.atomic
def record_sale(*, customer_id, grand_total: Decimal, due_amount: Decimal, at=None) -> Customer:
    """Fold a newly created sale into the customer's aggregates."""
    at = at or timezone.now()
    customer = _locked(customer_id)

    customer.total_orders += 1
    customer.completed_orders += 1
    customer.total_spent = money(customer.total_spent + grand_total)
    _refresh_average(customer)

    customer.last_order_date = at
    if customer.first_order_date is None:
        customer.first_order_date = at

    if due_amount > 0:
        customer.total_due = money(customer.total_due + due_amount)
        customer.current_balance = money(customer.current_balance - due_amount)

    customer.save()
    return customer


@transaction.atomic
def reverse_sale(*, customer_id, grand_total: Decimal, due_amount: Decimal, refund_amount: Decimal = ZERO) -> Customer:
    """Undo record_sale() for a cancelled or deleted sale."""
    customer = _locked(customer_id)

    customer.total_orders = max(0, customer.total_orders - 1)
    customer.completed_orders = max(0, customer.completed_orders - 1)
    customer.total_spent = money(customer.total_spent - grand_total)
    _refresh_average(customer)

    if due_amount > 0:
        customer.total_due = money(customer.total_due - due_amount)
        customer.current_balance = money(customer.current_balance + due_amount)

    customer.save()
    return customer


@transaction.atomic
def record_return(*, customer_id, refund_amount: Decimal) -> Customer:
    customer = _locked(customer_id)

    customer.total_spent = money(customer.total_spent - refund_amount)
    customer.current_balance = money(customer.current_balance + refund_amount)
    _refresh_average(customer)

    customer.save()
    return customer


@transaction.atomic
def apply_sale_delta(*, customer_id, spent_delta: Decimal = ZERO, due_delta: Decimal = ZERO) -> Customer:
    """
    Re-align aggregates after a sale's totals or payments change
    (discount, old gold, item edit, payment).
    """
    customer = _locked(customer_id)

    if spent_delta:
        customer.total_spent = money(customer.total_spent + spent_delta)
        _refresh_average(customer)
    if due_delta:
        customer.total_due = money(customer.total_due + due_delta)
        customer.current_balance = money(customer.current_balance - due_delta)

    customer.save()
    return customer


# ============================================================
# LOYALTY
# ============================================================


@transaction.atomic
def add_loyalty_points(*, customer_id, points: int) -> Customer:
    if points <= 0:
        raise ValidationError("Loyalty points to add must be positive")
    customer = _locked(customer_id)
    customer.loyalty_points += points
    customer.save(update_fields=["loyalty_points", "updated_at"])
    return customer


@transaction.atomic
def redeem_loyalty_points(*, customer_id, points: int) -> Customer:
    if points <= 0:
        raise ValidationError("Loyalty points to redeem must be positive")
    customer = _locked(customer_id)
    if points > customer.loyalty_points:
        raise ValidationError(
            f"Customer {customer.name} has {customer.loyalty_points} points; cannot redeem {points}",
        )
    customer.loyalty_points -= points
    customer.save(update_fields=["loyalty_points", "updated_at"])
    return customer


# ============================================================
# RECONCILIATION
# ============================================================


def summarize_sales(customer: Customer) -> dict:
    """Aggregates derived from sale history (cancelled + soft-deleted sales excluded)."""
    from sales.models import Sale

    qs = Sale.objects.filter(customer=customer).exclude(status=Sale.STATUS_CANCELLED)
    agg = qs.aggregate(
        orders=Count("id"),
        grand=Sum("grand_total"),
        refunds=Sum("return_refund_amount", filter=Q(status=Sale.STATUS_RETURNED)),
        due=Sum("due_amount"),
        first=Min("created_at"),
        last=Max("created_at"),
    )
    total_spent = money((agg["grand"] or ZERO) - (agg["refunds"] or ZERO))
    total_due = money(agg["due"] or ZERO)
    return {
        "total_orders": agg["orders"] or 0,
        "completed_orders": agg["orders"] or 0,
        "total_spent": total_spent,
        "total_due": total_due,
        "refunds": money(agg["refunds"] or ZERO),
        "first_order_date": agg["first"],
        "last_order_date": agg["last"],
    }


@transaction.atomic
def rebuild_statistics(*, customer_id) -> Customer:
    customer = _locked(customer_id)
    summary = summarize_sales(customer)

    customer.total_orders = summary["total_orders"]
    customer.completed_orders = summary["completed_orders"]
    customer.total_spent = summary["total_spent"]
    customer.total_due = summary["total_due"]
    customer.current_balance = money(customer.opening_balance + summary["refunds"] - summary["total_due"])
    customer.first_order_date = summary["first_order_date"]
    customer.last_order_date = summary["last_order_date"]
    _refresh_average(customer)

    customer.save()
    logger.info(
        "Customer statistics rebuilt",
        extra={"customer_id": str(customer.id), "total_spent": str(customer.total_spent)},
    )
    return customer


def statistics_drift(customer: Customer) -> dict:
    """
    Stored aggregates next to the ones derived from history.
    Empty `drift` means the running cache is in step.
    """
    derived = summarize_sales(customer)
    stored = {
        "total_orders": customer.total_orders,
        "total_spent": money(customer.total_spent),
        "total_due": money(customer.total_due),
    }
    drift = {
        key: {"stored": stored[key], "derived": derived[key]}
        for key in stored
        if stored[key] != derived[key]
    }
    return {"stored": stored, "derived": derived, "drift": drift}
