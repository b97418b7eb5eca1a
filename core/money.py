# core/money.py

"""
Decimal helpers shared by the financial and payment code.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from core.exceptions import ValidationError

ZERO = Decimal("0.00")
TWOPLACES = Decimal("0.01")
WEIGHT_PLACES = Decimal("0.001")


def to_decimal(value, *, field: str = "value") -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats do not leak binary noise
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid decimal for {field}: {value!r}")


def money(value) -> Decimal:
    return to_decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def weight(value) -> Decimal:
    return to_decimal(value).quantize(WEIGHT_PLACES, rounding=ROUND_HALF_UP)


def round_to(value: Decimal, quantum: Decimal) -> Decimal:
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def to_quantity(value, *, field: str = "quantity") -> int:
    """Positive whole units. 2 / "2" / 2.0 pass; 1.9, True, "abc" do not."""
    message = f"{field} must be a positive whole number"
    if isinstance(value, bool):
        raise ValidationError(message)
    if isinstance(value, int):
        qty = value
    else:
        try:
            dec = Decimal(str(value).strip())
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError(message)
        if not dec.is_finite() or dec != dec.to_integral_value():
            raise ValidationError(message)
        qty = int(dec)
    if qty <= 0:
        raise ValidationError(message)
    return qty
