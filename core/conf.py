# core/conf.py

"""
Engine toggles, read from settings.SALES_ENGINE with safe defaults.

Keys:
- CANCEL_REVERSES_CUSTOMER_STATS: cancel/delete undo the customer aggregates
  applied at sale creation
- OVERPAYMENT_POLICY: "reject" (payment above due is refused) or "credit"
  (excess kept as credit_amount on the document)
- GRAND_TOTAL_QUANTUM: rounding unit for grand totals ("1" = whole rupee)
- CACHE_TIMEOUT: seconds for per-shop rollup caches
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings

OVERPAYMENT_REJECT = "reject"
OVERPAYMENT_CREDIT = "credit"

DEFAULTS = {
    "CANCEL_REVERSES_CUSTOMER_STATS": True,
    "OVERPAYMENT_POLICY": OVERPAYMENT_REJECT,
    "GRAND_TOTAL_QUANTUM": "1",
    "CACHE_TIMEOUT": 300,
}


def engine_setting(name: str):
    return (getattr(settings, "SALES_ENGINE", None) or {}).get(name, DEFAULTS[name])


def grand_total_quantum() -> Decimal:
    return Decimal(str(engine_setting("GRAND_TOTAL_QUANTUM")))
