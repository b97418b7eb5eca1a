# shops/services/numbering.py

"""
SHOP-SCOPED DOCUMENT NUMBERS

Format: <PREFIX>-<YY>-<00001>, e.g. INV-26-00042.

The counter is bumped with a single UPDATE ... SET n = n + 1 inside the
caller's transaction, so two concurrent sales never read the same value.
A rolled-back sale rolls its number back with it.
"""

from __future__ import annotations

from django.db.models import F
from django.utils import timezone

from core.exceptions import NotFoundError
from shops.models import Shop


def _format(prefix: str, number: int) -> str:
    yy = timezone.localdate().strftime("%y")
    return f"{prefix}-{yy}-{number:05d}"


def _bump(*, shop: Shop, counter: str) -> int:
    updated = Shop.objects.filter(pk=shop.pk).update(**{counter: F(counter) + 1})
    if not updated:
        raise NotFoundError.for_entity("Shop", shop.pk)
    value = Shop.objects.values_list(counter, flat=True).get(pk=shop.pk)
    setattr(shop, counter, value)
    return value


def next_invoice_number(*, shop: Shop) -> str:
    return _format(shop.invoice_prefix or "INV", _bump(shop=shop, counter="current_invoice_number"))


def next_purchase_number(*, shop: Shop) -> str:
    return _format(shop.purchase_prefix or "PUR", _bump(shop=shop, counter="current_purchase_number"))
