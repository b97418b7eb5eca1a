# sales/services/analytics.py

"""
SIMPLE SALES ROLLUPS (per shop, cached)

- today's sales count / value (net of return refunds)
- month-to-date value
- pending payments (due > 0) and overdue ones (due_date passed)

Cached under core.side_effects.shop_cache_key(shop, "sales_summary");
every committed sale mutation invalidates it.
"""

from __future__ import annotations

from django.core.cache import cache
from django.db.models import Count, Q, Sum
from django.utils import timezone

from core.conf import engine_setting
from core.money import ZERO, money
from core.side_effects import shop_cache_key
from sales.models import Sale


def _open_sales(shop_id):
    return Sale.objects.filter(shop_id=shop_id).exclude(status=Sale.STATUS_CANCELLED)


def compute_sales_summary(*, shop_id) -> dict:
    today = timezone.localdate()
    month_start = today.replace(day=1)

    returned = Q(status=Sale.STATUS_RETURNED)
    qs = _open_sales(shop_id)
    agg = qs.aggregate(
        today_count=Count("id", filter=Q(created_at__date=today)),
        today_value=Sum("grand_total", filter=Q(created_at__date=today)),
        month_value=Sum("grand_total", filter=Q(created_at__date__gte=month_start)),
        today_refunds=Sum("return_refund_amount", filter=returned & Q(created_at__date=today)),
        month_refunds=Sum("return_refund_amount", filter=returned & Q(created_at__date__gte=month_start)),
        pending_count=Count("id", filter=Q(due_amount__gt=0)),
        pending_value=Sum("due_amount", filter=Q(due_amount__gt=0)),
        overdue_count=Count("id", filter=Q(due_amount__gt=0, due_date__lt=today)),
        overdue_value=Sum("due_amount", filter=Q(due_amount__gt=0, due_date__lt=today)),
    )

    today_value = (agg["today_value"] or ZERO) - (agg["today_refunds"] or ZERO)
    month_value = (agg["month_value"] or ZERO) - (agg["month_refunds"] or ZERO)

    return {
        "date": today.isoformat(),
        "today": {"count": agg["today_count"], "value": str(money(today_value))},
        "month_to_date": {"value": str(money(month_value))},
        "pending_payments": {"count": agg["pending_count"], "value": str(money(agg["pending_value"] or ZERO))},
        "overdue": {"count": agg["overdue_count"], "value": str(money(agg["overdue_value"] or ZERO))},
    }


def sales_summary(*, shop_id) -> dict:
    key = shop_cache_key(shop_id, "sales_summary")
    summary = cache.get(key)
    if summary is None:
        summary = compute_sales_summary(shop_id=shop_id)
        cache.set(key, summary, engine_setting("CACHE_TIMEOUT"))
    return summary


def pending_payment_sales(*, shop_id, overdue_only: bool = False):
    qs = _open_sales(shop_id).filter(due_amount__gt=0).select_related("customer")
    if overdue_only:
        qs = qs.filter(due_date__lt=timezone.localdate())
    return qs.order_by("due_date", "created_at")
