# core/side_effects.py

"""
POST-COMMIT SIDE EFFECTS

Cache invalidation + audit events.

Rules:
- Only ever scheduled through UnitOfWork.on_commit().
- Best-effort: a broken cache backend or log handler never fails a sale.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.core.cache import cache

audit_logger = logging.getLogger("audit")

SHOP_CACHE_SECTIONS = (
    "sales_summary",
    "pending_payments",
    "inventory_summary",
)


def shop_cache_key(shop_id, section: str) -> str:
    return f"shop:{shop_id}:{section}"


def invalidate_shop_cache(shop_id) -> None:
    cache.delete_many([shop_cache_key(shop_id, s) for s in SHOP_CACHE_SECTIONS])


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    return value


def emit_audit_event(*, action: str, actor_id=None, shop_id=None, entity: str, entity_id, amounts=None, **details) -> None:
    audit_logger.info(
        "%s %s",
        action,
        entity_id,
        extra={
            "action": action,
            "actor_id": str(actor_id) if actor_id else None,
            "shop_id": str(shop_id) if shop_id else None,
            "entity": entity,
            "entity_id": str(entity_id),
            "amounts": {k: _jsonable(v) for k, v in (amounts or {}).items()},
            "details": {k: _jsonable(v) for k, v in details.items()},
        },
    )
