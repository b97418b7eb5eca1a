# shops/api.py

"""
SHOP-SCOPED API BASE

Every engine route is nested under /api/shops/<shop_id>/. Views mixing this
in resolve the shop once per request and 404 when the caller may not act
on it (no information leak about other tenants).
"""

from __future__ import annotations

from rest_framework.exceptions import NotFound

from permissions.roles import can_access_shop
from shops.models import Shop


class ShopScopedMixin:
    shop_url_kwarg = "shop_id"

    def get_shop(self) -> Shop:
        cached = getattr(self, "_shop", None)
        if cached is not None:
            return cached

        shop_id = self.kwargs.get(self.shop_url_kwarg)
        if not can_access_shop(self.request.user, shop_id):
            raise NotFound("Shop not found.")
        try:
            self._shop = Shop.objects.get(pk=shop_id, is_active=True)
        except Shop.DoesNotExist:
            raise NotFound("Shop not found.")
        return self._shop
