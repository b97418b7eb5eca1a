# sales/api/urls.py

"""
SALES API URLS

Mounted under /api/shops/<shop_id>/ by backend/urls.py:
    /api/shops/<shop_id>/sales/
    /api/shops/<shop_id>/sales/<uuid>/...
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.api.viewsets.sale import SaleViewSet

router = DefaultRouter()
router.include_root_view = False
router.register(r"sales", SaleViewSet, basename="sales")

urlpatterns = [
    path("", include(router.urls)),
]
