# products/urls.py

"""
PRODUCTS URLS

Mounted under /api/shops/<shop_id>/ by backend/urls.py.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import ProductViewSet

router = DefaultRouter()
router.include_root_view = False
router.register(r"products", ProductViewSet, basename="products")

urlpatterns = [
    path("", include(router.urls)),
]
