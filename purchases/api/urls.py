# purchases/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from purchases.api.views import PurchaseViewSet, SupplierViewSet

router = DefaultRouter()
router.include_root_view = False
router.register(r"suppliers", SupplierViewSet, basename="suppliers")
router.register(r"purchases", PurchaseViewSet, basename="purchases")

urlpatterns = [
    path("", include(router.urls)),
]
