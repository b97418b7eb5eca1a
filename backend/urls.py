# backend/urls.py
"""
PROJECT URLS

All API routes live under /api/.
Engine modules are shop-scoped: /api/shops/<shop_id>/<module>/...

Operational:
- /api/health/ (AllowAny) probes the database and the rollup cache.
- Django admin path is configurable via ADMIN_PATH.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.contrib import admin
from django.core.cache import cache
from django.db import DatabaseError, connections
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

logger = logging.getLogger(__name__)

SHOP_PREFIX = "/api/shops/<shop_id>"


# ------------------ API ROOT (PUBLIC) ------------------
@extend_schema(
    responses={
        200: {
            "type": "object",
            "properties": {
                "message": {"type": "string"},
                "auth": {"type": "object"},
                "docs": {"type": "object"},
                "modules": {"type": "object"},
            },
        }
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response(
        {
            "message": "Jewelry Sales Engine API is running",
            "auth": {
                "me": "/api/auth/me/",
                "jwt_create": "/api/auth/jwt/create/",
                "jwt_refresh": "/api/auth/jwt/refresh/",
            },
            "docs": {
                "swagger": "/api/docs/",
                "schema": "/api/schema/",
            },
            "modules": {
                "products": f"{SHOP_PREFIX}/products/",
                "customers": f"{SHOP_PREFIX}/customers/",
                "sales": f"{SHOP_PREFIX}/sales/",
                "suppliers": f"{SHOP_PREFIX}/suppliers/",
                "purchases": f"{SHOP_PREFIX}/purchases/",
            },
        }
    )


HEALTH_SCHEMA = {
    "type": "object",
    "properties": {
        "status": {"type": "string", "enum": ["ok", "degraded"]},
        "db": {"type": "string"},
        "cache": {"type": "string"},
    },
}


# ------------------ HEALTH CHECK (PUBLIC) ------------------
def _probe_db() -> str:
    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        return "down"
    return "ok"


def _probe_cache() -> str:
    try:
        cache.set("health:ping", "1", timeout=5)
        ok = cache.get("health:ping") == "1"
    except Exception:
        logger.exception("Health check: cache unreachable")
        return "down"
    return "ok" if ok else "down"


@extend_schema(responses={200: HEALTH_SCHEMA, 503: HEALTH_SCHEMA})
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    Database down = 503. Cache down = 200 with status "degraded".
    """
    db = _probe_db()
    cache_state = _probe_cache()
    body = {"status": "ok", "db": db, "cache": cache_state}
    if db != "ok":
        body["status"] = "degraded"
        return Response(body, status=503)
    if cache_state != "ok":
        body["status"] = "degraded"
    return Response(body)


# ------------------ ADMIN PATH ------------------
# Keep the trailing slash.
ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"


# ------------------ SHOP-SCOPED MODULES ------------------
shop_urlpatterns = [
    path("", include("products.urls")),
    path("", include("customers.urls")),
    path("", include("sales.api.urls")),
    path("", include("purchases.api.urls")),
]


# ------------------ API ROUTES (ALL UNDER /api/) ------------------
api_urlpatterns = [
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    # OpenAPI / Swagger
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    # JWT (SimpleJWT)
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("auth/", include("users.urls")),
    # Engine
    path("shops/<uuid:shop_id>/", include(shop_urlpatterns)),
]

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
