# backend/urls.py
"""
PROJECT URLS

Everything public lives under /api/:

- carts/      cart lifecycle, items, bulk ops, guest -> user merge
- pricing/    quotes and coupon validation
- checkout/   checkout sessions
- health/     DB ping for load balancers
- schema/, docs/, auth/jwt/*

The admin mount comes from settings.ADMIN_PATH so production can move it
off /admin/.
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db import connection
from django.db.utils import DatabaseError
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import OpenApiResponse, extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

API_MODULES = {
    "carts": "/api/carts/",
    "pricing": "/api/pricing/",
    "checkout": "/api/checkout/",
}


@extend_schema(
    responses={200: OpenApiResponse(description="Service banner with module and auth links")},
    tags=["Meta"],
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response(
        {
            "service": "cart-service",
            "version": settings.SPECTACULAR_SETTINGS.get("VERSION"),
            "modules": API_MODULES,
            "auth": {
                "token": "/api/auth/jwt/create/",
                "refresh": "/api/auth/jwt/refresh/",
            },
            "docs": "/api/docs/",
        }
    )


@extend_schema(
    responses={
        200: OpenApiResponse(description="Database reachable"),
        503: OpenApiResponse(description="Database unreachable"),
    },
    tags=["Meta"],
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        return Response({"status": "degraded", "db": "down", "error": str(exc)}, status=503)
    return Response({"status": "ok", "db": "ok"})


def _admin_prefix() -> str:
    prefix = (getattr(settings, "ADMIN_PATH", "") or "admin/").lstrip("/")
    return prefix if prefix.endswith("/") else f"{prefix}/"


api_urlpatterns = [
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("carts/", include("carts.urls")),
    path("pricing/", include("pricing.urls")),
    path("checkout/", include("checkout.urls")),
]

urlpatterns = [
    path(_admin_prefix(), admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
