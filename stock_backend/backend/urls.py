# backend/urls.py
"""
PROJECT URLS

Everything is served under /api/:
- products/  catalog, movement ledger, lots, alerts
- periods/   monthly carry-forward transfers, physical stock counts
- reports/   dashboard KPIs

Public (AllowAny): the API index and /api/health/. Everything else
requires a JWT and the capability the view declares.

The Django admin mount point comes from settings.ADMIN_PATH.
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db import DatabaseError, connections
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema, inline_serializer
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from periods.services.period_lock import locked_through

API_MODULES = {
    "products": "/api/products/products/",
    "movements": "/api/products/movements/",
    "alerts": "/api/products/alerts/",
    "transfers": "/api/periods/transfers/",
    "stock_counts": "/api/periods/stock-counts/",
    "dashboard": "/api/reports/dashboard/",
}


@extend_schema(
    tags=["System"],
    responses=inline_serializer(
        name="ApiIndex",
        fields={
            "name": serializers.CharField(),
            "auth": serializers.DictField(child=serializers.CharField()),
            "docs": serializers.DictField(child=serializers.CharField()),
            "modules": serializers.DictField(child=serializers.CharField()),
        },
    ),
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_index(request):
    return Response(
        {
            "name": "Stock Ledger API",
            "auth": {
                "jwt_create": "/api/auth/jwt/create/",
                "jwt_refresh": "/api/auth/jwt/refresh/",
            },
            "docs": {"swagger": "/api/docs/", "schema": "/api/schema/"},
            "modules": API_MODULES,
        }
    )


@extend_schema(
    tags=["System"],
    responses={
        (200, "application/json"): inline_serializer(
            name="HealthStatus",
            fields={
                "status": serializers.CharField(),
                "db": serializers.CharField(),
                "locked_through": serializers.DateField(allow_null=True),
            },
        ),
        (503, "application/json"): inline_serializer(
            name="HealthDegraded",
            fields={
                "status": serializers.CharField(),
                "db": serializers.CharField(),
                "error": serializers.CharField(),
            },
        ),
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    DB round-trip plus the ledger's lock watermark (last day frozen by a
    period transfer), so operators can see how far carry-forward has run.
    """
    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
        watermark = locked_through()
    except DatabaseError as exc:
        return Response(
            {"status": "degraded", "db": "down", "error": str(exc)}, status=503
        )
    return Response({"status": "ok", "db": "ok", "locked_through": watermark})


admin_path = settings.ADMIN_PATH.strip("/") + "/"

api_urlpatterns = [
    path("", api_index, name="api-index"),
    path("health/", health_check, name="health-check"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("products/", include("products.urls")),
    path("periods/", include("periods.api.urls")),
    path("reports/", include("reports.api.urls")),
]

urlpatterns = [
    path(admin_path, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
