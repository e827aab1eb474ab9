# products/urls.py

"""
PRODUCTS URLS

Purpose:
- Register product / ledger routes under /api/products/
    /products/                     catalog (+ {id}/stock/, {id}/lots/)
    /movements/                    the stock ledger
    /alerts/                       expiry + stock alerts
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import AlertSummaryView, MovementViewSet, ProductViewSet

router = DefaultRouter()

router.register(r"products", ProductViewSet, basename="products")
router.register(r"movements", MovementViewSet, basename="movements")

urlpatterns = [
    path("alerts/", AlertSummaryView.as_view(), name="stock-alerts"),
    path("", include(router.urls)),
]
