# periods/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from periods.api.views import StockCountViewSet, StockTransferViewSet

router = DefaultRouter()

router.register(r"transfers", StockTransferViewSet, basename="stock-transfers")
router.register(r"stock-counts", StockCountViewSet, basename="stock-counts")

urlpatterns = [
    path("", include(router.urls)),
]
