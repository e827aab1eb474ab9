# products/views/alerts.py

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import CAP_STOCK_VIEW, HasCapability
from products.serializers import AlertSummarySerializer
from products.services.alerts import alert_summary


class AlertSummaryView(GenericAPIView):
    """
    GET /products/alerts/

    Expiry buckets for every available lot with an expiry date, and
    out-of-stock / low-stock status for every active product.
    """

    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW
    serializer_class = AlertSummarySerializer

    @extend_schema(tags=["Stock"], responses=AlertSummarySerializer)
    def get(self, request):
        summary = alert_summary()
        return Response(AlertSummarySerializer(summary).data, status=status.HTTP_200_OK)
