# reports/api/views.py

"""
DASHBOARD REPORT

PATH: reports/api/views.py

Contract:
- period is optional, defaults to the current month (server timezone).
- period format: YYYY-MM
- Flows are for the period; stock value and alerts are as of now.
"""

from __future__ import annotations

from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from periods.services.calendar import period_of
from permissions.roles import CAP_STOCK_VIEW, HasCapability
from products.serializers import AlertSummarySerializer, MovementSerializer
from products.services.exceptions import InventoryServiceError
from products.views.errors import inventory_error_response
from reports.services.dashboard_service import period_aggregate


def _flow(totals) -> dict:
    return {"value": str(totals.value), "quantity": totals.quantity}


class DashboardView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_STOCK_VIEW

    @extend_schema(
        tags=["Reports"],
        parameters=[
            OpenApiParameter(
                name="period",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
                description="YYYY-MM (defaults to the current month).",
            ),
        ],
        responses={
            200: OpenApiResponse(description="Period KPIs"),
            400: OpenApiResponse(description="Invalid period"),
        },
    )
    def get(self, request):
        period = (request.query_params.get("period") or "").strip()
        if not period:
            period = period_of(timezone.localdate())

        try:
            agg = period_aggregate(period)
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        return Response(
            {
                "period": agg.period,
                "entries": _flow(agg.entries),
                "exits": _flow(agg.exits),
                "net_flow": _flow(agg.net_flow),
                "total_stock_value": str(agg.total_stock_value),
                "active_product_count": agg.active_product_count,
                "movement_count": agg.movement_count,
                "top_products": [
                    {
                        "product_id": str(v.product_id),
                        "product_code": v.product_code,
                        "product_name": v.product_name,
                        "current_stock": v.current_stock,
                        "unit_price": str(v.unit_price),
                        "stock_value": str(v.stock_value),
                    }
                    for v in agg.top_products
                ],
                "recent_movements": MovementSerializer(
                    agg.recent_movements, many=True
                ).data,
                "alerts": AlertSummarySerializer(agg.alerts).data,
            }
        )
