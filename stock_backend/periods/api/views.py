# periods/api/views.py

"""
PERIOD ENDPOINTS

Transfers (month-end carry-forward):
    GET  /periods/transfers/
    GET  /periods/transfers/preview/?source_period=YYYY-MM
    POST /periods/transfers/                    admin only

Physical stock counts:
    GET   /periods/stock-counts/
    POST  /periods/stock-counts/                open (idempotent per period)
    GET   /periods/stock-counts/{id}/
    PATCH /periods/stock-counts/{id}/lines/{line_id}/
    POST  /periods/stock-counts/{id}/validate/
"""

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from periods.api.serializers import (
    StockCountLineRecordSerializer,
    StockCountLineSerializer,
    StockCountOpenSerializer,
    StockCountSerializer,
    StockTransferCreateSerializer,
    StockTransferSerializer,
    TransferPreviewSerializer,
    TransferResultSerializer,
)
from periods.models import StockCount, StockTransfer
from periods.services.calendar import next_period
from periods.services.stock_count_service import (
    open_stock_count,
    record_physical_count,
    validate_stock_count,
)
from periods.services.transfer_service import (
    preview_transfer,
    transfer_exists,
    transfer_stock,
)
from permissions.roles import (
    CAP_COUNT_OPEN,
    CAP_COUNT_RECORD,
    CAP_COUNT_VIEW,
    CAP_PERIOD_TRANSFER,
    CAP_PERIOD_VIEW,
    HasCapability,
)
from products.services.exceptions import InventoryServiceError
from products.views.errors import error_response, inventory_error_response


# =========================================================
# TRANSFERS
# =========================================================
class StockTransferViewSet(
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    queryset = StockTransfer.objects.select_related("created_by")
    serializer_class = StockTransferSerializer
    permission_classes = [IsAuthenticated, HasCapability]

    required_capability = None

    def get_permissions(self):
        if self.action == "create":
            self.required_capability = CAP_PERIOD_TRANSFER
        else:
            self.required_capability = CAP_PERIOD_VIEW
        return [IsAuthenticated(), HasCapability()]

    def get_serializer_class(self):
        if self.action == "create":
            return StockTransferCreateSerializer
        return StockTransferSerializer

    @extend_schema(
        tags=["Periods"],
        parameters=[
            OpenApiParameter(
                name="source_period",
                type=str,
                location=OpenApiParameter.QUERY,
                required=True,
                description="YYYY-MM. Stock is read as of its last day.",
            ),
        ],
        responses={
            200: TransferPreviewSerializer,
            400: OpenApiResponse(description="Missing or invalid source_period"),
        },
    )
    @action(detail=False, methods=["get"], url_path="preview")
    def preview(self, request):
        source_period = (request.query_params.get("source_period") or "").strip()
        if not source_period:
            return error_response(
                code="VALIDATION_ERROR",
                message="source_period is required (YYYY-MM)",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            preview = preview_transfer(source_period)
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        context = {
            "already_transferred": transfer_exists(
                preview.source_period, preview.destination_period
            ),
        }
        return Response(TransferPreviewSerializer(preview, context=context).data)

    @extend_schema(
        tags=["Periods"],
        request=StockTransferCreateSerializer,
        responses={
            201: TransferResultSerializer,
            400: OpenApiResponse(description="Invalid periods"),
            409: OpenApiResponse(description="Already transferred or period locked"),
        },
    )
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        source_period = data["source_period"]
        destination_period = data.get("destination_period") or next_period(source_period)

        try:
            result = transfer_stock(
                source_period=source_period,
                destination_period=destination_period,
                user=request.user,
            )
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        return Response(
            TransferResultSerializer(result).data, status=status.HTTP_201_CREATED
        )


# =========================================================
# STOCK COUNTS
# =========================================================
class StockCountViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = StockCountSerializer
    permission_classes = [IsAuthenticated, HasCapability]

    required_capability = None

    def get_permissions(self):
        if self.action == "create":
            self.required_capability = CAP_COUNT_OPEN
        elif self.action in ("record_line", "validate"):
            self.required_capability = CAP_COUNT_RECORD
        else:
            self.required_capability = CAP_COUNT_VIEW
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        return StockCount.objects.prefetch_related("lines", "lines__product")

    def get_serializer_class(self):
        if self.action == "create":
            return StockCountOpenSerializer
        if self.action == "record_line":
            return StockCountLineRecordSerializer
        return StockCountSerializer

    def _detail(self, count_id):
        return StockCountSerializer(self.get_queryset().get(pk=count_id)).data

    @extend_schema(
        tags=["Periods"],
        request=StockCountOpenSerializer,
        responses={
            200: OpenApiResponse(
                response=StockCountSerializer,
                description="Count already open for this period",
            ),
            201: StockCountSerializer,
        },
    )
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            count, created = open_stock_count(
                period=serializer.validated_data["period"],
                user=request.user,
            )
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        return Response(
            self._detail(count.pk),
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(
        tags=["Periods"],
        request=StockCountLineRecordSerializer,
        responses={
            200: StockCountLineSerializer,
            404: OpenApiResponse(description="Unknown line"),
            409: OpenApiResponse(description="Count already validated"),
        },
    )
    @action(detail=True, methods=["patch"], url_path=r"lines/(?P<line_id>[^/.]+)")
    def record_line(self, request, pk=None, line_id=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            line = record_physical_count(
                line_id=line_id,
                count_id=pk,
                physical_quantity=serializer.validated_data["physical_quantity"],
            )
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        return Response(StockCountLineSerializer(line).data)

    @extend_schema(
        tags=["Periods"],
        request=None,
        responses={
            200: StockCountSerializer,
            400: OpenApiResponse(description="Uncounted lines remain"),
            409: OpenApiResponse(description="Already validated"),
        },
    )
    @action(detail=True, methods=["post"], url_path="validate")
    def validate(self, request, pk=None):
        try:
            count = validate_stock_count(count_id=pk, user=request.user)
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        return Response(self._detail(count.pk))
