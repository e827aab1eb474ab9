# products/views/movement.py

"""
MOVEMENT VIEWSET (THE LEDGER OVER HTTP)

    GET    /products/movements/?period=&kind=&product=&lot_number=
    POST   /products/movements/          -> ledger.append_movement
    PATCH  /products/movements/{id}/     -> ledger.edit_movement
    DELETE /products/movements/{id}/     -> ledger.delete_movement

No PUT: edits are partial by nature and every write is routed through the
ledger service (rows are immutable at the model level).
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import (
    CAP_STOCK_DELETE,
    CAP_STOCK_EDIT,
    CAP_STOCK_RECORD,
    CAP_STOCK_VIEW,
    HasCapability,
)
from products.models import Movement
from products.serializers import (
    MovementCreateSerializer,
    MovementResultSerializer,
    MovementSerializer,
    MovementUpdateSerializer,
)
from products.services.exceptions import InventoryServiceError
from products.services.ledger import append_movement, delete_movement, edit_movement
from products.views.errors import inventory_error_response


class MovementViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = MovementSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    filterset_fields = ["product", "kind", "direction", "period", "lot_number"]
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    required_capability = None

    def get_permissions(self):
        if self.action == "create":
            self.required_capability = CAP_STOCK_RECORD
        elif self.action == "partial_update":
            self.required_capability = CAP_STOCK_EDIT
        elif self.action == "destroy":
            self.required_capability = CAP_STOCK_DELETE
        else:
            self.required_capability = CAP_STOCK_VIEW
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        return (
            Movement.objects.select_related("product", "performed_by")
            .order_by("-movement_date", "-created_at", "-id")
        )

    def get_serializer_class(self):
        if self.action == "create":
            return MovementCreateSerializer
        if self.action == "partial_update":
            return MovementUpdateSerializer
        return MovementSerializer

    @extend_schema(
        tags=["Stock"],
        request=MovementCreateSerializer,
        responses={
            201: MovementResultSerializer,
            400: OpenApiResponse(description="Invalid movement"),
            404: OpenApiResponse(description="Unknown product or lot"),
            409: OpenApiResponse(description="Insufficient stock or period locked"),
        },
    )
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = append_movement(**serializer.validated_data, user=request.user)
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        return Response(
            MovementResultSerializer(result).data, status=status.HTTP_201_CREATED
        )

    @extend_schema(
        tags=["Stock"],
        request=MovementUpdateSerializer,
        responses={
            200: MovementResultSerializer,
            400: OpenApiResponse(description="Invalid change"),
            404: OpenApiResponse(description="Unknown movement"),
            409: OpenApiResponse(description="Edit would drive stock negative"),
        },
    )
    def partial_update(self, request, pk=None, *args, **kwargs):
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            result = edit_movement(
                movement_id=pk,
                changes=dict(serializer.validated_data),
                user=request.user,
            )
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        return Response(MovementResultSerializer(result).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Stock"],
        responses={
            200: MovementResultSerializer,
            404: OpenApiResponse(description="Unknown movement"),
            409: OpenApiResponse(description="Delete would drive stock negative"),
        },
    )
    def destroy(self, request, pk=None, *args, **kwargs):
        try:
            result = delete_movement(movement_id=pk, user=request.user)
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        return Response(MovementResultSerializer(result).data, status=status.HTTP_200_OK)
