# products/views/product.py

"""
PRODUCT VIEWSET

Purpose:
- Catalog endpoints (list / retrieve / create / update; no delete: products
  with movements are PROTECTed, deactivate instead).
- Ledger-derived reads per product:
    GET /products/products/{id}/stock/?as_of=YYYY-MM-DD
    GET /products/products/{id}/lots/?available=true

Key rule alignment:
- Stock is NEVER read from a column; it is folded from movements.
- List pages compute stock for the whole page in one pass (stock_map).
"""

from django.db.models import Q
from django.utils.dateparse import parse_date
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import (
    CAP_CATALOG_ADD,
    CAP_CATALOG_EDIT,
    CAP_CATALOG_VIEW,
    CAP_STOCK_VIEW,
    HasCapability,
)
from products.models import Product
from products.serializers import LotSerializer, ProductSerializer
from products.services.catalog import create_product
from products.services.exceptions import InventoryServiceError
from products.services.lots import available_lots, lots_for_product
from products.services.stock_projection import (
    current_stock_map,
    stock_as_of,
    stock_value,
)
from products.views.errors import error_response, inventory_error_response


def _truthy(raw) -> bool:
    return (raw or "").strip().lower() in ("1", "true", "yes")


class ProductViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Product endpoints.

    - list:   ?q=<name/code search>&is_active=&therapeutic_class=&track_lots=
    - create: code optional (generated from the name)
    - stock:  current stock + value, or stock as of a date
    - lots:   lot balances (FEFO order when available=true)
    """

    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    filterset_fields = ["is_active", "therapeutic_class", "track_lots"]

    required_capability = None

    def get_permissions(self):
        if self.action == "create":
            self.required_capability = CAP_CATALOG_ADD
        elif self.action in ("update", "partial_update"):
            self.required_capability = CAP_CATALOG_EDIT
        elif self.action in ("stock", "lots"):
            self.required_capability = CAP_STOCK_VIEW
        else:
            self.required_capability = CAP_CATALOG_VIEW
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        qs = Product.objects.all().order_by("name")

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(code__icontains=q))
        return qs

    # -----------------------------
    # LIST (page-wide stock fold)
    # -----------------------------
    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())

        page = self.paginate_queryset(queryset)
        rows = page if page is not None else list(queryset)

        context = self.get_serializer_context()
        context["stock_map"] = current_stock_map([p.pk for p in rows])
        data = self.get_serializer_class()(rows, many=True, context=context).data

        if page is not None:
            return self.get_paginated_response(data)
        return Response(data)

    # -----------------------------
    # CREATE
    # -----------------------------
    @extend_schema(
        tags=["Products"],
        request=ProductSerializer,
        responses={
            201: ProductSerializer,
            400: OpenApiResponse(description="Invalid payload"),
            409: OpenApiResponse(description="Product code already exists"),
        },
    )
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        try:
            product = create_product(
                name=data.pop("name"),
                code=data.pop("code", None) or None,
                **data,
            )
        except InventoryServiceError as exc:
            return inventory_error_response(exc)

        return Response(
            self.get_serializer(product).data, status=status.HTTP_201_CREATED
        )

    # -----------------------------
    # STOCK
    # -----------------------------
    @extend_schema(
        tags=["Products"],
        parameters=[
            OpenApiParameter(
                name="as_of",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
                description="YYYY-MM-DD. Stock after every movement dated on or before this day.",
            ),
        ],
        responses={
            200: OpenApiResponse(description="Derived stock for the product"),
            400: OpenApiResponse(description="Invalid as_of"),
        },
    )
    @action(detail=True, methods=["get"], url_path="stock")
    def stock(self, request, pk=None):
        product = self.get_object()

        raw_as_of = (request.query_params.get("as_of") or "").strip()
        if raw_as_of:
            try:
                as_of = parse_date(raw_as_of)
            except ValueError:
                as_of = None
            if as_of is None:
                return error_response(
                    code="VALIDATION_ERROR",
                    message="as_of must be a date (YYYY-MM-DD)",
                    http_status=status.HTTP_400_BAD_REQUEST,
                )
            return Response(
                {
                    "product_id": str(product.pk),
                    "as_of": as_of.isoformat(),
                    "stock": stock_as_of(product, as_of),
                }
            )

        return Response(
            {
                "product_id": str(product.pk),
                "as_of": None,
                "stock": product.current_stock,
                "stock_value": str(stock_value(product)),
            }
        )

    # -----------------------------
    # LOTS
    # -----------------------------
    @extend_schema(
        tags=["Products"],
        parameters=[
            OpenApiParameter(
                name="available",
                type=bool,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Only lots with remaining > 0, FEFO ordered.",
            ),
        ],
        responses={200: LotSerializer(many=True)},
    )
    @action(detail=True, methods=["get"], url_path="lots")
    def lots(self, request, pk=None):
        product = self.get_object()

        if _truthy(request.query_params.get("available")):
            lots = available_lots(product)
        else:
            lots = lots_for_product(product)

        data = LotSerializer(lots, many=True).data
        return Response({"count": len(data), "results": data})
