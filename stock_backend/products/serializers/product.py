# products/serializers/product.py

"""
PRODUCT SERIALIZER

Purpose:
- Canonical Product serializer for the catalog endpoints.
- Stock is derived from the movement ledger only (single source of truth).
- List views pass a precomputed {product_id: stock} map in context
  ("stock_map") to avoid one ledger fold per row.
"""

from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from products.models import Product
from products.services.product_codes import normalize_product_code


class ProductSerializer(serializers.ModelSerializer):
    """
    Canonical Product Serializer.

    GUARANTEES:
    - current_stock / stock_value are folded from movements (read-only)
    - code is optional on create (generated from the name)
    - No frontend-side stock math
    """

    code = serializers.CharField(max_length=64, required=False, allow_blank=True)

    current_stock = serializers.SerializerMethodField(read_only=True)
    stock_value = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "code",
            "name",
            "dosage_form",
            "strength",
            "unit",
            "therapeutic_class",
            "unit_price",
            "alert_threshold",
            "track_lots",
            "is_active",
            "current_stock",
            "stock_value",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "current_stock",
            "stock_value",
            "created_at",
            "updated_at",
        ]

    def validate_code(self, value):
        code = normalize_product_code(value)
        if not code:
            return ""

        # duplicates on create are reported by create_product (409)
        if self.instance is not None:
            taken = Product.objects.filter(code=code).exclude(pk=self.instance.pk)
            if taken.exists():
                raise serializers.ValidationError("A product with this code already exists")
        return code

    def validate_name(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Name is required")
        return value

    def validate_unit_price(self, value):
        # Keep consistent with Product.clean(): non-negative (0 allowed)
        if value is None or value < 0:
            raise serializers.ValidationError("Unit price must be non-negative")
        return value

    # -----------------------------
    # STOCK (context map if present; fallback DB fold)
    # -----------------------------
    def _stock(self, obj) -> int:
        stock_map = self.context.get("stock_map")
        if stock_map is not None:
            return int(stock_map.get(obj.pk, 0))
        return obj.current_stock

    def get_current_stock(self, obj) -> int:
        return self._stock(obj)

    def get_stock_value(self, obj) -> str:
        value = (Decimal(self._stock(obj)) * obj.unit_price).quantize(Decimal("0.01"))
        return str(value)

    # -----------------------------
    # UPDATE (create goes through catalog.create_product in the view)
    # -----------------------------
    def update(self, instance, validated_data):
        code = validated_data.pop("code", None)
        if code:
            instance.code = code

        for attr, value in validated_data.items():
            setattr(instance, attr, value)

        try:
            instance.save()
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.message_dict) from exc
        return instance
