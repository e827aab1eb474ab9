# periods/api/serializers.py

from rest_framework import serializers

from periods.models import StockCount, StockCountLine, StockTransfer
from periods.services.stock_count_service import summarize_stock_count
from products.serializers import MovementSerializer

PERIOD_REGEX = r"^\d{4}-(0[1-9]|1[0-2])$"


# =========================================================
# TRANSFERS
# =========================================================
class StockTransferSerializer(serializers.ModelSerializer):
    created_by = serializers.SerializerMethodField()

    class Meta:
        model = StockTransfer
        fields = [
            "id",
            "source_period",
            "destination_period",
            "product_count",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields

    def get_created_by(self, obj):
        return obj.created_by.get_username() if obj.created_by else None


class StockTransferCreateSerializer(serializers.Serializer):
    source_period = serializers.RegexField(PERIOD_REGEX)
    # defaults to the month after source_period
    destination_period = serializers.RegexField(PERIOD_REGEX, required=False)


class TransferCandidateSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    product_code = serializers.CharField()
    product_name = serializers.CharField()
    quantity = serializers.IntegerField()
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)


class TransferPreviewSerializer(serializers.Serializer):
    source_period = serializers.CharField()
    destination_period = serializers.CharField()
    as_of = serializers.DateField()
    already_transferred = serializers.SerializerMethodField()
    product_count = serializers.IntegerField()
    total_quantity = serializers.IntegerField()
    candidates = TransferCandidateSerializer(many=True)

    def get_already_transferred(self, obj) -> bool:
        return bool(self.context.get("already_transferred", False))


class TransferResultSerializer(serializers.Serializer):
    transfer = StockTransferSerializer()
    movements = MovementSerializer(many=True)
    used_caller_preview = serializers.BooleanField()


# =========================================================
# STOCK COUNTS
# =========================================================
class StockCountLineSerializer(serializers.ModelSerializer):
    product_code = serializers.CharField(source="product.code", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = StockCountLine
        fields = [
            "id",
            "product",
            "product_code",
            "product_name",
            "theoretical_quantity",
            "physical_quantity",
            "variance",
            "updated_at",
        ]
        read_only_fields = fields


class StockCountSerializer(serializers.ModelSerializer):
    lines = StockCountLineSerializer(many=True, read_only=True)
    summary = serializers.SerializerMethodField()

    class Meta:
        model = StockCount
        fields = [
            "id",
            "period",
            "status",
            "created_by",
            "validated_by",
            "validated_at",
            "created_at",
            "updated_at",
            "summary",
            "lines",
        ]
        read_only_fields = fields

    def get_summary(self, obj) -> dict:
        summary = summarize_stock_count(obj)
        return {
            "line_count": summary.line_count,
            "counted_lines": summary.counted_lines,
            "lines_with_variance": summary.lines_with_variance,
            "total_variance": summary.total_variance,
            "is_complete": summary.is_complete,
        }


class StockCountOpenSerializer(serializers.Serializer):
    period = serializers.RegexField(PERIOD_REGEX)


class StockCountLineRecordSerializer(serializers.Serializer):
    physical_quantity = serializers.IntegerField(min_value=0)
