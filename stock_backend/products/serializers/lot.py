# products/serializers/lot.py

"""
LOT + ALERT SERIALIZERS (read-only)

Lots and alerts are projections (frozen dataclasses), not model rows, so
these are plain Serializers over attribute access.
"""

from rest_framework import serializers

from products.services.alerts import ExpiryBucket, StockStatus


class LotSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    lot_number = serializers.CharField()
    remaining_quantity = serializers.IntegerField()
    expiry_date = serializers.DateField(allow_null=True)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_available = serializers.BooleanField()


class LotAlertSerializer(serializers.Serializer):
    lot = LotSerializer()
    product_code = serializers.CharField()
    product_name = serializers.CharField()
    days_until_expiry = serializers.IntegerField()
    bucket = serializers.SerializerMethodField()

    def get_bucket(self, obj) -> str:
        return obj.bucket.value


class ProductStockAlertSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    product_code = serializers.CharField()
    product_name = serializers.CharField()
    current_stock = serializers.IntegerField()
    alert_threshold = serializers.IntegerField()
    status = serializers.SerializerMethodField()

    def get_status(self, obj) -> str:
        return obj.status.value


class AlertSummarySerializer(serializers.Serializer):
    """
    {
      "today": "...",
      "lot_counts":   {"expired": n, "expiring7": n, "expiring30": n, "ok": n},
      "stock_counts": {"outOfStock": n, "lowStock": n, "ok": n},
      "lots":         {<bucket>: [LotAlert, ...]},
      "products":     {<status>: [ProductStockAlert, ...]},
      "products_by_expiry": {<bucket>: [LotAlert, ...]}
    }
    """

    today = serializers.DateField()
    eligible_lot_count = serializers.IntegerField()
    lot_counts = serializers.SerializerMethodField()
    stock_counts = serializers.SerializerMethodField()
    lots = serializers.SerializerMethodField()
    products = serializers.SerializerMethodField()
    products_by_expiry = serializers.SerializerMethodField()

    def get_lot_counts(self, obj) -> dict:
        return {bucket.value: n for bucket, n in obj.lot_counts.items()}

    def get_stock_counts(self, obj) -> dict:
        return {status.value: n for status, n in obj.stock_counts.items()}

    def get_lots(self, obj) -> dict:
        return {
            bucket.value: LotAlertSerializer(obj.lots.get(bucket, []), many=True).data
            for bucket in ExpiryBucket
        }

    def get_products(self, obj) -> dict:
        return {
            status.value: ProductStockAlertSerializer(
                obj.products.get(status, []), many=True
            ).data
            for status in StockStatus
        }

    def get_products_by_expiry(self, obj) -> dict:
        return {
            bucket.value: LotAlertSerializer(
                obj.products_by_expiry.get(bucket, []), many=True
            ).data
            for bucket in ExpiryBucket
        }
