# products/serializers/movement.py

"""
MOVEMENT SERIALIZERS

- MovementSerializer: read shape of one ledger row.
- MovementCreateSerializer / MovementUpdateSerializer: command payloads.
  They only shape input; every business rule (direction vs kind, lot rules,
  period lock, stock sufficiency) is enforced by products.services.ledger.
"""

from rest_framework import serializers

from products.models import Movement


class MovementSerializer(serializers.ModelSerializer):
    product_code = serializers.CharField(source="product.code", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    signed_quantity = serializers.IntegerField(read_only=True)
    performed_by = serializers.SerializerMethodField()

    class Meta:
        model = Movement
        fields = [
            "id",
            "product",
            "product_code",
            "product_name",
            "kind",
            "direction",
            "quantity",
            "signed_quantity",
            "movement_date",
            "period",
            "lot_number",
            "expiry_date",
            "unit_price",
            "total_value",
            "balance_after",
            "note",
            "carried_forward",
            "source_period",
            "performed_by",
            "created_at",
        ]
        read_only_fields = fields

    def get_performed_by(self, obj):
        user = obj.performed_by
        return user.get_username() if user else None


class MovementCreateSerializer(serializers.Serializer):
    product = serializers.UUIDField()
    kind = serializers.ChoiceField(choices=Movement.Kind.choices)
    direction = serializers.ChoiceField(
        choices=Movement.Direction.choices, required=False, allow_null=True
    )
    quantity = serializers.IntegerField(min_value=1)
    movement_date = serializers.DateField(required=False, allow_null=True)
    lot_number = serializers.CharField(
        max_length=64, required=False, allow_blank=True, allow_null=True
    )
    expiry_date = serializers.DateField(required=False, allow_null=True)
    unit_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )
    note = serializers.CharField(required=False, allow_blank=True, default="")


class MovementUpdateSerializer(serializers.Serializer):
    """
    Partial edit. Only the keys actually sent become `changes`.
    """

    product = serializers.UUIDField(required=False)
    kind = serializers.ChoiceField(choices=Movement.Kind.choices, required=False)
    direction = serializers.ChoiceField(
        choices=Movement.Direction.choices, required=False, allow_null=True
    )
    quantity = serializers.IntegerField(min_value=1, required=False)
    movement_date = serializers.DateField(required=False)
    lot_number = serializers.CharField(
        max_length=64, required=False, allow_blank=True, allow_null=True
    )
    expiry_date = serializers.DateField(required=False, allow_null=True)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    note = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("No changes supplied")
        return attrs


class MovementResultSerializer(serializers.Serializer):
    movement = MovementSerializer()
    balance_after = serializers.IntegerField()
    affected_product_ids = serializers.ListField(child=serializers.UUIDField())
