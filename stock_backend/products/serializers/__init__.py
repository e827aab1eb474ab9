# products/serializers/__init__.py

from .lot import AlertSummarySerializer, LotSerializer
from .movement import (
    MovementCreateSerializer,
    MovementResultSerializer,
    MovementSerializer,
    MovementUpdateSerializer,
)
from .product import ProductSerializer

__all__ = [
    "AlertSummarySerializer",
    "LotSerializer",
    "MovementCreateSerializer",
    "MovementResultSerializer",
    "MovementSerializer",
    "MovementUpdateSerializer",
    "ProductSerializer",
]
