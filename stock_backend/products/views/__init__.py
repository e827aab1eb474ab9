# products/views/__init__.py

"""
Products views package exports.

Purpose:
- Central export point for router imports.
"""

from .alerts import AlertSummaryView
from .movement import MovementViewSet
from .product import ProductViewSet

__all__ = [
    "AlertSummaryView",
    "MovementViewSet",
    "ProductViewSet",
]
