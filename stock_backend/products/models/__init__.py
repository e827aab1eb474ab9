"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .movement import Movement
from .product import Product

__all__ = [
    "Movement",
    "Product",
]
