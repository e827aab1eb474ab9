"""
PATH: periods/models/__init__.py

Periods models export surface.
"""

from .stock_count import StockCount, StockCountLine
from .stock_transfer import StockTransfer

__all__ = [
    "StockCount",
    "StockCountLine",
    "StockTransfer",
]
