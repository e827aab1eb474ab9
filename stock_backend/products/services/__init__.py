"""
PATH: products/services/__init__.py

Public engine surface of the stock ledger.
"""

from .alerts import alert_summary
from .ledger import append_movement, delete_movement, edit_movement
from .lots import available_lots
from .stock_projection import current_stock, stock_as_of, stock_value

__all__ = [
    "alert_summary",
    "append_movement",
    "available_lots",
    "current_stock",
    "delete_movement",
    "edit_movement",
    "stock_as_of",
    "stock_value",
]
