# products/services/exceptions.py

"""
INVENTORY SERVICE ERRORS

Centralized domain errors for the stock ledger and everything folded from it
(lots, alerts, period transfers, stock counts).

Every error is raised BEFORE commit: callers wrap work in transaction.atomic,
so a raised error always means "no state change".

HTTP mapping (see products.views.errors):
- InventoryValidationError -> 400
- NotFoundError            -> 404
- ConflictError (+ subclasses), NegativeStockError -> 409
"""


class InventoryServiceError(Exception):
    """Base exception for all inventory service failures."""


class InventoryValidationError(InventoryServiceError):
    """Missing or malformed input (fields, periods, lot rules)."""


class NotFoundError(InventoryServiceError):
    """Unknown product, lot, movement, transfer or stock count reference."""


class ConflictError(InventoryServiceError):
    """The request is valid but conflicts with committed state."""


class InsufficientStockError(ConflictError):
    """An outgoing movement needs more than the lot/product holds at commit time."""


class DuplicateTransferError(ConflictError):
    """A transfer already exists for this (source, destination) period pair."""


class PeriodLockedError(ConflictError):
    """The movement date falls inside a period already carried forward."""


class NegativeStockError(InventoryServiceError):
    """An edit or delete would drive a product or lot balance below zero."""
