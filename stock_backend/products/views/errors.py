# products/views/errors.py

"""
API ERROR NORMALIZATION

Maps the inventory service exceptions onto HTTP:

    InventoryValidationError      -> 400
    NotFoundError                 -> 404
    ConflictError (+ subclasses)  -> 409
    NegativeStockError            -> 409

Body: {"detail": <message>, "code": <machine code>}
"""

from rest_framework import status
from rest_framework.response import Response

from products.services.exceptions import (
    ConflictError,
    DuplicateTransferError,
    InsufficientStockError,
    InventoryServiceError,
    InventoryValidationError,
    NegativeStockError,
    NotFoundError,
    PeriodLockedError,
)

# most specific first
_ERROR_MAP = (
    (InventoryValidationError, "VALIDATION_ERROR", status.HTTP_400_BAD_REQUEST),
    (NotFoundError, "NOT_FOUND", status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, "INSUFFICIENT_STOCK", status.HTTP_409_CONFLICT),
    (DuplicateTransferError, "DUPLICATE_TRANSFER", status.HTTP_409_CONFLICT),
    (PeriodLockedError, "PERIOD_LOCKED", status.HTTP_409_CONFLICT),
    (NegativeStockError, "NEGATIVE_STOCK", status.HTTP_409_CONFLICT),
    (ConflictError, "CONFLICT", status.HTTP_409_CONFLICT),
)


def error_response(*, code: str, message: str, http_status: int) -> Response:
    """
    Canonical API error response.
    """
    return Response({"detail": message, "code": code}, status=http_status)


def inventory_error_response(exc: InventoryServiceError) -> Response:
    for exc_cls, code, http_status in _ERROR_MAP:
        if isinstance(exc, exc_cls):
            return error_response(code=code, message=str(exc), http_status=http_status)
    return error_response(
        code="INVENTORY_ERROR",
        message=str(exc),
        http_status=status.HTTP_400_BAD_REQUEST,
    )
