# products/services/catalog.py

"""
======================================================
PATH: products/services/catalog.py
======================================================
PRODUCT CATALOG SERVICE

Purpose:
- Create products with a normalized, unique code.
- A blank code is generated from the name; an explicit code is normalized
  the same way and must be free (ConflictError otherwise).

Race-safe create:
- The code uniqueness is finally enforced by the DB (unique=True).
  A generated code that loses a race is retried with the next suffix.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from products.models import Product
from products.services.exceptions import ConflictError, InventoryValidationError
from products.services.product_codes import (
    generate_product_code,
    generate_unique_code,
    normalize_product_code,
)

logger = logging.getLogger(__name__)

_MAX_CODE_ATTEMPTS = 5


def _existing_codes_like(base_code: str) -> list[str]:
    return list(
        Product.objects.filter(code__startswith=base_code).values_list("code", flat=True)
    )


def create_product(*, name: str, code: str | None = None, **fields) -> Product:
    name = (name or "").strip()
    if not name:
        raise InventoryValidationError("name is required")

    explicit = bool((code or "").strip())
    base_code = normalize_product_code(code) if explicit else generate_product_code(name)

    if explicit and Product.objects.filter(code=base_code).exists():
        raise ConflictError(f"Product code '{base_code}' is already used")

    for _ in range(_MAX_CODE_ATTEMPTS):
        candidate = base_code if explicit else generate_unique_code(
            base_code, _existing_codes_like(base_code)
        )
        try:
            with transaction.atomic():
                product = Product(name=name, code=candidate, **fields)
                product.save()
        except DjangoValidationError as exc:
            if "code" in getattr(exc, "error_dict", {}) and not explicit:
                continue
            raise InventoryValidationError("; ".join(exc.messages)) from exc
        except IntegrityError as exc:
            if explicit:
                raise ConflictError(f"Product code '{candidate}' is already used") from exc
            continue

        logger.info(
            "Product created",
            extra={"product_id": str(product.pk), "code": product.code},
        )
        return product

    raise ConflictError(f"Could not allocate a unique code for '{name}'")
