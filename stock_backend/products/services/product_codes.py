# products/services/product_codes.py

"""
PRODUCT CODE GENERATION

Codes are derived from the product name:
- upper-cased, accents stripped
- every non [A-Z0-9] character becomes "_", runs collapsed, edges trimmed
- at most 64 characters
- an empty result falls back to "P_" + 6 random [A-Z0-9] characters

generate_unique_code() appends _2, _3, ... until the code is free.
"""

from __future__ import annotations

import re
import secrets
import string
import unicodedata
from collections.abc import Iterable

MAX_CODE_LENGTH = 64

_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_UNDERSCORES = re.compile(r"_+")
_HASH_ALPHABET = string.ascii_uppercase + string.digits


def _strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def _short_hash(length: int = 6) -> str:
    return "".join(secrets.choice(_HASH_ALPHABET) for _ in range(length))


def generate_product_code(name) -> str:
    if not name or not isinstance(name, str):
        return f"P_{_short_hash()}"

    code = _strip_accents(name.upper())
    code = _NON_ALNUM.sub("_", code)
    code = _UNDERSCORES.sub("_", code).strip("_")
    code = code[:MAX_CODE_LENGTH]

    if not code:
        return f"P_{_short_hash()}"
    return code


def normalize_product_code(code) -> str:
    return generate_product_code(code)


def generate_unique_code(base_code: str, existing_codes: Iterable[str]) -> str:
    existing = set(existing_codes)
    if base_code not in existing:
        return base_code

    counter = 2
    while True:
        suffix = f"_{counter}"
        candidate = f"{base_code[:MAX_CODE_LENGTH - len(suffix)]}{suffix}"
        if candidate not in existing:
            return candidate
        counter += 1
