# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS

Used by pytest (pyproject.toml) and by:
    DJANGO_SETTINGS_MODULE=backend.settings.test python manage.py test

- In-memory SQLite unless DATABASE_URL points elsewhere (CI Postgres)
- Fast password hashing
- Throttling disabled so API tests never hit rate limits
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import REST_FRAMEWORK, env  # explicit for Ruff (F405)

DEBUG = False

DATABASES = {
    "default": env.db("TEST_DATABASE_URL", default="sqlite://:memory:"),
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}
