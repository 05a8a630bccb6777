# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- in-memory SQLite
- in-memory product catalog (no network)
- fast password hashing, throttling effectively off
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import PRODUCT_SERVICE, REST_FRAMEWORK

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PRODUCT_SERVICE = {
    **PRODUCT_SERVICE,
    "CATALOG_BACKEND": "catalog.services.in_memory.InMemoryProductCatalog",
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_RATES": {
        "anon": "100000/min",
        "user": "100000/min",
        "pricing_quote": "100000/min",
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"null": {"class": "logging.NullHandler"}},
    "root": {"handlers": ["null"], "level": "CRITICAL"},
}
