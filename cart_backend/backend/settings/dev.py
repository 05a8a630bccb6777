# backend/settings/dev.py
"""
LOCAL DEVELOPMENT SETTINGS

- DEBUG on, localhost frontends allowed with credentials
- PRODUCT_CATALOG_BACKEND=catalog.services.in_memory.InMemoryProductCatalog
  runs without a product service
- app loggers at DEBUG unless LOG_LEVEL says otherwise
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=["http://localhost:5173"])
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=["http://localhost:5173"])
CORS_ALLOW_CREDENTIALS = True

_dev_level = (env("LOG_LEVEL", default="DEBUG") or "DEBUG").strip().upper()
for _name in ("carts", "pricing", "checkout", "catalog"):
    LOGGING["loggers"][_name]["level"] = _dev_level
