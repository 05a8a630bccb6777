# backend/settings/prod.py
"""
PRODUCTION SETTINGS

Fail closed: every check below raises ImproperlyConfigured at import time
instead of letting the service boot half-configured.

- DEBUG forced off, real SECRET_KEY, explicit hosts
- Postgres only
- https-only CORS/CSRF origins, hardened cookies and headers
- product service reachable over the network (never localhost)
- pricing / merge policies spelled correctly
"""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F403
from .base import BASE_DIR, CART_MERGE, MIDDLEWARE, PRICING, env

LOCAL_HOST_MARKERS = ("localhost", "127.0.0.1")


def _require(value, message: str):
    if not value:
        raise ImproperlyConfigured(message)
    return value


def _check_origins(name: str, origins: list[str]) -> list[str]:
    _require(origins, f"{name} must be set in production.")
    for origin in origins:
        if any(marker in origin for marker in LOCAL_HOST_MARKERS):
            raise ImproperlyConfigured(f"{name} must not contain local origins ({origin}).")
        if not origin.startswith("https://"):
            raise ImproperlyConfigured(f"{name} must use https:// ({origin}).")
    return origins


DEBUG = False

SECRET_KEY = (env("SECRET_KEY", default="") or "").strip()
if SECRET_KEY in ("", "dev-insecure-change-me"):
    raise ImproperlyConfigured("SECRET_KEY must be set to a strong value in production.")

ALLOWED_HOSTS = _require(env.list("ALLOWED_HOSTS", default=[]), "ALLOWED_HOSTS must be set in production.")

# ----------------------------
# Database (Postgres only)
# ----------------------------
_database_url = _require(
    (env("DATABASE_URL", default="") or "").strip(),
    "DATABASE_URL must be set in production.",
)
if _database_url.startswith("sqlite"):
    raise ImproperlyConfigured("SQLite is not supported in production; point DATABASE_URL at Postgres.")

DATABASES = {"default": env.db("DATABASE_URL")}
DATABASES["default"]["CONN_MAX_AGE"] = env.int("DB_CONN_MAX_AGE", default=60)

# ----------------------------
# Static files (whitenoise)
# ----------------------------
STATIC_ROOT = env("STATIC_ROOT", default=str(BASE_DIR / "staticfiles"))
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ----------------------------
# TLS behind the proxy, cookies, headers
# ----------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)
SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=3600)
SECURE_HSTS_INCLUDE_SUBDOMAINS = env.bool("SECURE_HSTS_INCLUDE_SUBDOMAINS", default=True)
SECURE_HSTS_PRELOAD = env.bool("SECURE_HSTS_PRELOAD", default=False)

SESSION_COOKIE_SECURE = CSRF_COOKIE_SECURE = True
SESSION_COOKIE_HTTPONLY = CSRF_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = CSRF_COOKIE_SAMESITE = "Lax"

SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = "same-origin"
SECURE_CROSS_ORIGIN_OPENER_POLICY = "same-origin"
X_FRAME_OPTIONS = "DENY"

# ----------------------------
# CORS / CSRF
# ----------------------------
CORS_ALLOWED_ORIGINS = _check_origins("CORS_ALLOWED_ORIGINS", env.list("CORS_ALLOWED_ORIGINS", default=[]))
CSRF_TRUSTED_ORIGINS = _check_origins("CSRF_TRUSTED_ORIGINS", env.list("CSRF_TRUSTED_ORIGINS", default=[]))
# guests are identified by session_id, not cookies
CORS_ALLOW_CREDENTIALS = False

# ----------------------------
# Product service
# ----------------------------
PRODUCT_SERVICE = {
    "BASE_URL": (env("PRODUCT_SERVICE_URL", default="") or "").strip(),
    "API_KEY": (env("PRODUCT_SERVICE_API_KEY", default="") or "").strip(),
    "TIMEOUT": env.float("PRODUCT_SERVICE_TIMEOUT", default=5.0),
    "CATALOG_BACKEND": "catalog.services.product_client.HttpProductCatalog",
}
_require(PRODUCT_SERVICE["BASE_URL"], "PRODUCT_SERVICE_URL must be set in production.")
if any(marker in PRODUCT_SERVICE["BASE_URL"] for marker in LOCAL_HOST_MARKERS):
    raise ImproperlyConfigured("PRODUCT_SERVICE_URL must not point at localhost in production.")

# ----------------------------
# Pricing / merge policies
# ----------------------------
if PRICING["STACKING_POLICY"] not in ("stack_all", "single_exclusive"):
    raise ImproperlyConfigured("PRICING_STACKING_POLICY must be stack_all or single_exclusive.")
if CART_MERGE["DEFAULT_CONFLICT_RESOLUTION"] not in ("guest", "user", "newer"):
    raise ImproperlyConfigured("CART_MERGE_CONFLICT_RESOLUTION must be guest, user or newer.")
