"""
PATH: backend/settings/base.py

BASE SETTINGS (shared by dev + prod + test)

Operational maturity:
- Throttling (anon / user / pricing quotes)
- Pricing, cart merge, checkout and product catalog knobs from env
- Console logging with a configurable level
- Sentry (optional): error visibility in production
"""

from __future__ import annotations

import warnings
from datetime import timedelta
from pathlib import Path

import environ
from corsheaders.defaults import default_headers, default_methods

# -----------------------------------------
# BASE DIRECTORY
# -----------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# -----------------------------------------
# ENV (django-environ)
# -----------------------------------------
env = environ.Env(
    DEBUG=(bool, True),
    SECRET_KEY=(str, ""),
    TIME_ZONE=(str, "UTC"),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1"]),
    CORS_ALLOWED_ORIGINS=(list, ["http://localhost:5173"]),
    CSRF_TRUSTED_ORIGINS=(list, ["http://localhost:5173"]),
    DATABASE_URL=(str, f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
    LOG_LEVEL=(str, "INFO"),
    ADMIN_PATH=(str, "admin/"),
    # Throttling
    THROTTLE_ANON_RATE=(str, "60/min"),
    THROTTLE_USER_RATE=(str, "600/min"),
    THROTTLE_PRICING_QUOTE_RATE=(str, "120/min"),
    # Pricing
    PRICING_DEFAULT_CURRENCY=(str, "USD"),
    PRICING_BASE_SHIPPING_COST=(str, "9.99"),
    PRICING_FREE_SHIPPING_THRESHOLD=(str, "50.00"),
    PRICING_STACKING_POLICY=(str, "stack_all"),
    # Carts
    CART_MAX_ITEM_QUANTITY=(int, 99),
    CART_MERGE_CONFLICT_RESOLUTION=(str, "guest"),
    # Checkout
    CHECKOUT_SESSION_TTL_MINUTES=(int, 30),
    # Product catalog (external product service)
    PRODUCT_SERVICE_URL=(str, "http://localhost:3002"),
    PRODUCT_SERVICE_API_KEY=(str, ""),
    PRODUCT_SERVICE_TIMEOUT=(float, 5.0),
    PRODUCT_CATALOG_BACKEND=(str, "catalog.services.product_client.HttpProductCatalog"),
    # Sentry (optional; enable by setting SENTRY_DSN)
    SENTRY_DSN=(str, ""),
    SENTRY_ENVIRONMENT=(str, "development"),
    SENTRY_TRACES_SAMPLE_RATE=(float, 0.0),
    SENTRY_SEND_PII=(bool, False),
)

# -----------------------------------------
# LOAD .env
# -----------------------------------------
env_file_1 = BASE_DIR / ".env"
env_file_2 = BASE_DIR.parent / ".env"

if env_file_1.exists():
    env.read_env(str(env_file_1))
elif env_file_2.exists():
    env.read_env(str(env_file_2))

# -----------------------------------------
# CORE SECURITY
# -----------------------------------------
SECRET_KEY = (env("SECRET_KEY") or "dev-insecure-change-me").strip()
DEBUG = env.bool("DEBUG")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS")

# non-obvious admin path in production, e.g. ADMIN_PATH=control-panel-9f3k/
ADMIN_PATH = (env("ADMIN_PATH") or "admin/").strip()

# -----------------------------------------
# I18N / TZ
# -----------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = (env("TIME_ZONE") or "UTC").strip()
USE_I18N = True
USE_TZ = True

# -----------------------------------------
# INSTALLED APPS
# -----------------------------------------
INSTALLED_APPS = [
    "corsheaders",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "catalog.apps.CatalogConfig",
    "pricing.apps.PricingConfig",
    "carts.apps.CartsConfig",
    "checkout.apps.CheckoutConfig",
]

# -----------------------------------------
# MIDDLEWARE
# -----------------------------------------
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"
WSGI_APPLICATION = "backend.wsgi.application"
APPEND_SLASH = True

# -----------------------------------------
# TEMPLATES (required for Django admin)
# -----------------------------------------
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [str(BASE_DIR / "templates")],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

# -----------------------------------------
# REST FRAMEWORK
# -----------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_THROTTLE_CLASSES": (
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
    ),
    "DEFAULT_THROTTLE_RATES": {
        "anon": env("THROTTLE_ANON_RATE"),
        "user": env("THROTTLE_USER_RATE"),
        "pricing_quote": env("THROTTLE_PRICING_QUOTE_RATE"),
    },
}

# -----------------------------------------
# SIMPLE JWT
# -----------------------------------------
SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=30),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
    "ROTATE_REFRESH_TOKENS": True,
}

# -----------------------------------------
# DATABASE
# -----------------------------------------
DATABASES = {
    "default": env.db("DATABASE_URL"),
}

# -----------------------------------------
# PRICING
# -----------------------------------------
PRICING = {
    "DEFAULT_CURRENCY": (env("PRICING_DEFAULT_CURRENCY") or "USD").strip().upper(),
    "BASE_SHIPPING_COST": env("PRICING_BASE_SHIPPING_COST"),
    "FREE_SHIPPING_THRESHOLD": env("PRICING_FREE_SHIPPING_THRESHOLD"),
    # stack_all | single_exclusive
    "STACKING_POLICY": (env("PRICING_STACKING_POLICY") or "stack_all").strip().lower(),
}

# -----------------------------------------
# CARTS
# -----------------------------------------
CARTS = {
    "MAX_ITEM_QUANTITY": env.int("CART_MAX_ITEM_QUANTITY"),
}

CART_MERGE = {
    # guest | user | newer
    "DEFAULT_CONFLICT_RESOLUTION": (env("CART_MERGE_CONFLICT_RESOLUTION") or "guest").strip().lower(),
}

# -----------------------------------------
# CHECKOUT
# -----------------------------------------
CHECKOUT = {
    "SESSION_TTL_MINUTES": env.int("CHECKOUT_SESSION_TTL_MINUTES"),
}

# -----------------------------------------
# PRODUCT SERVICE
# -----------------------------------------
PRODUCT_SERVICE = {
    "BASE_URL": (env("PRODUCT_SERVICE_URL") or "").strip(),
    "API_KEY": (env("PRODUCT_SERVICE_API_KEY") or "").strip(),
    "TIMEOUT": env.float("PRODUCT_SERVICE_TIMEOUT"),
    "CATALOG_BACKEND": (env("PRODUCT_CATALOG_BACKEND") or "").strip(),
}

# -----------------------------------------
# LOGGING
# -----------------------------------------
LOG_LEVEL = (env("LOG_LEVEL") or "INFO").strip().upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "carts": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "pricing": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "checkout": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "catalog": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

# -----------------------------------------
# SENTRY (optional)
# -----------------------------------------
SENTRY_DSN = (env("SENTRY_DSN") or "").strip()
SENTRY_ENVIRONMENT = (env("SENTRY_ENVIRONMENT") or "development").strip()
SENTRY_TRACES_SAMPLE_RATE = float(env("SENTRY_TRACES_SAMPLE_RATE"))
SENTRY_SEND_PII = env.bool("SENTRY_SEND_PII")

if SENTRY_DSN:
    try:
        import sentry_sdk
        from sentry_sdk.integrations.django import DjangoIntegration
    except ImportError:
        warnings.warn("SENTRY_DSN is set but sentry-sdk is not installed; error reporting is off.")
    else:
        sentry_sdk.init(
            dsn=SENTRY_DSN,
            environment=SENTRY_ENVIRONMENT,
            integrations=[DjangoIntegration()],
            traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
            send_default_pii=SENTRY_SEND_PII,
        )

# -----------------------------------------
# CORS / CSRF
# -----------------------------------------
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = list(default_methods)
CORS_ALLOW_HEADERS = list(default_headers) + ["x-session-id"]

CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS")

# -----------------------------------------
# STATIC FILES
# -----------------------------------------
STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------
# SWAGGER
# -----------------------------------------
SPECTACULAR_SETTINGS = {
    "TITLE": "Cart Service API",
    "DESCRIPTION": "Carts, guest cart merge, pricing (discounts, promotions, taxes) and checkout sessions",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}
