# catalog/apps.py

"""
CATALOG APP CONFIG

No models: the product catalog lives in an external service.
This app holds the port + adapters carts and checkout use to price and validate lines.
"""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"
    verbose_name = "Product catalog"
