# products/apps.py

"""
PRODUCTS APP CONFIG

Owns:
- Product catalog
- Movement ledger (the single source of truth for stock)
- Stock / lot projection, FEFO availability, expiry + stock alerts
"""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "products"
    verbose_name = "Products & Stock Ledger"
