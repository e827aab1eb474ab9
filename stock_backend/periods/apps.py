# periods/apps.py

"""
PERIODS APP CONFIG

Monthly period operations:
- Stock carry-forward (period transfer) + period lock
- Physical stock counts per month
"""

from django.apps import AppConfig


class PeriodsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "periods"
    verbose_name = "Stock Periods"
