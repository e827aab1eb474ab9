# reports/apps.py

"""
REPORTS APP CONFIG

Read-only reporting (dashboard aggregation). No models.
"""

from django.apps import AppConfig


class ReportsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "reports"
    verbose_name = "Reports"
