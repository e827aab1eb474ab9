# reports/api/urls.py

from django.urls import path

from reports.api.views import DashboardView

urlpatterns = [
    path("dashboard/", DashboardView.as_view(), name="reports-dashboard"),
]
