"""Report URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.reports.views import DashboardView, EarningsView, StockView

urlpatterns = [
    path("reports/earnings/", EarningsView.as_view(), name="report_earnings"),
    path("reports/dashboard/", DashboardView.as_view(), name="report_dashboard"),
    path("reports/stock/", StockView.as_view(), name="report_stock"),
]
