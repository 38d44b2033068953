"""
Reports Module

Analytics and reporting for the farm backend: KPI and time-series dashboards,
profit and loss, cohort reports and investor report jobs. The API router
lives in herdbook.reports.router.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

from .filters import build_analytics_where_clause, build_record_filters
from .models import AnalyticsFilters, KpiSummary, TimeSeriesPoint

__all__ = [
    "AnalyticsFilters",
    "build_analytics_where_clause",
    "build_record_filters",
    "KpiSummary",
    "TimeSeriesPoint"
]
