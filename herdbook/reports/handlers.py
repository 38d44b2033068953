"""
Report Handlers (Business Logic Layer)

Report endpoint handlers: aggregation queries plus the in-process reshaping
of their rows. Handlers never swallow errors; a failing sub-query aborts the
whole report so the API layer can answer with a single generic failure.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import logging
from typing import Any, Dict, List, Optional

from .service import ReportService, to_float, to_int
from .filters import build_analytics_where_clause
from .models import AnalyticsFilters

logger = logging.getLogger(__name__)


class AnalyticsReports:
    """Handlers for the KPI and time-series dashboards"""

    def __init__(self, service: ReportService):
        self.service = service

    def get_kpis(self, filters: Optional[AnalyticsFilters] = None) -> Dict[str, Any]:
        """
        Get the KPI summary.

        Runs three queries one after another: financial summary, active
        animal count, production summary. Average daily gain and mortality
        are not yet computed and are reported as 0.
        """
        filters = filters or AnalyticsFilters()
        where_clause, params = build_analytics_where_clause(
            filters.species_id, filters.group_id, filters.date_from, filters.date_to
        )

        query = f"""
            SELECT
                COALESCE(SUM(CASE WHEN type = 'income' THEN base_amount_cached ELSE 0 END), 0) AS "totalRevenue",
                COALESCE(SUM(CASE WHEN type = 'expense' THEN base_amount_cached ELSE 0 END), 0) AS "totalExpense"
            FROM financial_transactions
            {where_clause}
        """
        financial = self.service.execute_single(query, params) or {}

        # Deliberately unfiltered: counts every active animal regardless of
        # species, group or date range, even though the dashboard filters imply
        # otherwise. Kept as a known simplification.
        query = """SELECT COUNT(*) AS "totalAnimals" FROM animals WHERE status = 'active'"""
        animals = self.service.execute_single(query) or {}

        query = f"""
            SELECT
                COALESCE(SUM(CASE WHEN event_type = 'egg_count' THEN egg_count ELSE 0 END), 0) AS "totalEggs",
                COALESCE(SUM(CASE WHEN event_type = 'milk_volume' THEN milk_volume ELSE 0 END), 0) AS "totalMilk",
                COALESCE(AVG(CASE WHEN event_type = 'birth' THEN quantity ELSE NULL END), 0) AS "avgLitterSize"
            FROM production_records
            {where_clause}
        """
        production = self.service.execute_single(query, params) or {}

        total_revenue = to_float(financial.get("totalRevenue"))
        total_expense = to_float(financial.get("totalExpense"))

        return {
            "totalRevenue": total_revenue,
            "totalExpense": total_expense,
            "grossMargin": total_revenue - total_expense,
            "totalAnimals": to_int(animals.get("totalAnimals")),
            "adg": 0,
            "mortality": 0,
            "avgLitterSize": to_float(production.get("avgLitterSize")),
            "totalEggs": to_int(production.get("totalEggs")),
            "totalMilk": to_float(production.get("totalMilk")),
        }

    def get_time_series(self, filters: Optional[AnalyticsFilters] = None) -> List[Dict[str, Any]]:
        """Get income and expense per calendar month, oldest month first"""
        filters = filters or AnalyticsFilters()
        where_clause, params = build_analytics_where_clause(
            filters.species_id, filters.group_id, filters.date_from, filters.date_to
        )
        month = self.service.month_expression('date')

        query = f"""
            SELECT
                {month} AS name,
                COALESCE(SUM(CASE WHEN type = 'income' THEN base_amount_cached ELSE 0 END), 0) AS revenue,
                COALESCE(SUM(CASE WHEN type = 'expense' THEN base_amount_cached ELSE 0 END), 0) AS expense
            FROM financial_transactions
            {where_clause}
            GROUP BY {month}
            ORDER BY name
        """
        results = self.service.execute_query(query, params)
        return self.service.format_time_series(results)


class FinancialReports:
    """Handlers for profit and loss reporting"""

    def __init__(self, service: ReportService):
        self.service = service

    def get_profit_and_loss(self, date_from: str, date_to: str) -> Dict[str, Any]:
        """Get income and expense totals by category between two dates (inclusive)"""
        query = """
            SELECT
                c.name AS "categoryName",
                tx.type AS type,
                SUM(tx.base_amount_cached) AS total
            FROM financial_transactions tx
            JOIN categories c ON tx.category_id = c.id
            WHERE tx.date >= $1 AND tx.date <= $2
            GROUP BY c.name, tx.type
            ORDER BY c.name
        """
        results = self.service.execute_query(query, [date_from, date_to])

        income_by_category: Dict[str, float] = {}
        expense_by_category: Dict[str, float] = {}
        total_income = 0.0
        total_expense = 0.0

        for row in results:
            amount = to_float(row["total"])
            if row["type"] == 'income':
                income_by_category[row["categoryName"]] = amount
                total_income += amount
            else:
                expense_by_category[row["categoryName"]] = amount
                total_expense += amount

        return {
            "period": {"from": date_from, "to": date_to},
            "income": {"total": total_income, "byCategory": income_by_category},
            "expense": {"total": total_expense, "byCategory": expense_by_category},
            "netProfit": total_income - total_expense,
        }


class CohortReports:
    """Handlers for per-group (cohort) reporting"""

    def __init__(self, service: ReportService):
        self.service = service

    def get_cohort_report(self, group_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a cohort summary and event timeline for one group.

        Production and financial rows are merged into one timeline sorted by
        date; each entry carries kind='production' or kind='financial'.

        Returns:
            Report dictionary, or None when the group does not exist
        """
        group = self.service.execute_single("SELECT * FROM animal_groups WHERE id = $1", [group_id])
        if group is None:
            return None

        production = self.service.execute_query(
            "SELECT * FROM production_records WHERE group_id = $1", [group_id]
        )
        financial = self.service.execute_query(
            "SELECT * FROM financial_transactions WHERE group_id = $1", [group_id]
        )
        animals = self.service.execute_query("SELECT * FROM animals WHERE group_id = $1", [group_id])

        timeline = [{**row, "kind": "production"} for row in production]
        timeline += [{**row, "kind": "financial"} for row in financial]
        timeline.sort(key=lambda event: str(event["date"]))

        total_cost = sum(to_float(t["base_amount_cached"]) for t in financial if t["type"] == 'expense')
        total_revenue = sum(to_float(t["base_amount_cached"]) for t in financial if t["type"] == 'income')

        return {
            "summary": {
                "groupName": group["name"],
                "animalCount": len(animals),
                "totalCost": total_cost,
                "totalRevenue": total_revenue,
                "netProfit": total_revenue - total_cost,
            },
            "timeline": timeline,
        }
