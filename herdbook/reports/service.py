"""
Report Service (Data Access Layer)

Data access layer for report queries: executes parameterized SQL through the
injected database adapter and coerces the raw values drivers return (numeric
text, Decimal, None) into plain Python numbers.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

from decimal import Decimal
from typing import List, Dict, Any, Optional, Sequence

from ..database_adapter import DatabaseAdapter

Row = Dict[str, Any]


def to_float(value: Any) -> float:
    """Parse a numeric column value; NULL becomes 0.0"""
    if value is None:
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    return float(str(value).strip())


def to_int(value: Any) -> int:
    """Parse a count column value, truncating any fractional part"""
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(to_float(value))


class ReportService:
    """Base service for executing report queries"""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    def execute_query(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Row]:
        """
        Execute a query and return results.

        Args:
            query: SQL query string with $N placeholders
            params: Query parameters

        Returns:
            List of rows keyed by column alias
        """
        return self.db.query(query, list(params or []))

    def execute_single(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Row]:
        """Execute query and return single result"""
        rows = self.execute_query(query, params)
        return rows[0] if rows else None

    def month_expression(self, column: str) -> str:
        """Dialect-specific 'YYYY-MM' rendering of a date column"""
        return self.db.month_expression(column)

    def format_time_series(self, results: List[Row]) -> List[Dict[str, Any]]:
        """
        Format monthly aggregate rows for charting.

        Row order is kept as returned; the query already sorts by month.
        """
        return [
            {
                **row,
                "revenue": to_float(row.get("revenue")),
                "expense": to_float(row.get("expense")),
            }
            for row in results
        ]
