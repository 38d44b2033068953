"""
Report Filters

Filtering utilities for reports: build SQL WHERE clauses and the matching
positional parameter list. Placeholders are numbered $1, $2, ... in the
order filters are appended, so the k-th placeholder always binds params[k-1].

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

from datetime import date
from typing import Optional, Tuple, List, Any, Union

# UI convention: the "all" selector option means no filter
ALL_SENTINEL = 'all'

# Keyword arguments of build_record_filters that map to range predicates
RANGE_FILTERS = {
    'date_from': ('date', '>='),
    'date_to': ('date', '<='),
}

DateValue = Union[str, date, None]


def _is_selected(value: Optional[str]) -> bool:
    return bool(value) and value != ALL_SENTINEL


def _date_param(value: DateValue) -> Any:
    return value.isoformat() if isinstance(value, date) else value


def build_analytics_where_clause(
    species_id: Optional[str] = None,
    group_id: Optional[str] = None,
    date_from: DateValue = None,
    date_to: DateValue = None
) -> Tuple[str, List[Any]]:
    """
    Build the WHERE clause shared by the analytics aggregation queries.

    The clause is seeded with 1=1 so every filter is appended as
    ' AND <predicate>'. Species and group values of 'all' count as absent.
    Values are not type-checked; a malformed date reaches the database as-is.

    Args:
        species_id: Species filter
        group_id: Group filter
        date_from: Inclusive start date (YYYY-MM-DD)
        date_to: Inclusive end date (YYYY-MM-DD)

    Returns:
        Tuple of (where_clause, params_list)
        Example: (" WHERE 1=1  AND species_id = $1", ["sp-1"])
    """
    where_clause = ' WHERE 1=1 '
    params: List[Any] = []

    if _is_selected(species_id):
        params.append(species_id)
        where_clause += f" AND species_id = ${len(params)}"
    if _is_selected(group_id):
        params.append(group_id)
        where_clause += f" AND group_id = ${len(params)}"
    if date_from:
        params.append(_date_param(date_from))
        where_clause += f" AND date >= ${len(params)}"
    if date_to:
        params.append(_date_param(date_to))
        where_clause += f" AND date <= ${len(params)}"

    return where_clause, params


def build_record_filters(**column_values: Any) -> Tuple[str, List[Any]]:
    """
    Build a WHERE clause for the record list endpoints.

    Each non-empty keyword becomes '<column> = $k'; date_from and date_to
    become inclusive range predicates on the date column. Keyword order is
    preserved.

    Returns:
        Tuple of (where_clause, params_list); ("", []) when nothing is set
    """
    conditions = []
    params: List[Any] = []

    for key, value in column_values.items():
        if value is None or value == '':
            continue
        params.append(_date_param(value))
        if key in RANGE_FILTERS:
            column, operator = RANGE_FILTERS[key]
            conditions.append(f"{column} {operator} ${len(params)}")
        else:
            conditions.append(f"{key} = ${len(params)}")

    where_clause = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    return where_clause, params
