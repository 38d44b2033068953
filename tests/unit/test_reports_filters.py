"""
================================================================================
Herdbook - Report Filters Unit Tests
================================================================================

Description:
    Unit tests for the report filters module: the analytics WHERE clause
    shared by the KPI and time-series queries, and the record list filters.
    Every value must travel as a positional parameter whose $k placeholder
    matches its position in the parameter list.

Test Coverage:
    - 'all' and absent selectors add nothing
    - Placeholder numbering follows append order
    - Date objects and strings
    - Record filters with range keys

================================================================================
"""
import re
from datetime import date

import pytest

from herdbook.reports.filters import build_analytics_where_clause, build_record_filters


def _placeholder_for(where_clause, column):
    match = re.search(rf"{column} = \$(\d+)", where_clause)
    return int(match.group(1)) if match else None


class TestBuildAnalyticsWhereClause:
    """Test suite for the analytics filter builder"""

    def test_no_filters(self):
        """Only the 1=1 seed remains when nothing is selected"""
        where_clause, params = build_analytics_where_clause()

        assert where_clause.strip() == "WHERE 1=1"
        assert params == []

    @pytest.mark.parametrize("species_id, group_id", [
        ("all", "all"),
        (None, None),
        ("all", None),
        ("", "all"),
    ])
    def test_all_selector_adds_no_clause(self, species_id, group_id):
        """'all' or absent species/group selectors contribute no clause and no parameter"""
        where_clause, params = build_analytics_where_clause(species_id, group_id)

        assert "species_id" not in where_clause
        assert "group_id" not in where_clause
        assert params == []

    def test_species_placeholder_matches_parameter(self):
        """species_id = $k binds params[k-1]"""
        where_clause, params = build_analytics_where_clause("sp-1")

        assert where_clause.count("species_id = $") == 1
        k = _placeholder_for(where_clause, "species_id")
        assert params[k - 1] == "sp-1"

    def test_all_filters_in_order(self):
        """Placeholders are numbered in the order filters are appended"""
        where_clause, params = build_analytics_where_clause("sp-1", "grp-9", "2025-01-01", "2025-03-31")

        assert "species_id = $1" in where_clause
        assert "group_id = $2" in where_clause
        assert "date >= $3" in where_clause
        assert "date <= $4" in where_clause
        assert params == ["sp-1", "grp-9", "2025-01-01", "2025-03-31"]

    def test_group_without_species(self):
        """A lone group filter takes $1"""
        where_clause, params = build_analytics_where_clause("all", "grp-9")

        assert "group_id = $1" in where_clause
        assert params == ["grp-9"]

    def test_date_objects_are_iso_strings(self):
        """date values are bound as YYYY-MM-DD text"""
        _, params = build_analytics_where_clause(None, None, date(2025, 1, 1), date(2025, 2, 1))

        assert params == ["2025-01-01", "2025-02-01"]

    def test_injection_text_stays_in_params(self):
        """Filter values never reach the SQL text"""
        malicious = "1'; DROP TABLE animals; --"
        where_clause, params = build_analytics_where_clause(malicious)

        assert "DROP" not in where_clause
        assert params == [malicious]


class TestBuildRecordFilters:
    """Test suite for record list filters"""

    def test_nothing_selected(self):
        assert build_record_filters(species_id=None, group_id='') == ("", [])

    def test_equality_and_range(self):
        """Range keys map onto the date column"""
        where_clause, params = build_record_filters(
            species_id='1', event_type='birth', date_from='2025-01-01', date_to='2025-12-31'
        )

        assert where_clause == (
            " WHERE species_id = $1 AND event_type = $2 AND date >= $3 AND date <= $4"
        )
        assert params == ['1', 'birth', '2025-01-01', '2025-12-31']

    def test_skips_unset_values_without_gaps(self):
        """Skipped filters do not leave holes in the numbering"""
        where_clause, params = build_record_filters(category_id=None, currency='USD')

        assert where_clause == " WHERE currency = $1"
        assert params == ['USD']
