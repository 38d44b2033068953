"""
================================================================================
Herdbook - Database Adapter Unit Tests
================================================================================

Description:
    Unit tests for the database adapter layer: $N placeholder expansion,
    the SQLite adapter (rows as dicts, DDL normalization, month expression,
    integrity error translation) and adapter selection from configuration.

================================================================================
"""
import pytest

from herdbook.config import DatabaseConfig
from herdbook.database_adapter import (
    DataIntegrityError,
    ReferenceViolation,
    SQLiteAdapter,
    UniqueViolation,
    expand_placeholders,
    get_database_adapter,
)


class TestExpandPlaceholders:
    """Test suite for placeholder rewriting"""

    def test_sqlite_marker(self):
        sql, params = expand_placeholders("SELECT * FROM t WHERE a = $1 AND b = $2", ["x", 5], "?")

        assert sql == "SELECT * FROM t WHERE a = ? AND b = ?"
        assert params == ["x", 5]

    def test_out_of_order_and_repeated(self):
        """Parameters follow placeholder order in the text"""
        sql, params = expand_placeholders("$2 $1 $2", ["a", "b"], "%s")

        assert sql == "%s %s %s"
        assert params == ["b", "a", "b"]

    def test_multi_digit_placeholders(self):
        values = [str(i) for i in range(1, 12)]
        sql, params = expand_placeholders("x = $11 AND y = $1", values, "?")

        assert sql == "x = ? AND y = ?"
        assert params == ["11", "1"]

    def test_missing_parameter(self):
        with pytest.raises(IndexError):
            expand_placeholders("a = $3", ["only one"], "?")

    def test_no_placeholders(self):
        assert expand_placeholders("SELECT 1", None, "?") == ("SELECT 1", [])


class TestSQLiteAdapter:
    """Test suite for the SQLite adapter"""

    @pytest.fixture
    def adapter(self, temp_dir):
        adapter = SQLiteAdapter(temp_dir / "nested" / "adapter.db")
        adapter.execute_script("""
            CREATE TABLE parent (id TEXT PRIMARY KEY, flag BOOLEAN NOT NULL DEFAULT FALSE);
            CREATE TABLE child (
                id TEXT PRIMARY KEY,
                parent_id TEXT REFERENCES parent(id),
                code TEXT UNIQUE,
                amount NUMERIC(14, 4),
                date DATE
            );
        """)
        return adapter

    def test_creates_parent_directory(self, temp_dir, adapter):
        assert (temp_dir / "nested" / "adapter.db").exists()

    def test_rows_are_dicts(self, adapter):
        adapter.execute("INSERT INTO parent (id) VALUES ($1)", ["p1"])

        rows = adapter.fetchall("SELECT id, flag FROM parent WHERE id = $1", ["p1"])

        assert rows == [{"id": "p1", "flag": 0}]
        assert adapter.fetchone("SELECT id FROM parent WHERE id = $1", ["missing"]) is None

    def test_execute_returns_rowcount(self, adapter):
        adapter.execute("INSERT INTO parent (id) VALUES ($1)", ["p1"])

        assert adapter.execute("UPDATE parent SET flag = $1 WHERE id = $2", [True, "p1"]) == 1
        assert adapter.execute("UPDATE parent SET flag = $1 WHERE id = $2", [True, "nope"]) == 0

    def test_foreign_key_violation(self, adapter):
        with pytest.raises(ReferenceViolation):
            adapter.execute("INSERT INTO child (id, parent_id) VALUES ($1, $2)", ["c1", "ghost"])

    def test_unique_violation(self, adapter):
        adapter.execute("INSERT INTO child (id, code) VALUES ($1, $2)", ["c1", "A"])

        with pytest.raises(UniqueViolation) as exc_info:
            adapter.execute("INSERT INTO child (id, code) VALUES ($1, $2)", ["c2", "A"])
        assert isinstance(exc_info.value, DataIntegrityError)

    def test_month_expression(self, adapter):
        adapter.execute("INSERT INTO child (id, date) VALUES ($1, $2)", ["c1", "2025-03-14"])
        month = adapter.month_expression("date")

        row = adapter.fetchone(f"SELECT {month} AS name FROM child")

        assert row == {"name": "2025-03"}

    def test_normalize_sql(self, adapter):
        sql = adapter.normalize_sql("a TIMESTAMPTZ, b BOOLEAN, c NUMERIC(14, 4)")

        assert sql == "a TIMESTAMP, b INTEGER, c REAL"

    def test_query_alias(self, adapter):
        assert adapter.query("SELECT $1 AS value", [3]) == [{"value": 3}]


class TestGetDatabaseAdapter:
    """Test suite for adapter selection"""

    def test_sqlite_from_config(self, temp_dir):
        adapter = get_database_adapter(DatabaseConfig(db_type="sqlite", path=temp_dir / "cfg.db"))

        assert isinstance(adapter, SQLiteAdapter)
        assert adapter.db_type == "sqlite"

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            get_database_adapter(DatabaseConfig(db_type="oracle"))
