"""
Database Adapter Layer

Database abstraction over SQLite and PostgreSQL. Every query is written once
with PostgreSQL-style positional placeholders ($1, $2, ...) and a positional
parameter list; each adapter rewrites the placeholders for its driver and
returns rows as dictionaries keyed by column alias.

Author: Herdbook Developers
Copyright: © 2025 Herdbook Project
"""

import re
import sqlite3
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Any, Dict, List, Sequence, Tuple
from contextlib import contextmanager
from abc import ABC, abstractmethod

try:
    import psycopg2
    from psycopg2.extras import RealDictCursor
    POSTGRES_AVAILABLE = True
except ImportError:
    POSTGRES_AVAILABLE = False

from .config import config, DatabaseConfig

sqlite3.register_adapter(date, lambda d: d.isoformat())
sqlite3.register_adapter(datetime, lambda dt: dt.isoformat())

PLACEHOLDER_PATTERN = re.compile(r"\$(\d+)")


class DataIntegrityError(Exception):
    """A write was rejected by a database constraint"""


class ReferenceViolation(DataIntegrityError):
    """A foreign key pointed at a row that does not exist"""


class UniqueViolation(DataIntegrityError):
    """A unique constraint was violated"""


def expand_placeholders(query: str, params: Optional[Sequence[Any]], marker: str) -> Tuple[str, List[Any]]:
    """
    Rewrite $N placeholders into the driver's positional marker.

    The returned parameter list follows placeholder order in the text, so a
    placeholder used twice gets its value twice.

    Args:
        query: SQL text using $1, $2, ... placeholders
        params: Positional parameters ($1 is params[0])
        marker: Driver placeholder ('?' for sqlite3, '%s' for psycopg2)

    Returns:
        Tuple of (rewritten_query, ordered_params)
    """
    params = list(params or [])
    ordered: List[Any] = []

    def _substitute(match):
        index = int(match.group(1))
        if index < 1 or index > len(params):
            raise IndexError(f"Placeholder ${index} has no matching parameter ({len(params)} given)")
        ordered.append(params[index - 1])
        return marker

    return PLACEHOLDER_PATTERN.sub(_substitute, query), ordered


class DatabaseAdapter(ABC):
    """Abstract base class for database adapters"""

    db_type: str = ""

    @abstractmethod
    @contextmanager
    def get_connection(self):
        """Get a database connection"""
        pass

    @abstractmethod
    def fetchall(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run a query and return every row as a dict"""
        pass

    @abstractmethod
    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Run a write statement and return the affected row count"""
        pass

    @abstractmethod
    def execute_script(self, sql: str) -> None:
        """Run a multi-statement DDL script"""
        pass

    @abstractmethod
    def normalize_sql(self, sql: str) -> str:
        """Normalize DDL syntax for the database type"""
        pass

    @abstractmethod
    def month_expression(self, column: str) -> str:
        """SQL expression rendering a date column as 'YYYY-MM'"""
        pass

    def fetchone(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """Run a query and return the first row, or None"""
        rows = self.fetchall(query, params)
        return rows[0] if rows else None

    def query(self, text: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute parameterized SQL and return the row set"""
        return self.fetchall(text, params)

    def close(self) -> None:
        """Release adapter resources (connections are per call)"""
        pass


class SQLiteAdapter(DatabaseAdapter):
    """SQLite database adapter"""

    db_type = "sqlite"

    def __init__(self, db_path: Path, timeout: float = 30.0, journal_mode: str = "WAL"):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.journal_mode = journal_mode
        self.logger = logging.getLogger(self.__class__.__name__)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new SQLite connection"""
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout,
            check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute(f"PRAGMA journal_mode = {self.journal_mode}")
        conn.execute("PRAGMA synchronous = NORMAL")
        return conn

    @contextmanager
    def get_connection(self):
        """Get a SQLite connection"""
        conn = self._create_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise self._translate_integrity_error(e) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _translate_integrity_error(error: sqlite3.IntegrityError) -> DataIntegrityError:
        message = str(error)
        if "FOREIGN KEY" in message:
            return ReferenceViolation(message)
        if "UNIQUE" in message:
            return UniqueViolation(message)
        return DataIntegrityError(message)

    def fetchall(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Fetch all results"""
        sql, ordered = expand_placeholders(query, params, "?")
        with self.get_connection() as conn:
            cursor = conn.execute(sql, ordered)
            return [dict(row) for row in cursor.fetchall()]

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute a write statement"""
        sql, ordered = expand_placeholders(query, params, "?")
        with self.get_connection() as conn:
            cursor = conn.execute(sql, ordered)
            return cursor.rowcount

    def execute_script(self, sql: str) -> None:
        with self.get_connection() as conn:
            conn.executescript(self.normalize_sql(sql))

    def normalize_sql(self, sql: str) -> str:
        """Normalize SQL syntax for SQLite"""
        sql = sql.replace("TIMESTAMPTZ", "TIMESTAMP")
        sql = sql.replace("BOOLEAN", "INTEGER")
        sql = sql.replace("NUMERIC(14, 4)", "REAL")
        return sql

    def month_expression(self, column: str) -> str:
        return f"strftime('%Y-%m', {column})"


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL database adapter"""

    db_type = "postgresql"

    def __init__(self, host: str, database: str, username: str = "",
                 password: str = "", port: int = 5432, timeout: int = 30):
        if not POSTGRES_AVAILABLE:
            raise ImportError(
                "PostgreSQL support requires psycopg2. "
                "Install with: pip install psycopg2-binary"
            )

        self.host = host
        self.database = database
        self.username = username
        self.password = password
        self.port = port
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    def _create_connection(self):
        """Create a new PostgreSQL connection"""
        try:
            conn = psycopg2.connect(
                host=self.host,
                database=self.database,
                user=self.username,
                password=self.password,
                port=self.port,
                connect_timeout=self.timeout
            )
            return conn
        except psycopg2.Error as e:
            self.logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise

    @contextmanager
    def get_connection(self):
        """Get a PostgreSQL connection"""
        conn = self._create_connection()
        try:
            yield conn
            conn.commit()
        except psycopg2.IntegrityError as e:
            conn.rollback()
            raise self._translate_integrity_error(e) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _translate_integrity_error(error) -> DataIntegrityError:
        message = str(error).strip()
        if error.pgcode == '23503':
            return ReferenceViolation(message)
        if error.pgcode == '23505':
            return UniqueViolation(message)
        return DataIntegrityError(message)

    @staticmethod
    def _prepare(query: str, params: Optional[Sequence[Any]]) -> Tuple[str, Tuple[Any, ...]]:
        # psycopg2 always interpolates when given a parameter tuple
        sql, ordered = expand_placeholders(query.replace("%", "%%"), params, "%s")
        return sql, tuple(ordered)

    def fetchall(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Fetch all results"""
        sql, ordered = self._prepare(query, params)
        with self.get_connection() as conn:
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            cursor.execute(sql, ordered)
            return [dict(row) for row in cursor.fetchall()]

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute a write statement"""
        sql, ordered = self._prepare(query, params)
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, ordered)
            return cursor.rowcount

    def execute_script(self, sql: str) -> None:
        with self.get_connection() as conn:
            conn.cursor().execute(self.normalize_sql(sql))

    def normalize_sql(self, sql: str) -> str:
        """Normalize SQL syntax for PostgreSQL (schema is written for it)"""
        return sql

    def month_expression(self, column: str) -> str:
        return f"to_char({column}, 'YYYY-MM')"


def get_database_adapter(db_config: Optional[DatabaseConfig] = None) -> DatabaseAdapter:
    """Get the appropriate database adapter based on configuration"""
    db_config = db_config or config.database

    if db_config.db_type == "postgresql":
        return PostgreSQLAdapter(
            host=db_config.postgresql_host,
            database=db_config.postgresql_database,
            username=db_config.postgresql_username,
            password=db_config.postgresql_password,
            port=db_config.postgresql_port,
            timeout=db_config.connection_timeout
        )
    if db_config.db_type != "sqlite":
        raise ValueError(f"Unsupported database type: {db_config.db_type}")
    return SQLiteAdapter(
        db_path=db_config.path,
        timeout=db_config.connection_timeout,
        journal_mode=db_config.journal_mode
    )
