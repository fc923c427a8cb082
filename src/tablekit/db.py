"""
Database connection and query utilities.

Provides the Database collaborator used by repositories: a thin wrapper
around a single psycopg connection that runs parameterized statements,
keeps the last result cursor for fetching, and exposes explicit
transaction control.

The connection runs in autocommit mode; begin_transaction() opens an
explicit transaction that lasts until commit() or rollback(). Rows are
returned as dictionaries.

Named parameters use psycopg's %(name)s placeholder style.
"""

import logging
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.rows import dict_row

from tablekit.config import config

logger = logging.getLogger(__name__)


class Database:
    """
    Statement executor bound to one psycopg connection.

    Usage:
        with Database.connect() as database:
            database.query("SELECT * FROM users WHERE id = %(id)s", {"id": 1})
            row = database.fetch_current()
    """

    def __init__(self, connection: psycopg.Connection):
        """
        Args:
            connection: An open psycopg connection. It should be in autocommit
                mode so that transactions are only opened explicitly.
        """
        self.connection = connection
        self._cursor: psycopg.Cursor | None = None
        self._in_transaction = False

    @classmethod
    def connect(cls, url: str | None = None) -> "Database":
        """
        Open a new connection.

        Args:
            url: Connection string, defaults to config.database_url
        """
        conn = psycopg.connect(url or config.database_url, autocommit=True, row_factory=dict_row)
        return cls(conn)

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None
        self.connection.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._in_transaction:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        self.close()

    # =========================================================================
    # Statement Execution
    # =========================================================================

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> int:
        """
        Execute a statement without keeping its result.

        Use for DDL, INSERT, UPDATE, DELETE.

        Args:
            sql: SQL statement with %(name)s placeholders
            params: Mapping of parameter names to values

        Returns:
            Number of rows affected
        """
        logger.debug("execute: %s %s", sql, params)
        with self.connection.cursor() as cur:
            cur.execute(sql, params)
            return cur.rowcount

    def query(self, sql: str, params: dict[str, Any] | None = None) -> None:
        """
        Execute a statement and keep its cursor for fetch_all()/fetch_current().

        Args:
            sql: SQL statement with %(name)s placeholders
            params: Mapping of parameter names to values
        """
        logger.debug("query: %s %s", sql, params)
        if self._cursor is not None:
            self._cursor.close()
        self._cursor = self.connection.cursor(row_factory=dict_row)
        self._cursor.execute(sql, params)

    def fetch_all(self) -> list[dict[str, Any]]:
        """Return all remaining rows of the last query, empty list if none."""
        if self._cursor is None or self._cursor.description is None:
            return []
        return self._cursor.fetchall()

    def fetch_current(self) -> dict[str, Any] | None:
        """Return the next row of the last query, or None when exhausted."""
        if self._cursor is None or self._cursor.description is None:
            return None
        return self._cursor.fetchone()

    def row_count(self) -> int:
        """Number of rows produced or affected by the last query."""
        if self._cursor is None:
            return 0
        return self._cursor.rowcount

    def last_insert_id(self) -> int:
        """Value most recently produced by a sequence in this session."""
        with self.connection.cursor(row_factory=dict_row) as cur:
            cur.execute("SELECT lastval() AS id")
            return cur.fetchone()["id"]

    # =========================================================================
    # Transactions
    # =========================================================================

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def begin_transaction(self) -> None:
        self.connection.execute("BEGIN")
        self._in_transaction = True

    def commit(self) -> None:
        self.connection.execute("COMMIT")
        self._in_transaction = False

    def rollback(self) -> None:
        self.connection.execute("ROLLBACK")
        self._in_transaction = False

    @contextmanager
    def transaction(self):
        """
        Context manager for a transaction.

        - Begins a transaction
        - Commits on successful exit
        - Rolls back on exception and re-raises

        When a transaction is already open, the block joins it and the outer
        owner decides whether to commit.

        Usage:
            with database.transaction():
                database.execute("UPDATE ...")
        """
        if self._in_transaction:
            yield self
            return

        self.begin_transaction()
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise

    # =========================================================================
    # Schema Metadata
    # =========================================================================

    def describe(self, table: str) -> list[dict[str, Any]]:
        """
        Describe the columns of a table.

        Returns:
            List of dicts with keys field, type, nullable and default, in
            column order. Empty list if the table does not exist.
        """
        self.query(
            """
            SELECT column_name AS field,
                   data_type AS type,
                   is_nullable AS nullable,
                   column_default AS "default"
            FROM information_schema.columns
            WHERE table_schema = current_schema() AND table_name = %(table)s
            ORDER BY ordinal_position
            """,
            {"table": table},
        )
        return self.fetch_all()

    def table_exists(self, table: str) -> bool:
        return self._count(
            """
            SELECT COUNT(*) AS count
            FROM information_schema.tables
            WHERE table_schema = current_schema() AND table_name = %(table)s
            """,
            {"table": table},
        ) > 0

    def index_exists(self, table: str, name: str) -> bool:
        """Check for an index or a named constraint on the table."""
        return self._count(
            """
            SELECT
                (SELECT COUNT(*) FROM pg_indexes
                 WHERE schemaname = current_schema()
                   AND tablename = %(table)s AND indexname = %(name)s)
              + (SELECT COUNT(*) FROM information_schema.table_constraints
                 WHERE table_schema = current_schema()
                   AND table_name = %(table)s AND constraint_name = %(name)s)
              AS count
            """,
            {"table": table, "name": name},
        ) > 0

    def primary_key_exists(self, table: str) -> bool:
        return self._count(
            """
            SELECT COUNT(*) AS count
            FROM information_schema.table_constraints
            WHERE table_schema = current_schema()
              AND table_name = %(table)s AND constraint_type = 'PRIMARY KEY'
            """,
            {"table": table},
        ) > 0

    def _count(self, sql: str, params: dict[str, Any]) -> int:
        self.query(sql, params)
        row = self.fetch_current()
        return int(row["count"]) if row else 0
