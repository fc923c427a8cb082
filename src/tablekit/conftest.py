# src/tablekit/conftest.py
"""
Pytest configuration and shared fixtures.

Tests are co-located with implementation files using the *_test.py suffix.
This file provides a FakeDatabase collaborator that records every statement
and simulates just enough DDL to exercise the bootstrap logic.
"""

import os

# Set environment BEFORE importing any app modules
os.environ["TABLEKIT_ENV"] = "test"

import re
from contextlib import contextmanager

import pytest

_CREATE_TABLE = re.compile(r"^\s*CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(\w+)", re.IGNORECASE)
_CREATE_INDEX = re.compile(
    r"^\s*CREATE\s+(?:UNIQUE\s+)?INDEX\s+(?:IF\s+NOT\s+EXISTS\s+)?(\w+)\s+ON\s+(\w+)", re.IGNORECASE
)
_ADD_CONSTRAINT = re.compile(r"^\s*ALTER\s+TABLE\s+(\w+)\s+ADD\s+CONSTRAINT\s+(\w+)", re.IGNORECASE)
_ADD_PRIMARY_KEY = re.compile(r"^\s*ALTER\s+TABLE\s+(\w+)\s+ADD\s+PRIMARY\s+KEY", re.IGNORECASE)


# =============================================================================
# Fake Database
# =============================================================================


class FakeDatabase:
    """
    In-memory stand-in for tablekit.db.Database.

    - statements: every (sql, params) passed to execute() or query()
    - respond(): queue the rows returned by the next query() calls
    - fail_on(): raise an exception for statements containing a marker
    - report_absent: schema checks always say "missing", as seen by two
      processes racing through bootstrap
    """

    def __init__(self, columns=None, tables=(), last_id=42, report_absent=False):
        self.columns = dict(columns or {})
        self.tables = set(tables) | set(self.columns)
        self.indexes: set[tuple[str, str]] = set()
        self.primary_keys: set[str] = set()
        self.created: list[str] = []
        self.statements: list[tuple[str, dict]] = []
        self.transactions: list[str] = []
        self.last_id = last_id
        self.report_absent = report_absent
        self._responses: list[list[dict]] = []
        self._failures: list[tuple[str, Exception]] = []
        self._rows: list[dict] = []
        self._in_transaction = False

    def respond(self, *row_lists):
        self._responses.extend(list(rows) for rows in row_lists)

    def fail_on(self, marker: str, exc: Exception):
        self._failures.append((marker, exc))

    @property
    def executed(self) -> list[str]:
        return [sql for sql, _ in self.statements]

    def kinds(self) -> list[str]:
        return [sql.split()[0].upper() for sql in self.executed]

    # Statements

    def execute(self, sql, params=None):
        self._record(sql, params)
        self._apply_ddl(sql)
        return 1

    def query(self, sql, params=None):
        self._record(sql, params)
        self._rows = self._responses.pop(0) if self._responses else []

    def fetch_all(self):
        rows, self._rows = self._rows, []
        return rows

    def fetch_current(self):
        return self._rows.pop(0) if self._rows else None

    def row_count(self):
        return len(self._rows)

    def last_insert_id(self):
        return self.last_id

    def _record(self, sql, params):
        self.statements.append((sql, dict(params or {})))
        for marker, exc in self._failures:
            if marker in sql:
                raise exc

    def _apply_ddl(self, sql):
        match = _CREATE_TABLE.match(sql)
        if match:
            self._create(match.group(1), self.tables, match.group(1))
            return
        match = _CREATE_INDEX.match(sql)
        if match:
            name, table = match.groups()
            self._create(name, self.indexes, (table, name))
            return
        match = _ADD_CONSTRAINT.match(sql)
        if match:
            table, name = match.groups()
            self._create(name, self.indexes, (table, name))
            return
        match = _ADD_PRIMARY_KEY.match(sql)
        if match:
            self._create(f"{match.group(1)}_pkey", self.primary_keys, match.group(1))

    def _create(self, name, registry, entry):
        if entry in registry:
            raise RuntimeError(f'relation "{name}" already exists')
        registry.add(entry)
        self.created.append(name)

    # Transactions

    @property
    def in_transaction(self):
        return self._in_transaction

    def begin_transaction(self):
        self.transactions.append("BEGIN")
        self._in_transaction = True

    def commit(self):
        self.transactions.append("COMMIT")
        self._in_transaction = False

    def rollback(self):
        self.transactions.append("ROLLBACK")
        self._in_transaction = False

    @contextmanager
    def transaction(self):
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

    # Schema metadata

    def describe(self, table):
        return list(self.columns.get(table, []))

    def table_exists(self, table):
        return not self.report_absent and table in self.tables

    def index_exists(self, table, name):
        return not self.report_absent and (table, name) in self.indexes

    def primary_key_exists(self, table):
        return not self.report_absent and table in self.primary_keys


# =============================================================================
# Schema Fixtures
# =============================================================================

USERS_COLUMNS = [
    {"field": "id", "type": "integer", "nullable": "NO", "default": "nextval('users_id_seq'::regclass)"},
    {"field": "name", "type": "character varying", "nullable": "NO", "default": None},
    {"field": "active", "type": "smallint", "nullable": "NO", "default": "1"},
]

AUDITED_COLUMNS = [
    {"field": "id", "type": "integer", "nullable": "NO", "default": "nextval('notes_id_seq'::regclass)"},
    {"field": "body", "type": "text", "nullable": "NO", "default": "''::text"},
    {"field": "active", "type": "smallint", "nullable": "NO", "default": "1"},
    {"field": "created", "type": "timestamp without time zone", "nullable": "YES", "default": None},
    {"field": "created_user_id", "type": "integer", "nullable": "NO", "default": "0"},
    {"field": "modified", "type": "timestamp without time zone", "nullable": "YES", "default": None},
    {"field": "modified_user_id", "type": "integer", "nullable": "NO", "default": "0"},
    {"field": "deleted", "type": "timestamp without time zone", "nullable": "YES", "default": None},
    {"field": "deleted_user_id", "type": "integer", "nullable": "NO", "default": "0"},
    {"field": "message_delete", "type": "text", "nullable": "YES", "default": None},
]

SETTINGS_COLUMNS = [
    {"field": "setting", "type": "character varying", "nullable": "NO", "default": None},
    {"field": "value", "type": "text", "nullable": "NO", "default": "''::text"},
]


@pytest.fixture
def database():
    """A FakeDatabase that already has the users, notes and settings tables."""
    return FakeDatabase(
        columns={
            "users": USERS_COLUMNS,
            "notes": AUDITED_COLUMNS,
            "settings": SETTINGS_COLUMNS,
        }
    )


# =============================================================================
# Repository Fixtures
# =============================================================================


@pytest.fixture
def users_repo(database):
    """Repository for the users table with its field table loaded from the schema."""
    from tablekit.repository import Repository

    return Repository(database, "users", primary_key=["id"], autoload=True)


@pytest.fixture
def notes_repo(database):
    """Soft-deleting repository for the notes table with audit columns, acting as user 7."""
    from tablekit.repository import Repository

    return Repository(
        database,
        "notes",
        primary_key=["id"],
        soft_delete=True,
        autoload=True,
        user_id=lambda: 7,
    )
