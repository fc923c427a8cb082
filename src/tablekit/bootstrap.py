"""
Idempotent schema bootstrap.

Creates a repository's table, its indexes and its seed rows the first time
the repository is used. Several processes may start at the same time against
the same database, so every step checks for existence first and treats
"already exists" / "duplicate" errors from the losing process as success.

A bootstrap specification takes one of two forms:

    # structured
    {
        "table": "CREATE TABLE settings (setting VARCHAR(64) NOT NULL, value TEXT)",
        "indexes": ["ALTER TABLE settings ADD PRIMARY KEY (setting)"],
        "seed": ["INSERT INTO settings VALUES ('theme', 'dark') ON CONFLICT DO NOTHING"],
    }

    # legacy flat list, only run when the table is missing
    ["CREATE TABLE settings (...)", "INSERT INTO settings ..."]
"""

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tablekit.errors import ConfigurationError, is_duplicate_error

logger = logging.getLogger(__name__)

PRIMARY = "PRIMARY"

_CREATE_TABLE = re.compile(
    r"^(\s*CREATE\s+(?:TEMPORARY\s+|TEMP\s+|UNLOGGED\s+)?TABLE\s+)(?!\s*IF\s+NOT\s+EXISTS\b)",
    re.IGNORECASE,
)
_IDENTIFIER = r"([`\"]?)(\w+)[`\"]?"
_INDEX_PATTERNS = [
    re.compile(rf"\bCONSTRAINT\s+{_IDENTIFIER}\s+UNIQUE\b", re.IGNORECASE),
    re.compile(rf"\bUNIQUE\s+(?:KEY|INDEX)\s+(?:IF\s+NOT\s+EXISTS\s+)?{_IDENTIFIER}", re.IGNORECASE),
    re.compile(
        rf"\bCREATE\s+(?:UNIQUE\s+)?INDEX\s+(?:CONCURRENTLY\s+)?(?:IF\s+NOT\s+EXISTS\s+)?{_IDENTIFIER}",
        re.IGNORECASE,
    ),
    re.compile(rf"\bADD\s+(?:INDEX|KEY)\s+{_IDENTIFIER}", re.IGNORECASE),
    re.compile(rf"\bCONSTRAINT\s+{_IDENTIFIER}", re.IGNORECASE),
]
_PRIMARY_KEY = re.compile(r"\bPRIMARY\s+KEY\b", re.IGNORECASE)


@dataclass(frozen=True)
class BootstrapSpec:
    create_table: str = ""
    indexes: tuple[str, ...] = ()
    seed: tuple[str, ...] = ()
    statements: tuple[str, ...] = ()
    legacy: bool = False

    @classmethod
    def parse(cls, value: Any) -> "BootstrapSpec | None":
        """
        Normalize a bootstrap specification.

        Accepts None, a BootstrapSpec, a flat list of statements (legacy form)
        or a mapping with "table", "indexes" and "seed" keys.
        """
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, (list, tuple)):
            return cls(statements=tuple(value), legacy=True)
        if isinstance(value, Mapping):
            create_table = value.get("table")
            if not isinstance(create_table, str) or not create_table.strip():
                raise ConfigurationError("Bootstrap specification needs a 'table' statement")
            return cls(
                create_table=create_table,
                indexes=tuple(value.get("indexes") or ()),
                seed=tuple(value.get("seed") or ()),
            )
        raise ConfigurationError(f"Unsupported bootstrap specification: {type(value).__name__}")


def load_bootstrap_file(path: str | Path) -> BootstrapSpec | None:
    """Read a bootstrap specification from a JSON file."""
    with open(path) as f:
        return BootstrapSpec.parse(json.load(f))


def ensure_if_not_exists(sql: str) -> str:
    """Rewrite CREATE TABLE as CREATE TABLE IF NOT EXISTS when it is not already."""
    return _CREATE_TABLE.sub(r"\1IF NOT EXISTS ", sql, count=1)


def extract_index_name(sql: str) -> str | None:
    """
    Find the name of the index a statement creates.

    Returns PRIMARY for primary keys, the index or constraint name when one
    is given, or None when the statement does not name its index.
    Unquoted names are folded to lower case the way PostgreSQL folds them.
    """
    if _PRIMARY_KEY.search(sql):
        return PRIMARY
    for pattern in _INDEX_PATTERNS:
        match = pattern.search(sql)
        if match and match.group(2).upper() != "ON":
            quoted, name = match.groups()
            return name if quoted else name.lower()
    return None


class SchemaBootstrap:
    """
    Runs a bootstrap specification for one table.

    Usage:
        SchemaBootstrap(database, "settings").run(BootstrapSpec.parse(spec))
    """

    def __init__(self, database, table: str):
        self.database = database
        self.table = table

    def run(self, spec: BootstrapSpec | None) -> None:
        if spec is None:
            if not self.database.table_exists(self.table):
                raise ConfigurationError(
                    f"Table {self.table} does not exist and no bootstrap specification was given"
                )
            return

        if spec.legacy:
            self._run_legacy(spec)
        else:
            self._run_structured(spec)

    def _run_legacy(self, spec: BootstrapSpec) -> None:
        if self.database.table_exists(self.table):
            logger.debug("Table %s exists, skipping bootstrap", self.table)
            return
        for statement in spec.statements:
            self._execute(statement)

    def _run_structured(self, spec: BootstrapSpec) -> None:
        if self.database.table_exists(self.table):
            logger.debug("Table %s exists, skipping CREATE", self.table)
        else:
            self._execute(ensure_if_not_exists(spec.create_table))

        for statement in spec.indexes:
            name = extract_index_name(statement)
            if name is not None and self._index_exists(name):
                logger.debug("Index %s on %s exists, skipping", name, self.table)
                continue
            self._execute(statement)

        for statement in spec.seed:
            self._execute(statement)

    def _index_exists(self, name: str) -> bool:
        if name == PRIMARY:
            return self.database.primary_key_exists(self.table)
        return self.database.index_exists(self.table, name)

    def _execute(self, statement: str) -> bool:
        """Execute a statement, treating duplicate-class errors as success."""
        try:
            self.database.execute(statement)
        except Exception as exc:
            if not is_duplicate_error(exc):
                raise
            logger.warning("Bootstrap of %s: ignoring duplicate error: %s", self.table, exc)
            return False
        logger.info("Bootstrap of %s: %s", self.table, statement)
        return True
