"""
SQL fragment builders.

Pure functions that turn declarative inputs (column/value mappings, primary
key lists, soft-delete settings) into a Fragment: SQL text with %(name)s
placeholders plus the matching parameter mapping. Nothing here touches the
database.

Predicates are always joined with AND. A SELECT with no predicate omits the
WHERE clause; UPDATE and DELETE statements refuse to run without one.
"""

from collections.abc import Container, Mapping, Sequence
from datetime import datetime
from typing import Any, NamedTuple

from tablekit.errors import QueryBuildError

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
ZERO_TIMESTAMP = "0000-00-00 00:00:00"


class Fragment(NamedTuple):
    sql: str
    params: dict[str, Any]


def format_timestamp(moment: datetime | None = None) -> str:
    """Format a moment (default now) as YYYY-MM-DD HH:MM:SS."""
    return (moment or datetime.now()).strftime(TIMESTAMP_FORMAT)


def _placeholder(column: str) -> str:
    return f"%({column})s"


def _conjunction(values: Mapping[str, Any]) -> str:
    return " AND ".join(f"{column} = {_placeholder(column)}" for column in values)


def _assignments(columns: Sequence[str]) -> str:
    return ", ".join(f"{column} = {_placeholder(column)}" for column in columns)


def _require_where(where: Mapping[str, Any], statement: str) -> None:
    if not where:
        raise QueryBuildError(f"{statement} without a WHERE predicate is not allowed")


def build_select(
    table: str,
    where: Mapping[str, Any] | str | None = None,
    distinct: str | None = None,
    order_by: str = "",
    params: Mapping[str, Any] | None = None,
) -> Fragment:
    """
    Build a SELECT statement.

    Args:
        table: Table name
        where: Column/value mapping (AND-ed equality predicates) or a raw
            predicate string using %(name)s placeholders
        distinct: Select only the distinct values of this column
        order_by: Raw ORDER BY expression
        params: Parameters for a raw predicate string

    Returns:
        Fragment with the statement and its parameters
    """
    columns = f"DISTINCT {distinct}" if distinct else "*"
    sql = f"SELECT {columns} FROM {table}"
    bound: dict[str, Any] = {}

    if isinstance(where, str):
        if where.strip():
            sql += f" WHERE {where}"
            bound = dict(params or {})
    elif where:
        sql += f" WHERE {_conjunction(where)}"
        bound = dict(where)

    if order_by:
        sql += f" ORDER BY {order_by}"

    return Fragment(sql, bound)


def build_insert(
    table: str, values: Mapping[str, Any], exclude: Container[str] = ()
) -> Fragment:
    """
    Build an INSERT statement for every column in values except the excluded ones.

    Use exclude for auto-increment identity columns.
    """
    columns = [column for column in values if column not in exclude]
    if not columns:
        raise QueryBuildError(f"INSERT INTO {table} has no columns")

    placeholders = ", ".join(_placeholder(column) for column in columns)
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
    return Fragment(sql, {column: values[column] for column in columns})


def build_update(
    table: str, values: Mapping[str, Any], primary_key: Sequence[str]
) -> Fragment:
    """
    Build an UPDATE statement keyed on the primary key.

    Every non-key column is assigned; the WHERE clause uses the current
    values of the key columns.
    """
    key = _key_values(values, primary_key)
    columns = [column for column in values if column not in primary_key]
    if not columns:
        raise QueryBuildError(f"UPDATE {table} has nothing to SET")

    sql = f"UPDATE {table} SET {_assignments(columns)} WHERE {_conjunction(key)}"
    params = {column: values[column] for column in columns}
    params.update(key)
    return Fragment(sql, params)


def build_delete(table: str, where: Mapping[str, Any]) -> Fragment:
    _require_where(where, "DELETE")
    return Fragment(f"DELETE FROM {table} WHERE {_conjunction(where)}", dict(where))


def build_soft_delete(
    table: str,
    where: Mapping[str, Any],
    fields: Container[str],
    user_id: int = 0,
    message: str = "",
    now: datetime | None = None,
) -> Fragment:
    """
    Build an UPDATE that marks matching rows inactive.

    deleted, deleted_user_id and message_delete are only assigned when the
    table has those columns; message_delete also needs a non-empty message.
    """
    _require_where(where, "Soft DELETE")
    assignments = ["active = 0"]
    params: dict[str, Any] = {}

    if "deleted" in fields:
        assignments.append(f"deleted = {_placeholder('deleted')}")
        params["deleted"] = format_timestamp(now)
    if "deleted_user_id" in fields:
        assignments.append(f"deleted_user_id = {_placeholder('deleted_user_id')}")
        params["deleted_user_id"] = user_id
    if message and "message_delete" in fields:
        assignments.append(f"message_delete = {_placeholder('message_delete')}")
        params["message_delete"] = message

    params.update(where)
    sql = f"UPDATE {table} SET {', '.join(assignments)} WHERE {_conjunction(where)}"
    return Fragment(sql, params)


def build_undelete(
    table: str, where: Mapping[str, Any], fields: Container[str]
) -> Fragment:
    """Build an UPDATE that reactivates soft-deleted rows and clears the deletion stamp."""
    _require_where(where, "UNDELETE")
    assignments = ["active = 1"]
    params: dict[str, Any] = {}

    if "deleted" in fields:
        assignments.append(f"deleted = {_placeholder('deleted')}")
        params["deleted"] = ZERO_TIMESTAMP
    if "deleted_user_id" in fields:
        assignments.append(f"deleted_user_id = {_placeholder('deleted_user_id')}")
        params["deleted_user_id"] = 0

    params.update(where)
    sql = f"UPDATE {table} SET {', '.join(assignments)} WHERE {_conjunction(where)}"
    return Fragment(sql, params)


def build_exists_probe(
    table: str, values: Mapping[str, Any], primary_key: Sequence[str]
) -> Fragment:
    key = _key_values(values, primary_key)
    return Fragment(f"SELECT COUNT(*) AS count FROM {table} WHERE {_conjunction(key)}", key)


def build_truncate(table: str) -> Fragment:
    return Fragment(f"TRUNCATE TABLE {table}", {})


def build_soft_truncate(table: str) -> Fragment:
    return Fragment(f"UPDATE {table} SET active = 0", {})


def _key_values(values: Mapping[str, Any], primary_key: Sequence[str]) -> dict[str, Any]:
    if not primary_key:
        raise QueryBuildError("Primary key is empty")
    missing = [column for column in primary_key if column not in values]
    if missing:
        raise QueryBuildError(f"Missing primary key column(s): {', '.join(missing)}")
    return {column: values[column] for column in primary_key}
