"""
Exception types raised by tablekit.

Lookups never raise for a missing record; they return None. Driver errors
from psycopg propagate unchanged.
"""

from psycopg import errors as pg_errors

_DUPLICATE_ERRORS = (
    pg_errors.DuplicateTable,
    pg_errors.DuplicateObject,
    pg_errors.DuplicateColumn,
    pg_errors.UniqueViolation,
)

_DUPLICATE_MARKERS = ("already exists", "duplicate")


class TablekitError(Exception):
    """Base class for all tablekit errors."""


class ConfigurationError(TablekitError):
    """A repository was constructed with an unusable configuration."""


class UnsupportedOperationError(TablekitError):
    """The operation is disabled in this repository variant."""


class QueryBuildError(TablekitError):
    """A statement would have been generated with an empty WHERE or SET clause."""


class DestructiveOperationError(TablekitError):
    """A destructive operation was called without explicit confirmation."""


def is_duplicate_error(exc: BaseException) -> bool:
    """
    Check whether an error means the object being created is already there.

    Covers the psycopg duplicate classes and, for other drivers, any message
    mentioning "already exists" or "duplicate".
    """
    if isinstance(exc, _DUPLICATE_ERRORS):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _DUPLICATE_MARKERS)
