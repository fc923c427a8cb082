import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any

from tablekit.bootstrap import BootstrapSpec, SchemaBootstrap
from tablekit.collection import ObjectCollection
from tablekit.config import config
from tablekit.errors import (
    ConfigurationError,
    DestructiveOperationError,
    QueryBuildError,
    UnsupportedOperationError,
)
from tablekit.fields import FieldTable
from tablekit.model import Model
from tablekit.sql import (
    Fragment,
    build_delete,
    build_exists_probe,
    build_insert,
    build_select,
    build_soft_delete,
    build_soft_truncate,
    build_truncate,
    build_undelete,
    build_update,
    format_timestamp,
)

logger = logging.getLogger(__name__)


class Repository:
    """
    Active-record style data access for one table.

    Loads rows into an ordered collection of models, saves models back by
    deciding between INSERT and UPDATE, and deletes rows either physically
    or, with soft_delete, by marking them inactive.

    Usage:
        users = Repository(database, "users", primary_key=["id"])
        users.load_by_where({"name": "Ann"})
        for user in users:
            user.name = user.name.upper()
        users.save_all()
    """

    def __init__(
        self,
        database,
        table: str,
        primary_key: Sequence[str] | str = ("id",),
        model: Callable[[], Any] = Model,
        soft_delete: bool = False,
        identity_column: str | None = "id",
        autoload: bool | None = None,
        bootstrap: Any = None,
        user_id: Callable[[], int | None] | None = None,
        fields: Mapping | None = None,
    ):
        """
        Args:
            database: Database collaborator the statements run against
            table: Table name
            primary_key: Ordered primary key column(s)
            model: Zero-argument factory producing empty models
            soft_delete: Delete by setting active = 0 instead of removing rows
            identity_column: Auto-increment column left out of INSERTs when
                empty and filled from the database afterwards; None disables
            autoload: Read the field table from the schema, defaults to
                config.autoload_fields. Ignored when fields is given.
            bootstrap: Bootstrap specification for the table, see tablekit.bootstrap
            user_id: Returns the acting user id for audit columns, 0 when absent
            fields: Explicit field table, {column: {"value": ..., "type": ...}}
        """
        self.database = database
        self.table = table
        self.primary_key = self._validate_primary_key(primary_key)
        self.model = model
        self.soft_delete = soft_delete
        self.identity_column = identity_column
        self._user_id = user_id
        self.fields = FieldTable.from_dict(fields) if fields is not None else FieldTable()
        self.collection = ObjectCollection(self.primary_key)

        self._prepare_table(bootstrap)
        if fields is None and (config.autoload_fields if autoload is None else autoload):
            self.load_table_information()

    @staticmethod
    def _validate_primary_key(primary_key: Sequence[str] | str) -> tuple[str, ...]:
        if isinstance(primary_key, str):
            primary_key = (primary_key,)
        columns = tuple(primary_key or ())
        if not columns or not all(isinstance(c, str) and c for c in columns):
            raise ConfigurationError(f"Invalid primary key: {primary_key!r}")
        if len(set(columns)) != len(columns):
            raise ConfigurationError(f"Duplicate column in primary key: {primary_key!r}")
        return columns

    def _prepare_table(self, bootstrap: Any) -> None:
        SchemaBootstrap(self.database, self.table).run(BootstrapSpec.parse(bootstrap))

    def load_table_information(self) -> None:
        """Build the field table from the table's schema description."""
        self.fields = FieldTable.from_rows(self.database.describe(self.table))

    def set_fields(self, fields: Mapping) -> None:
        self.fields = FieldTable.from_dict(fields)

    def get_fields(self) -> FieldTable:
        return self.fields

    # =========================================================================
    # Loading
    # =========================================================================

    def load_all(self, order_by: str = "") -> None:
        self._load(build_select(self.table, order_by=order_by))

    def load_all_active(self, order_by: str = "") -> None:
        self._load(build_select(self.table, {"active": 1}, order_by=order_by))

    def load_all_inactive(self, order_by: str = "") -> None:
        self._load(build_select(self.table, {"active": 0}, order_by=order_by))

    def load_by_id(self, id: int, order_by: str = "") -> None:
        self._load(build_select(self.table, {"id": id}, order_by=order_by))

    def load_by_primary_key(self, values: Mapping[str, Any], order_by: str = "") -> None:
        self._load(build_select(self.table, self._key_of(values), order_by=order_by))

    def load_by_where(
        self,
        where: Mapping[str, Any] | str,
        order_by: str = "",
        params: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Load rows matching a column/value mapping (AND-ed) or a raw predicate.

        An empty mapping loads every row.
        """
        self._load(build_select(self.table, where, order_by=order_by, params=params))

    def load_by_query(self, sql: str, params: Mapping[str, Any] | None = None) -> None:
        self._load(Fragment(sql, dict(params or {})))

    def load_distinct(
        self,
        column: str,
        where: Mapping[str, Any] | str | None = None,
        order_by: str = "",
        params: Mapping[str, Any] | None = None,
    ) -> None:
        """Load one model per distinct value of column; only that column is populated."""
        self._load(
            build_select(self.table, where, distinct=column, order_by=order_by, params=params)
        )

    def new(self) -> Any:
        """Append a model filled with defaults and move the cursor onto it."""
        obj = self._create_model()
        self.collection.insert(obj)
        self.collection.position = len(self.collection) - 1
        return obj

    def _load(self, fragment: Fragment) -> None:
        self.database.query(fragment.sql, fragment.params)
        rows = self.database.fetch_all()
        logger.debug("Loaded %d row(s) from %s", len(rows), self.table)
        for row in rows:
            self.collection.insert(self._create_model(row))

    def _create_model(self, row: Mapping[str, Any] | None = None) -> Any:
        obj = self.model()
        obj.initiate(self.fields)
        if row is not None:
            obj.update(row)
        return obj

    # =========================================================================
    # Direct Reads
    # =========================================================================

    def get_by_query(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict]:
        """Run a query and return its raw rows without touching the collection."""
        self.database.query(sql, dict(params or {}))
        return self.database.fetch_all()

    def get_row_by_query(self, sql: str, params: Mapping[str, Any] | None = None) -> dict | None:
        self.database.query(sql, dict(params or {}))
        return self.database.fetch_current()

    def get_object_by_id(self, id: int) -> Any | None:
        """Fetch one model by id from the database, or None if there is no such row."""
        fragment = build_select(self.table, {"id": id})
        row = self.get_row_by_query(fragment.sql, fragment.params)
        return self._create_model(row) if row is not None else None

    # =========================================================================
    # Persistence
    # =========================================================================

    def save(self, obj: Any) -> None:
        """
        Insert or update one model inside a transaction.

        An existence probe on the primary key decides between INSERT and
        UPDATE. On error the transaction is rolled back and the error
        propagates.
        """
        with self.database.transaction():
            self._reconcile(obj)

    def save_all(self) -> None:
        """
        Insert or update every loaded model in one transaction.

        Stops at the first failure and rolls the whole batch back.
        """
        with self.database.transaction():
            for obj in self.collection.all():
                self._reconcile(obj)

    def _reconcile(self, obj: Any) -> None:
        probe = build_exists_probe(self.table, dict(obj.items()), self.primary_key)
        self.database.query(probe.sql, probe.params)
        row = self.database.fetch_current()
        exists = row is not None and int(row["count"]) > 0

        if exists:
            self._stamp(obj, "modified", "modified_user_id")
            fragment = build_update(self.table, dict(obj.items()), self.primary_key)
            self.database.execute(fragment.sql, fragment.params)
            logger.debug("Updated %s row %s", self.table, self._key_of(obj))
            return

        self._stamp(obj, "created", "created_user_id")
        assign_identity = self._is_empty_identity(obj)
        exclude = [
            column for column in self.fields.server_defaults() if obj.get(column) is None
        ]
        if assign_identity:
            exclude.append(self.identity_column)
        fragment = build_insert(self.table, dict(obj.items()), exclude=exclude)
        self.database.execute(fragment.sql, fragment.params)
        if assign_identity:
            obj[self.identity_column] = self.database.last_insert_id()
        logger.debug("Inserted %s row %s", self.table, self._key_of(obj))

    def _is_empty_identity(self, obj: Any) -> bool:
        if self.identity_column is None or self.identity_column not in obj:
            return False
        return obj[self.identity_column] in (None, 0, "")

    def _stamp(self, obj: Any, timestamp_column: str, user_column: str) -> None:
        if timestamp_column in obj:
            obj[timestamp_column] = format_timestamp()
        if user_column in obj:
            obj[user_column] = self.current_user_id()

    def current_user_id(self) -> int:
        if self._user_id is None:
            return 0
        return self._user_id() or 0

    # =========================================================================
    # Deletion
    # =========================================================================

    def delete_by_id(self, id: int, message: str = "") -> None:
        self._delete({"id": id}, message)

    def undelete_by_id(self, id: int) -> None:
        self._undelete({"id": id})

    def delete_by_primary_key(self, values: Mapping[str, Any], message: str = "") -> None:
        self._delete(self._key_of(values), message)

    def undelete_by_primary_key(self, values: Mapping[str, Any]) -> None:
        self._undelete(self._key_of(values))

    def delete_by_query(self, sql: str, params: Mapping[str, Any] | None = None) -> None:
        self.database.execute(sql, dict(params or {}))

    def truncate(self, are_you_sure: bool = False, overrule_soft_delete: bool = False) -> None:
        """
        Remove every row of the table.

        With soft_delete every row is marked inactive instead, unless
        overrule_soft_delete is set.
        """
        if not are_you_sure:
            raise DestructiveOperationError(
                f"Truncating {self.table} requires are_you_sure=True"
            )
        if self.soft_delete and not overrule_soft_delete:
            fragment = build_soft_truncate(self.table)
        else:
            fragment = build_truncate(self.table)
        logger.info("Truncating %s: %s", self.table, fragment.sql)
        self.database.execute(fragment.sql, fragment.params)

    def _delete(self, where: dict[str, Any], message: str) -> None:
        if self.soft_delete:
            fragment = build_soft_delete(
                self.table, where, self.fields, user_id=self.current_user_id(), message=message
            )
        else:
            fragment = build_delete(self.table, where)
        self.database.execute(fragment.sql, fragment.params)

    def _undelete(self, where: dict[str, Any]) -> None:
        if not self.soft_delete:
            raise UnsupportedOperationError(f"{self.table} does not use soft delete")
        fragment = build_undelete(self.table, where, self.fields)
        self.database.execute(fragment.sql, fragment.params)

    def _key_of(self, values: Any) -> dict[str, Any]:
        missing = [column for column in self.primary_key if column not in values]
        if missing:
            raise QueryBuildError(f"Missing primary key column(s): {', '.join(missing)}")
        return {column: values[column] for column in self.primary_key}

    # =========================================================================
    # Loaded Objects
    # =========================================================================

    def insert(self, obj: Any) -> None:
        self.collection.insert(obj)

    def delete(self, obj: Any) -> bool:
        return self.collection.delete(obj)

    def update(self, obj: Any) -> bool:
        return self.collection.update(obj)

    def update_current(self, values: Mapping[str, Any]) -> None:
        self.collection.update_current(values)

    def current(self) -> Any:
        return self.collection.current()

    def next(self) -> None:
        self.collection.next()

    def key(self) -> int:
        return self.collection.key()

    def valid(self) -> bool:
        return self.collection.valid()

    def rewind(self) -> None:
        self.collection.rewind()

    def reset(self) -> None:
        self.collection.reset()

    def count(self) -> int:
        return self.collection.count()

    def is_empty(self) -> bool:
        return self.collection.is_empty()

    def find(self, criteria: Mapping[str, Any]) -> list[Any]:
        return self.collection.find(criteria)

    def find_first(self, criteria: Mapping[str, Any]) -> Any | None:
        return self.collection.find_first(criteria)

    def get(self, id: Any) -> Any | None:
        return self.collection.get(id)

    def get_list_of_field(self, name: str) -> list[Any]:
        return self.collection.get_list_of_field(name)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.collection)

    def __len__(self) -> int:
        return len(self.collection)
