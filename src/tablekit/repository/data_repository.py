from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from tablekit.errors import UnsupportedOperationError
from tablekit.model import Model
from tablekit.repository.repository import Repository


class DataRepository(Repository):
    """
    In-memory repository fed with rows supplied by the caller.

    It shares the collection and cursor behaviour of Repository but never
    talks to a database: every load-by-*, save, delete-by-* and query
    method raises UnsupportedOperationError.

    Usage:
        repo = DataRepository(fields={"id": {"value": 0, "type": "integer"}})
        repo.set_data([{"id": 1}, {"id": 2}])
        repo.load()
    """

    def __init__(
        self,
        primary_key: Sequence[str] | str = ("id",),
        model: Callable[[], Any] = Model,
        fields: Mapping | None = None,
        data: Iterable[Mapping[str, Any]] | None = None,
    ):
        super().__init__(
            database=None,
            table="",
            primary_key=primary_key,
            model=model,
            autoload=False,
            fields=fields or {},
        )
        self._data: list[Mapping[str, Any]] = list(data or [])

    def _prepare_table(self, bootstrap: Any) -> None:
        pass

    def set_data(self, data: Iterable[Mapping[str, Any]]) -> None:
        self._data = list(data)

    def load(self) -> None:
        """Materialize a model for every row given to set_data()."""
        for row in self._data:
            self.collection.insert(self._create_model(row))

    def load_table_information(self) -> None:
        raise UnsupportedOperationError("Table information cannot be loaded in this repository")

    def load_all(self, order_by: str = "") -> None:
        raise UnsupportedOperationError("Objects cannot be loaded like this in this repository")

    def load_all_active(self, order_by: str = "") -> None:
        raise UnsupportedOperationError("Objects cannot be loaded like this in this repository")

    def load_all_inactive(self, order_by: str = "") -> None:
        raise UnsupportedOperationError("Objects cannot be loaded like this in this repository")

    def load_by_id(self, id: int, order_by: str = "") -> None:
        raise UnsupportedOperationError("Objects cannot be loaded like this in this repository")

    def load_by_primary_key(self, values: Mapping[str, Any], order_by: str = "") -> None:
        raise UnsupportedOperationError("Objects cannot be loaded like this in this repository")

    def load_by_where(self, where, order_by: str = "", params=None) -> None:
        raise UnsupportedOperationError("Objects cannot be loaded like this in this repository")

    def load_by_query(self, sql: str, params=None) -> None:
        raise UnsupportedOperationError("Objects cannot be loaded like this in this repository")

    def load_distinct(self, column: str, where=None, order_by: str = "", params=None) -> None:
        raise UnsupportedOperationError("Objects cannot be loaded like this in this repository")

    def get_by_query(self, sql: str, params=None) -> list[dict]:
        raise UnsupportedOperationError("Objects cannot be retrieved in this repository")

    def get_row_by_query(self, sql: str, params=None) -> dict | None:
        raise UnsupportedOperationError("Objects cannot be retrieved in this repository")

    def get_object_by_id(self, id: int) -> Any | None:
        raise UnsupportedOperationError("Objects cannot be retrieved in this repository")

    def save(self, obj: Any) -> None:
        raise UnsupportedOperationError("Objects cannot be saved in this repository")

    def save_all(self) -> None:
        raise UnsupportedOperationError("Objects cannot be saved in this repository")

    def delete_by_id(self, id: int, message: str = "") -> None:
        raise UnsupportedOperationError("Objects cannot be deleted in this repository")

    def undelete_by_id(self, id: int) -> None:
        raise UnsupportedOperationError("Objects cannot be undeleted in this repository")

    def delete_by_primary_key(self, values: Mapping[str, Any], message: str = "") -> None:
        raise UnsupportedOperationError("Objects cannot be deleted in this repository")

    def undelete_by_primary_key(self, values: Mapping[str, Any]) -> None:
        raise UnsupportedOperationError("Objects cannot be undeleted in this repository")

    def delete_by_query(self, sql: str, params=None) -> None:
        raise UnsupportedOperationError("Objects cannot be deleted in this repository")

    def truncate(self, are_you_sure: bool = False, overrule_soft_delete: bool = False) -> None:
        raise UnsupportedOperationError("Table cannot be truncated in this repository")
