"""
Default model used to hold loaded rows.

A model is an ordered mapping of column name to value. Repositories create
models through a zero-argument factory (the Model class itself by default),
populate them with defaults from the field table, then overwrite the fields
from a database row.
"""

from typing import Any

from tablekit.fields import FieldTable


class Model:
    """
    Ordered record with attribute access.

    Usage:
        user = Model()
        user.initiate(fields)
        user.update({"id": "3", "name": "Ann"})
        user.id  # 3, coerced by the field table
    """

    def __init__(self, values: dict[str, Any] | None = None):
        object.__setattr__(self, "_values", dict(values or {}))
        object.__setattr__(self, "_fields", FieldTable())

    def initiate(self, fields: FieldTable) -> "Model":
        """Populate every column that has no value yet with its default."""
        object.__setattr__(self, "_fields", fields)
        for column, default in fields.defaults().items():
            self._values.setdefault(column, default)
        return self

    def update(self, row: dict[str, Any]) -> "Model":
        """Overwrite fields from a row, coercing known columns to their type."""
        for column, value in row.items():
            if column in self._fields:
                value = self._fields[column].type.coerce(value)
            self._values[column] = value
        return self

    def has(self, name: str) -> bool:
        return name in self._values

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def keys(self):
        return self._values.keys()

    def items(self):
        return self._values.items()

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._values[name] = value

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._values[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Model):
            return self._values == other._values
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"
