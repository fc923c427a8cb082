"""
Ordered collection of loaded models with a forward-only cursor.
"""

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

import pandas as pd

_MISSING = object()


def _value(obj: Any, name: str) -> Any:
    return obj[name] if name in obj else _MISSING


class ObjectCollection:
    """
    Insertion-ordered sequence of models addressed by a zero-based cursor.

    The cursor is either on a valid index or one past the last element.
    Primary-key matching compares key columns one by one.
    """

    def __init__(self, primary_key: Sequence[str] = ("id",)):
        self.primary_key = tuple(primary_key)
        self._objects: list[Any] = []
        self.position = 0

    # Cursor

    def current(self) -> Any:
        """Return the object under the cursor, or None when exhausted."""
        if not self.valid():
            return None
        return self._objects[self.position]

    def key(self) -> int:
        return self.position

    def next(self) -> None:
        if self.position < len(self._objects):
            self.position += 1

    def valid(self) -> bool:
        return 0 <= self.position < len(self._objects)

    def rewind(self) -> None:
        self.position = 0

    def reset(self) -> None:
        """Drop every object and move the cursor back to 0."""
        self._objects = []
        self.position = 0

    def __iter__(self) -> Iterator[Any]:
        self.rewind()
        while self.valid():
            yield self.current()
            self.next()

    def __len__(self) -> int:
        return len(self._objects)

    def count(self) -> int:
        return len(self._objects)

    def all(self) -> list[Any]:
        """Snapshot of the objects in order, without moving the cursor."""
        return list(self._objects)

    def is_empty(self) -> bool:
        return not self._objects

    # Mutation

    def insert(self, obj: Any) -> None:
        """Append an object at the end of the collection."""
        self._objects.append(obj)

    def delete(self, obj: Any) -> bool:
        """Remove the first object with the same primary key. Returns whether one was removed."""
        index = self._index_of(obj)
        if index is None:
            return False
        del self._objects[index]
        self.position = min(self.position, len(self._objects))
        return True

    def update(self, obj: Any) -> bool:
        """Replace the first object with the same primary key. Returns whether one was found."""
        index = self._index_of(obj)
        if index is None:
            return False
        self._objects[index] = obj
        return True

    def update_current(self, values: Mapping[str, Any]) -> None:
        """Copy values onto the object under the cursor."""
        current = self.current()
        if current is None:
            raise IndexError("Cursor is not positioned on an object")
        for name, value in values.items():
            current[name] = value

    # Search

    def find(self, criteria: Mapping[str, Any]) -> list[Any]:
        """Return all objects matching every criteria entry."""
        return [
            obj
            for obj in self._objects
            if all(_value(obj, name) == value for name, value in criteria.items())
        ]

    def find_first(self, criteria: Mapping[str, Any]) -> Any | None:
        for obj in self._objects:
            if all(_value(obj, name) == value for name, value in criteria.items()):
                return obj
        return None

    def get(self, id: Any) -> Any | None:
        """Return the first object whose id equals the given value."""
        for obj in self._objects:
            if _value(obj, "id") == id:
                return obj
        return None

    def get_list_of_field(self, name: str) -> list[Any]:
        """Project one field across all objects, skipping objects without it."""
        return [obj[name] for obj in self._objects if name in obj]

    def to_dataframe(self) -> pd.DataFrame:
        """Return the loaded objects as a pandas DataFrame, one row per object."""
        return pd.DataFrame([dict(obj.items()) for obj in self._objects])

    def _index_of(self, obj: Any) -> int | None:
        key = [_value(obj, column) for column in self.primary_key]
        if _MISSING in key:
            return None
        for index, candidate in enumerate(self._objects):
            if [_value(candidate, column) for column in self.primary_key] == key:
                return index
        return None
