"""
Field descriptor table.

Maps each column of a table to its default value and semantic type. The
table is built once, either by introspecting the database schema or from an
explicit mapping, and is read-only afterwards.
"""

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

_INTEGER_TYPES = re.compile(r"\b(tiny|small|medium|big)?int(eger)?\b|\b(small|big)?serial\b")
_DOUBLE_TYPES = re.compile(r"\bdouble\b")
_FLOAT_TYPES = re.compile(r"\b(float|real|decimal|numeric)\b")
_QUOTED_DEFAULT = re.compile(r"^'(?P<value>.*)'(::[\w\s\[\]]+)?$", re.DOTALL)
_CAST_DEFAULT = re.compile(r"^\(?(?P<value>[^()']*?)\)?::[\w\s\[\]]+$")
_EXPRESSION_DEFAULT = re.compile(
    r"^(\w+\s*\(|(CURRENT_(DATE|TIME|TIMESTAMP|USER)|LOCALTIME|LOCALTIMESTAMP|SESSION_USER)\b)",
    re.IGNORECASE,
)


class FieldType(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    DOUBLE = "double"
    STRING = "string"

    @property
    def zero(self) -> Any:
        if self is FieldType.INTEGER:
            return 0
        if self in (FieldType.FLOAT, FieldType.DOUBLE):
            return 0.0
        return ""

    def coerce(self, value: Any) -> Any:
        """Convert a raw value to this type. None and unparseable values pass through."""
        if value is None:
            return None
        try:
            if self is FieldType.INTEGER and not isinstance(value, bool):
                return int(value)
            if self in (FieldType.FLOAT, FieldType.DOUBLE):
                return float(value)
        except (TypeError, ValueError):
            return value
        return value


@dataclass(frozen=True)
class FieldDescriptor:
    column: str
    default: Any
    type: FieldType
    server_default: bool = False


def infer_field_type(native: str) -> FieldType:
    """
    Derive the semantic type from a native column type string.

    Int-family types map to INTEGER, double to DOUBLE, float/real/decimal/numeric
    to FLOAT. Everything else (dates, times, text, char, blob, ...) is STRING.
    """
    native = (native or "").lower()
    if _INTEGER_TYPES.search(native):
        return FieldType.INTEGER
    if _DOUBLE_TYPES.search(native):
        return FieldType.DOUBLE
    if _FLOAT_TYPES.search(native):
        return FieldType.FLOAT
    return FieldType.STRING


def default_for(field_type: FieldType, nullable: bool, native_default: Any) -> Any:
    """
    Compute the default value of a column.

    Nullable columns default to None. Otherwise the native default is used,
    with casts and quotes stripped; sequence defaults and missing defaults
    fall back to the type's zero value. Other expression defaults such as
    now() or CURRENT_TIMESTAMP are computed by the server, so the column
    defaults to None and is left out of INSERTs while it stays None.
    """
    if nullable:
        return None
    if native_default is None or native_default == "":
        return field_type.zero
    if not isinstance(native_default, str):
        return field_type.coerce(native_default)

    raw = native_default.strip()
    if raw.lower().startswith("nextval("):
        return field_type.zero
    if is_expression_default(raw):
        return None

    quoted = _QUOTED_DEFAULT.match(raw)
    if quoted:
        value = quoted.group("value").replace("''", "'")
    else:
        cast = _CAST_DEFAULT.match(raw)
        value = cast.group("value").strip() if cast else raw
    return field_type.coerce(value)


def is_expression_default(native_default: Any) -> bool:
    """
    True for defaults evaluated by the server, e.g. now() or CURRENT_TIMESTAMP.

    Sequence defaults are not included; they belong to the identity column.
    """
    if not isinstance(native_default, str):
        return False
    raw = native_default.strip()
    return not raw.lower().startswith("nextval(") and bool(_EXPRESSION_DEFAULT.match(raw))


class FieldTable(Mapping):
    """
    Ordered, read-only mapping of column name to FieldDescriptor.

    Usage:
        fields = FieldTable.from_dict({"id": {"value": 0, "type": "integer"}})
        fields.has("id")  # True
        fields.defaults()  # {"id": 0}
    """

    def __init__(self, descriptors: list[FieldDescriptor] | None = None):
        self._descriptors: dict[str, FieldDescriptor] = {}
        for descriptor in descriptors or []:
            if descriptor.column in self._descriptors:
                raise ValueError(f"Duplicate column {descriptor.column}")
            self._descriptors[descriptor.column] = descriptor

    @classmethod
    def from_rows(cls, rows: list[dict]) -> "FieldTable":
        """
        Build from schema description rows (keys field, type, nullable, default).
        """
        descriptors = []
        for row in rows:
            field_type = infer_field_type(row["type"])
            nullable = str(row.get("nullable", "NO")).upper() == "YES"
            descriptors.append(
                FieldDescriptor(
                    column=row["field"],
                    default=default_for(field_type, nullable, row.get("default")),
                    type=field_type,
                    server_default=is_expression_default(row.get("default")),
                )
            )
        return cls(descriptors)

    @classmethod
    def from_dict(cls, fields: Mapping) -> "FieldTable":
        """
        Build from an explicit mapping.

        Values are either FieldDescriptor instances or dicts with "value" and
        "type" keys, e.g. {"name": {"value": "", "type": "string"}}.
        """
        if isinstance(fields, FieldTable):
            return fields
        descriptors = []
        for column, spec in fields.items():
            if isinstance(spec, FieldDescriptor):
                descriptors.append(spec)
                continue
            descriptors.append(
                FieldDescriptor(
                    column=column,
                    default=spec.get("value"),
                    type=FieldType(str(spec.get("type", "string")).lower()),
                )
            )
        return cls(descriptors)

    def __getitem__(self, column: str) -> FieldDescriptor:
        return self._descriptors[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __repr__(self) -> str:
        return f"FieldTable({list(self._descriptors.values())!r})"

    @property
    def columns(self) -> list[str]:
        return list(self._descriptors)

    def has(self, column: str) -> bool:
        return column in self._descriptors

    def defaults(self) -> dict[str, Any]:
        return {column: d.default for column, d in self._descriptors.items()}

    def server_defaults(self) -> set[str]:
        """Columns whose default is computed by the server."""
        return {column for column, d in self._descriptors.items() if d.server_default}

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {
            column: {"value": d.default, "type": d.type.value}
            for column, d in self._descriptors.items()
        }
