"""Mapping metadata resolution.

Turns a type's declared table/column metadata into an immutable
TableMapping, and caches one mapping per (type, table name).
"""

from __future__ import annotations

import dataclasses
import inspect
import re
import threading
import types
import typing
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

import structlog

from snappy_sql.core.enums import DbType
from snappy_sql.core.exceptions import (
    InvalidIdentifierError,
    MissingTableNameError,
    MixedKeyError,
    MultipleIdentityColumnsError,
    NoColumnsError,
    UnresolvedTypeHintError,
)
from snappy_sql.mapping.declarative import METADATA_KEY, MISSING, TABLE_ATTRIBUTE, Column

logger = structlog.get_logger()

_COLUMN_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

_ZERO_VALUES: dict[type, Any] = {
    bool: False,
    int: 0,
    float: 0.0,
    Decimal: Decimal(0),
    str: "",
    bytes: b"",
}

_INFERRED_DB_TYPES: dict[type, DbType] = {
    bool: DbType.BIT,
    int: DbType.INT,
    float: DbType.FLOAT,
    Decimal: DbType.DECIMAL,
    str: DbType.NVARCHAR,
    bytes: DbType.VARBINARY,
    datetime: DbType.DATETIME2,
    date: DbType.DATE,
    time: DbType.TIME,
    UUID: DbType.UNIQUEIDENTIFIER,
}


def lookup_by_type(table: Mapping[Any, Any], field_type: Any) -> Any:
    """Find the entry for *field_type* or its nearest base class, else None."""
    for klass in getattr(field_type, "__mro__", (field_type,)):
        if klass in table:
            return table[klass]
    return None


def zero_value(field_type: Any) -> Any:
    """The zero value of a field type; None where the type has none."""
    if isinstance(field_type, type) and issubclass(field_type, Enum):
        return None
    return lookup_by_type(_ZERO_VALUES, field_type)


@dataclass(frozen=True)
class ColumnMapping:
    """Binding between one field of a mapped type and one table column."""

    name: str
    attribute: str
    db_type: DbType
    field_type: Any
    nullable: bool = False
    is_key: bool = False
    is_identity: bool = False
    identity_default: Any = None
    getter: Callable[[Any], Any] = field(default=None, repr=False, compare=False)  # type: ignore[assignment]
    setter: Callable[[Any, Any], None] = field(default=None, repr=False, compare=False)  # type: ignore[assignment]

    def get(self, obj: Any) -> Any:
        return self.getter(obj)

    def set(self, obj: Any, value: Any) -> None:
        self.setter(obj, value)


@dataclass(frozen=True)
class TableMapping:
    """Compiled correspondence between a type's fields and a table's columns.

    ``table_name`` is None only for read-only mappings resolved without a
    table.
    """

    target_class: type
    table_name: str | None
    columns: tuple[ColumnMapping, ...]

    @property
    def key_columns(self) -> tuple[ColumnMapping, ...]:
        return tuple(c for c in self.columns if c.is_key)

    @property
    def non_key_columns(self) -> tuple[ColumnMapping, ...]:
        return tuple(c for c in self.columns if not c.is_key)

    @property
    def non_identity_columns(self) -> tuple[ColumnMapping, ...]:
        return tuple(c for c in self.columns if not c.is_identity)

    @property
    def identity_column(self) -> ColumnMapping | None:
        return next((c for c in self.columns if c.is_identity), None)

    @property
    def has_identity(self) -> bool:
        return self.identity_column is not None

    @property
    def all_columns_are_keys(self) -> bool:
        return all(c.is_key for c in self.columns)

    def column(self, name: str) -> ColumnMapping:
        """Return the mapping for column *name*."""
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(name)


# ---------------------------------------------------------------------------
# Field discovery
# ---------------------------------------------------------------------------


def _unwrap_annotated(hint: Any) -> tuple[Any, tuple[Any, ...]]:
    if typing.get_origin(hint) is typing.Annotated:
        base, *extras = typing.get_args(hint)
        return base, tuple(extras)
    return hint, ()


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    """Split ``X | None`` into (X, True); other hints into (hint, False)."""
    origin = typing.get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = typing.get_args(hint)
        others = tuple(a for a in args if a is not type(None))
        if len(others) == len(args):
            return hint, False
        if len(others) == 1:
            return others[0], True
        return Union[others], True  # noqa: UP007
    return hint, False


def _find_column(extras: tuple[Any, ...]) -> Column | None:
    return next((e for e in extras if isinstance(e, Column)), None)


def _unresolved_attribute(cls: type, error: Exception) -> str | None:
    """Name the field whose string annotation mentions the undefined name."""
    name = getattr(error, "name", None)
    if not name:
        return None
    pattern = re.compile(rf"\b{re.escape(name)}\b")
    for klass in reversed(cls.__mro__):
        for attribute, hint in inspect.get_annotations(klass).items():
            if isinstance(hint, str) and pattern.search(hint):
                return attribute
    return None


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as e:
        raise UnresolvedTypeHintError(cls, _unresolved_attribute(cls, e), str(e)) from e


def _declared_columns(cls: type) -> Iterator[tuple[str, Any, Column]]:
    """Yield (attribute, field type hint, Column) in declaration order."""
    # Pydantic model
    if hasattr(cls, "model_fields"):
        for name, info in cls.model_fields.items():
            col = _find_column(tuple(info.metadata))
            if col is not None:
                yield name, info.annotation, col
        return

    # Dataclass
    if dataclasses.is_dataclass(cls):
        fields = dataclasses.fields(cls)
        # column() metadata with an evaluated type needs no hint resolution
        needs_hints = any(
            isinstance(f.type, str) or METADATA_KEY not in f.metadata for f in fields
        )
        hints = _type_hints(cls) if needs_hints else {}
        for f in fields:
            base, extras = _unwrap_annotated(hints.get(f.name, f.type))
            col = f.metadata.get(METADATA_KEY) or _find_column(extras)
            if col is not None:
                yield f.name, base, col
        return

    # Plain class - annotated attributes
    for name, hint in _type_hints(cls).items():
        base, extras = _unwrap_annotated(hint)
        col = _find_column(extras)
        if col is not None:
            yield name, base, col


def _make_getter(attribute: str) -> Callable[[Any], Any]:
    def getter(obj: Any) -> Any:
        return getattr(obj, attribute)

    return getter


def _make_setter(attribute: str) -> Callable[[Any, Any], None]:
    def setter(obj: Any, value: Any) -> None:
        setattr(obj, attribute, value)

    return setter


def _build_column(attribute: str, hint: Any, col: Column) -> ColumnMapping:
    if not _COLUMN_NAME.match(col.name):
        raise InvalidIdentifierError("column", col.name)

    field_type, nullable = _unwrap_optional(hint)
    db_type = col.db_type or lookup_by_type(_INFERRED_DB_TYPES, field_type) or DbType.VARIANT

    if col.identity_default is not MISSING:
        identity_default = col.identity_default
    elif nullable:
        identity_default = None
    else:
        identity_default = zero_value(field_type)

    return ColumnMapping(
        name=col.name,
        attribute=attribute,
        db_type=db_type,
        field_type=field_type,
        nullable=nullable,
        is_key=col.key or col.identity,
        is_identity=col.identity,
        identity_default=identity_default,
        getter=_make_getter(attribute),
        setter=_make_setter(attribute),
    )


def build_table_mapping(cls: type, table_name: str | None) -> TableMapping:
    """Resolve a TableMapping for *cls* without caching.

    Raises:
        InvalidIdentifierError: If a table or column name is not an identifier.
        NoColumnsError: If *cls* declares no mapped columns.
        MultipleIdentityColumnsError: If more than one identity column is declared.
        MixedKeyError: If an identity column is combined with other key columns.
        UnresolvedTypeHintError: If a field annotation cannot be evaluated.
    """
    if table_name is not None and not _TABLE_NAME.match(table_name):
        raise InvalidIdentifierError("table", table_name)

    columns = tuple(_build_column(attr, hint, col) for attr, hint, col in _declared_columns(cls))
    if not columns:
        raise NoColumnsError(cls)

    identities = [c.name for c in columns if c.is_identity]
    if len(identities) > 1:
        raise MultipleIdentityColumnsError(cls, identities)
    if identities:
        plain_keys = [c.name for c in columns if c.is_key and not c.is_identity]
        if plain_keys:
            raise MixedKeyError(cls, identities[0], plain_keys)

    return TableMapping(target_class=cls, table_name=table_name, columns=columns)


class MappingResolver:
    """Caches one TableMapping per (type, effective table name).

    The cache check, build and insert run under one lock, so concurrent
    callers resolving the same type observe exactly one build.
    """

    def __init__(self) -> None:
        self._cache: dict[tuple[type, str | None], TableMapping] = {}
        self._lock = threading.Lock()

    def resolve(
        self,
        cls: type,
        table_name: str | None = None,
        *,
        require_table: bool = True,
    ) -> TableMapping:
        """Return the TableMapping for *cls*.

        Args:
            cls: The mapped type.
            table_name: Overrides the type's declared table name.
            require_table: Raise MissingTableNameError when no table name
                resolves. Readers resolve with ``require_table=False``.
        """
        effective = table_name or getattr(cls, TABLE_ATTRIBUTE, None)
        if effective is None and require_table:
            raise MissingTableNameError(cls)

        key = (cls, effective)
        with self._lock:
            mapping = self._cache.get(key)
            if mapping is None:
                mapping = build_table_mapping(cls, effective)
                self._cache[key] = mapping
                logger.debug(
                    "mapping_resolved",
                    target=cls.__qualname__,
                    table=effective,
                    columns=[c.name for c in mapping.columns],
                )
        return mapping

    def __len__(self) -> int:
        return len(self._cache)
