"""Object materializer.

Builds typed instances from result rows. Each instance is created with
the type's zero-argument constructor and then populated column by
column, looking every column up by name in the current row.
"""

from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Iterator
from typing import Any, Generic, TypeVar

from snappy_sql.core.cursor import RowCursor
from snappy_sql.core.exceptions import ConstructorError, UnsupportedFieldTypeError
from snappy_sql.mapping.conversion import Decoder, ValueFromDb, decode
from snappy_sql.mapping.metadata import ColumnMapping, TableMapping

T = TypeVar("T")


def _check_constructor(cls: type) -> None:
    """Reject types that cannot be created empty and then populated."""
    if dataclasses.is_dataclass(cls) and cls.__dataclass_params__.frozen:  # type: ignore[attr-defined]
        raise ConstructorError(cls, "frozen dataclasses cannot be populated")
    model_config: Any = getattr(cls, "model_config", None)
    if isinstance(model_config, dict) and model_config.get("frozen"):
        raise ConstructorError(cls, "frozen models cannot be populated")

    try:
        sig = inspect.signature(cls)
    except (ValueError, TypeError):
        return
    required = [
        name
        for name, param in sig.parameters.items()
        if param.default is inspect.Parameter.empty
        and param.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
    if required:
        raise ConstructorError(cls, f"constructor requires arguments {required}")


class ObjectReader(Generic[T]):
    """Materializes instances of one mapped type from a RowCursor.

    Use ``ObjectReader.create`` so that decoders are resolved, and
    unsupported field types rejected, before any row is read.
    """

    def __init__(
        self,
        mapping: TableMapping,
        column_decoders: tuple[tuple[ColumnMapping, Decoder], ...],
    ) -> None:
        self._mapping = mapping
        self._target_class: type[T] = mapping.target_class
        self._column_decoders = column_decoders

    @classmethod
    def create(cls, mapping: TableMapping, value_from_db: ValueFromDb) -> ObjectReader[Any]:
        """Build a reader for *mapping*.

        Raises:
            ConstructorError: If the type has no usable zero-argument constructor.
            UnsupportedFieldTypeError: If no decoder matches a column's field type.
        """
        _check_constructor(mapping.target_class)
        column_decoders: list[tuple[ColumnMapping, Decoder]] = []
        for column in mapping.columns:
            decoder = value_from_db.get_decoder(column)
            if decoder is None:
                raise UnsupportedFieldTypeError(
                    mapping.target_class, column.attribute, column.field_type
                )
            column_decoders.append((column, decoder))
        return cls(mapping, tuple(column_decoders))

    @property
    def mapping(self) -> TableMapping:
        return self._mapping

    def read_one(self, cursor: RowCursor) -> T | None:
        """Materialize the next row, or return None if the cursor is exhausted."""
        if not cursor.advance():
            return None
        return self._materialize(cursor)

    def read_all(self, cursor: RowCursor) -> list[T]:
        """Materialize every remaining row. Drains the cursor."""
        return list(self.iter_rows(cursor))

    def iter_rows(self, cursor: RowCursor) -> Iterator[T]:
        """Lazily materialize the remaining rows."""
        while cursor.advance():
            yield self._materialize(cursor)

    def _materialize(self, cursor: RowCursor) -> T:
        obj = self._target_class()
        for column, decoder in self._column_decoders:
            raw = cursor.get_value(column.name)
            column.set(obj, decode(decoder, raw, column))
        return obj
