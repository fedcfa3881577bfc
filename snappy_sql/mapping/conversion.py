"""Value conversion between stored column values and typed field values.

Decoding (stored -> field) and encoding (field -> stored) are separate
capabilities. Host applications customise either one by composition:
pass extra decoders/encoders to the default implementations, or pass
their own ``ValueFromDb`` / ``ValueToDb`` implementation to the Engine.

Decoders receive SQL NULL as None. The built-in decoders turn it into
None for Optional fields and into the zero value of the field type
otherwise; wrap a host decoder in ``null_safe`` to get the same rule.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from snappy_sql.core.enums import DbType
from snappy_sql.core.exceptions import ConversionError
from snappy_sql.mapping.metadata import ColumnMapping, lookup_by_type, zero_value


@dataclass(frozen=True)
class ConversionContext:
    """A raw stored value paired with the column it is decoded for."""

    value: Any
    column: ColumnMapping


Decoder = Callable[[ConversionContext], Any]
Encoder = Callable[[Any, DbType], Any]

_CONVERSION_FAILURES = (ValueError, TypeError, KeyError, ArithmeticError)


@runtime_checkable
class ValueFromDb(Protocol):
    """Decoding capability: selects a decoder by a column's field type."""

    def get_decoder(self, column: ColumnMapping) -> Decoder | None:
        """Return the decoder for *column*, or None if its type is unsupported."""
        ...


@runtime_checkable
class ValueToDb(Protocol):
    """Encoding capability: turns a field value into its stored form."""

    def convert_value(self, value: Any, db_type: DbType) -> Any:
        """Return the value to bind for a column of stored type *db_type*."""
        ...


# ---------------------------------------------------------------------------
# Default decoders
# ---------------------------------------------------------------------------


def null_default(column: ColumnMapping) -> Any:
    """The value a NULL decodes to when the decoder keeps the default rule."""
    if column.nullable:
        return None
    return zero_value(column.field_type)


def null_safe(decoder: Decoder) -> Decoder:
    """Wrap *decoder* so that NULL decodes to ``null_default`` without calling it."""

    @functools.wraps(decoder)
    def wrapper(ctx: ConversionContext) -> Any:
        if ctx.value is None:
            return null_default(ctx.column)
        return decoder(ctx)

    return wrapper


def _to_int(value: Any) -> int:
    if isinstance(value, (Decimal, float)):
        as_int = int(value)
        if as_int != value:
            raise ValueError(f"{value!r} is not integral")
        return as_int
    return int(value)


def _decode_int(ctx: ConversionContext) -> int:
    return _to_int(ctx.value)


def _decode_float(ctx: ConversionContext) -> float:
    return float(ctx.value)


def _decode_decimal(ctx: ConversionContext) -> Decimal:
    value = ctx.value
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _decode_bool(ctx: ConversionContext) -> bool:
    value = ctx.value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "t", "yes", "y")
    return bool(value)


def _decode_str(ctx: ConversionContext) -> str:
    return str(ctx.value)


def _decode_bytes(ctx: ConversionContext) -> bytes:
    return bytes(ctx.value)


def _decode_date(ctx: ConversionContext) -> date:
    value = ctx.value
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _decode_datetime(ctx: ConversionContext) -> datetime:
    value = ctx.value
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


def _decode_time(ctx: ConversionContext) -> time:
    value = ctx.value
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def _decode_uuid(ctx: ConversionContext) -> UUID:
    value = ctx.value
    if isinstance(value, UUID):
        return value
    if isinstance(value, (bytes, memoryview)):
        return UUID(bytes=bytes(value))
    return UUID(str(value))


_DEFAULT_DECODERS: dict[Any, Decoder] = {
    bool: null_safe(_decode_bool),
    int: null_safe(_decode_int),
    float: null_safe(_decode_float),
    Decimal: null_safe(_decode_decimal),
    str: null_safe(_decode_str),
    bytes: null_safe(_decode_bytes),
    datetime: null_safe(_decode_datetime),
    date: null_safe(_decode_date),
    time: null_safe(_decode_time),
    UUID: null_safe(_decode_uuid),
}


def _find_decoder(decoders: Mapping[Any, Decoder], field_type: Any) -> Decoder | None:
    if isinstance(field_type, type) and issubclass(field_type, Enum):
        # Enums only match enum registrations, never their int/str mixin
        for klass in field_type.__mro__:
            if isinstance(klass, type) and issubclass(klass, Enum) and klass in decoders:
                return decoders[klass]
        return None
    return lookup_by_type(decoders, field_type)


class DefaultValueFromDb:
    """Default decoding: direct typed casts for builtin field types.

    Args:
        decoders: Extra or overriding decoders keyed by field type. A
            decoder registered for a class also serves its subclasses.
            Registered decoders receive NULL as None; wrap them in
            ``null_safe`` to keep the built-in NULL rule.
    """

    def __init__(self, decoders: Mapping[Any, Decoder] | None = None) -> None:
        self._decoders: dict[Any, Decoder] = dict(_DEFAULT_DECODERS)
        if decoders:
            self._decoders.update(decoders)

    def register(self, field_type: Any, decoder: Decoder) -> None:
        self._decoders[field_type] = decoder

    def get_decoder(self, column: ColumnMapping) -> Decoder | None:
        return _find_decoder(self._decoders, column.field_type)


class DefaultValueToDb:
    """Default encoding: None becomes SQL NULL, other values pass through.

    Args:
        encoders: Encoders keyed by value type, called as
            ``encoder(value, db_type)`` for non-None values.
    """

    def __init__(self, encoders: Mapping[Any, Encoder] | None = None) -> None:
        self._encoders: dict[Any, Encoder] = dict(encoders or {})

    def register(self, value_type: Any, encoder: Encoder) -> None:
        self._encoders[value_type] = encoder

    def convert_value(self, value: Any, db_type: DbType) -> Any:
        if value is None:
            return None
        encoder = lookup_by_type(self._encoders, type(value))
        if encoder is None:
            return value
        return encoder(value, db_type)


# ---------------------------------------------------------------------------
# Pipeline entry points
# ---------------------------------------------------------------------------


def decode(decoder: Decoder, value: Any, column: ColumnMapping) -> Any:
    """Decode a raw stored *value* for *column*. NULL is passed to *decoder* as None."""
    try:
        return decoder(ConversionContext(value=value, column=column))
    except ConversionError:
        raise
    except _CONVERSION_FAILURES as e:
        raise ConversionError(
            f"Cannot convert {value!r} from column '{column.name}' "
            f"to {getattr(column.field_type, '__name__', column.field_type)}: {e}"
        ) from e


def encode(value_to_db: ValueToDb, value: Any, column: ColumnMapping) -> Any:
    """Encode a field *value* for binding to *column*."""
    try:
        return value_to_db.convert_value(value, column.db_type)
    except ConversionError:
        raise
    except _CONVERSION_FAILURES as e:
        raise ConversionError(
            f"Cannot convert {value!r} for column '{column.name}' ({column.db_type.value}): {e}"
        ) from e


def narrow_identity(value: Any, column: ColumnMapping) -> Any:
    """Convert a generated identity value to the identity field's type.

    Decimal and float results are narrowed to int only when integral.
    """
    if value is None:
        raise ConversionError(f"No identity value returned for column '{column.name}'")
    target = column.field_type
    try:
        if isinstance(target, type) and issubclass(target, int) and target is not bool:
            return _to_int(value)
        if target is Decimal:
            return _decode_decimal(ConversionContext(value=value, column=column))
        if target is float:
            return float(value)
    except _CONVERSION_FAILURES as e:
        raise ConversionError(
            f"Identity value {value!r} for column '{column.name}' is not representable "
            f"as {target.__name__}: {e}"
        ) from e
    return value
