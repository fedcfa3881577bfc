"""SnappySQL - lightweight object mapping with generated statements."""

from __future__ import annotations

from snappy_sql.core.connection import ConnectionConfig, ConnectionManager
from snappy_sql.core.engine import Engine
from snappy_sql.core.enums import DatabaseBackend, DbType
from snappy_sql.core.exceptions import (
    AdapterError,
    ColumnMissingError,
    ConfigurationError,
    ConnectionError,  # noqa: A004
    ConstructorError,
    ConversionError,
    InvalidIdentifierError,
    MappingError,
    MissingKeyError,
    MissingTableNameError,
    MixedBatchError,
    MixedKeyError,
    MultipleIdentityColumnsError,
    NoColumnsError,
    SnappySqlError,
    UnresolvedTypeHintError,
    UnsupportedFieldTypeError,
)
from snappy_sql.core.params import TypedParam
from snappy_sql.mapping.conversion import (
    ConversionContext,
    DefaultValueFromDb,
    DefaultValueToDb,
    ValueFromDb,
    ValueToDb,
    null_safe,
)
from snappy_sql.mapping.declarative import Column, column, table

__all__ = [
    # Connection
    "ConnectionConfig",
    "ConnectionManager",
    # Engine
    "Engine",
    "TypedParam",
    # Declarative
    "Column",
    "column",
    "table",
    # Conversion
    "ConversionContext",
    "ValueFromDb",
    "ValueToDb",
    "DefaultValueFromDb",
    "DefaultValueToDb",
    "null_safe",
    # Enums
    "DatabaseBackend",
    "DbType",
    # Exceptions
    "SnappySqlError",
    "ConfigurationError",
    "MissingTableNameError",
    "NoColumnsError",
    "MultipleIdentityColumnsError",
    "MixedKeyError",
    "MissingKeyError",
    "MixedBatchError",
    "UnsupportedFieldTypeError",
    "UnresolvedTypeHintError",
    "InvalidIdentifierError",
    "ConstructorError",
    "MappingError",
    "ColumnMissingError",
    "ConversionError",
    "AdapterError",
    "ConnectionError",
]
