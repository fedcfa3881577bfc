"""Database backend and stored column type enumerations."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class DbType(Enum):
    """Stored type tag of a mapped column."""

    BIGINT = "bigint"
    INT = "int"
    SMALLINT = "smallint"
    TINYINT = "tinyint"
    BIT = "bit"
    DECIMAL = "decimal"
    MONEY = "money"
    FLOAT = "float"
    REAL = "real"
    CHAR = "char"
    NCHAR = "nchar"
    VARCHAR = "varchar"
    NVARCHAR = "nvarchar"
    TEXT = "text"
    NTEXT = "ntext"
    XML = "xml"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    DATETIME2 = "datetime2"
    SMALLDATETIME = "smalldatetime"
    BINARY = "binary"
    VARBINARY = "varbinary"
    UNIQUEIDENTIFIER = "uniqueidentifier"
    VARIANT = "variant"

    @property
    def is_date_type(self) -> bool:
        return self in _DATE_TYPES

    @property
    def is_string_type(self) -> bool:
        return self in _STRING_TYPES

    @property
    def is_integer_type(self) -> bool:
        return self in _INTEGER_TYPES

    @property
    def is_numeric_type(self) -> bool:
        return self in _INTEGER_TYPES or self in _FRACTIONAL_TYPES


_DATE_TYPES = frozenset(
    {DbType.DATE, DbType.DATETIME, DbType.DATETIME2, DbType.SMALLDATETIME}
)
_STRING_TYPES = frozenset(
    {
        DbType.CHAR,
        DbType.NCHAR,
        DbType.VARCHAR,
        DbType.NVARCHAR,
        DbType.TEXT,
        DbType.NTEXT,
        DbType.XML,
    }
)
_INTEGER_TYPES = frozenset({DbType.BIGINT, DbType.INT, DbType.SMALLINT, DbType.TINYINT})
_FRACTIONAL_TYPES = frozenset({DbType.DECIMAL, DbType.MONEY, DbType.FLOAT, DbType.REAL})
