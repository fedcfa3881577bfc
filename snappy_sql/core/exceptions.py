"""SnappySQL exception hierarchy.

Configuration errors are raised once, when the mapping, reader or writer
for a type is first built. Errors raised by the database driver while a
statement executes are not wrapped and reach the caller unchanged.
"""

from __future__ import annotations

from typing import Any


class SnappySqlError(Exception):
    """Base exception for all SnappySQL errors."""


def _class_name(target_class: Any) -> str:
    return getattr(target_class, "__qualname__", str(target_class))


# --- Configuration ---


class ConfigurationError(SnappySqlError):
    """Base for errors in a type's declared mapping metadata."""


class MissingTableNameError(ConfigurationError):
    """Raised when neither the type nor the caller names a table."""

    def __init__(self, target_class: type) -> None:
        self.target_class = target_class
        super().__init__(
            f"Table name not defined for {_class_name(target_class)}: "
            "decorate the class with @table(...) or pass table_name"
        )


class NoColumnsError(ConfigurationError):
    """Raised when a type declares no mapped columns."""

    def __init__(self, target_class: type) -> None:
        self.target_class = target_class
        super().__init__(f"{_class_name(target_class)} declares no mapped columns")


class MultipleIdentityColumnsError(ConfigurationError):
    """Raised when a type declares more than one identity column."""

    def __init__(self, target_class: type, columns: list[str]) -> None:
        self.target_class = target_class
        self.columns = columns
        super().__init__(
            f"{_class_name(target_class)} declares multiple identity columns {columns}"
        )


class MixedKeyError(ConfigurationError):
    """Raised when identity and non-identity key columns are combined."""

    def __init__(self, target_class: type, identity: str, keys: list[str]) -> None:
        self.target_class = target_class
        self.identity = identity
        self.keys = keys
        super().__init__(
            f"{_class_name(target_class)} mixes identity column '{identity}' "
            f"with non-identity key columns {keys}"
        )


class MissingKeyError(ConfigurationError):
    """Raised when a statement needs a key predicate but no key is declared."""

    def __init__(self, target_class: type, operation: str) -> None:
        self.target_class = target_class
        self.operation = operation
        super().__init__(
            f"Cannot build {operation} statement for {_class_name(target_class)}: "
            "no key columns declared"
        )


class UnsupportedFieldTypeError(ConfigurationError):
    """Raised when no converter exists for a mapped field's declared type."""

    def __init__(self, target_class: type, attribute: str, field_type: Any) -> None:
        self.target_class = target_class
        self.attribute = attribute
        self.field_type = field_type
        super().__init__(
            f"Unsupported column field type {_class_name(field_type)} for "
            f"'{attribute}' in {_class_name(target_class)}"
        )


class InvalidIdentifierError(ConfigurationError):
    """Raised when a table or column name is not a plain SQL identifier."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Invalid {kind} name: {name!r}")


class UnresolvedTypeHintError(ConfigurationError):
    """Raised when a mapped field's type annotation cannot be evaluated."""

    def __init__(self, target_class: type, attribute: str | None, detail: str) -> None:
        self.target_class = target_class
        self.attribute = attribute
        field = f"field '{attribute}' of " if attribute else ""
        super().__init__(
            f"Cannot resolve the type of {field}{_class_name(target_class)}: {detail}"
        )


class ConstructorError(ConfigurationError):
    """Raised when a type cannot be instantiated without arguments."""

    def __init__(self, target_class: type, detail: str) -> None:
        self.target_class = target_class
        super().__init__(f"Cannot materialize {_class_name(target_class)}: {detail}")


# --- Mapping ---


class MappingError(SnappySqlError):
    """Base for errors raised while materializing result rows."""


class ColumnMissingError(MappingError):
    """Raised when a mapped column is absent from the current result row."""

    def __init__(self, column_name: str, available: list[str]) -> None:
        self.column_name = column_name
        self.available = available
        super().__init__(f"Column '{column_name}' not found in result row; got {available}")


# --- Persistence ---


class MixedBatchError(SnappySqlError):
    """Raised when a batch save mixes instances of different types."""

    def __init__(self, expected: type, found: type) -> None:
        self.expected = expected
        self.found = found
        super().__init__(
            f"Batch of {_class_name(expected)} contains an instance of {_class_name(found)}"
        )


# --- Conversion ---


class ConversionError(SnappySqlError):
    """Raised when a value cannot be converted to or from its stored form."""


# --- Adapter ---


class AdapterError(SnappySqlError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised when a connection cannot be opened."""
