"""Declarative table and column metadata.

A mapped type names its table with ``@table`` (or a ``__table_name__``
class attribute) and marks mapped fields with a ``Column``, either
through the ``column()`` dataclass helper or inside ``Annotated``::

    @table("Teacher")
    @dataclass
    class Teacher:
        id: int = column("Id", DbType.INT, identity=True)
        name: str | None = column("Name", DbType.NVARCHAR)

    class Teacher(BaseModel):
        __table_name__ = "Teacher"
        id: Annotated[int, Column("Id", DbType.INT, identity=True)] = 0
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from snappy_sql.core.enums import DbType

T = TypeVar("T")

# Key under which column() stores its Column in dataclass field metadata
METADATA_KEY = "snappy_sql"

TABLE_ATTRIBUTE = "__table_name__"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


@dataclass(frozen=True)
class Column:
    """Field-level mapping metadata.

    Attributes:
        name: Column name as declared in the database.
        db_type: Stored type tag. Inferred from the field type when None.
        key: Whether the column is part of the row key.
        identity: Whether the storage engine assigns the value on insert.
            An identity column is always a key.
        identity_default: Sentinel meaning "no identity assigned yet".
            Defaults to the zero value of the field's type.
    """

    name: str
    db_type: DbType | None = None
    key: bool = False
    identity: bool = False
    identity_default: Any = MISSING


def column(
    name: str,
    db_type: DbType | None = None,
    *,
    key: bool = False,
    identity: bool = False,
    identity_default: Any = MISSING,
    default: Any = None,
    default_factory: Callable[[], Any] | Any = MISSING,
) -> Any:
    """Declare a mapped dataclass field.

    The field defaults to ``None`` unless *default* or *default_factory*
    is given, so the dataclass keeps a zero-argument constructor.
    """
    metadata = {
        METADATA_KEY: Column(
            name=name,
            db_type=db_type,
            key=key,
            identity=identity,
            identity_default=identity_default,
        )
    }
    if default_factory is not MISSING:
        return dataclasses.field(default_factory=default_factory, metadata=metadata)
    return dataclasses.field(default=default, metadata=metadata)


def table(name: str) -> Callable[[type[T]], type[T]]:
    """Class decorator naming the table a type is stored in."""

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, TABLE_ATTRIBUTE, name)
        return cls

    return decorator
