"""Mapping layer - resolve type metadata, convert values, read and write objects."""

from __future__ import annotations

from snappy_sql.mapping.metadata import ColumnMapping, MappingResolver, TableMapping
from snappy_sql.mapping.reader import ObjectReader
from snappy_sql.mapping.statements import GeneratedStatement, WritePlan, WriteStrategy
from snappy_sql.mapping.writer import IdentityObjectWriter, ObjectWriter

__all__ = [
    "ColumnMapping",
    "TableMapping",
    "MappingResolver",
    "ObjectReader",
    "ObjectWriter",
    "IdentityObjectWriter",
    "WriteStrategy",
    "WritePlan",
    "GeneratedStatement",
]
