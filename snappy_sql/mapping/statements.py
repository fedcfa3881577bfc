"""SQL statement synthesis from table mappings.

Statement text is derived only from mapping metadata: table and column
names (validated identifiers) and ``:attribute`` placeholders. Caller
values are always bound as parameters.

Upsert idioms are portable between SQLite (3.35+) and PostgreSQL:
existence-guarded inserts use ``INSERT ... SELECT ... WHERE NOT EXISTS``
and identity retrieval uses ``RETURNING``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from snappy_sql.core.exceptions import MissingKeyError, MissingTableNameError
from snappy_sql.mapping.metadata import ColumnMapping, TableMapping


class WriteStrategy(Enum):
    """How a writer persists an instance, chosen from the mapping's shape."""

    INSERT = "insert"
    INSERT_IF_NOT_EXISTS = "insert_if_not_exists"
    UPDATE_OR_INSERT = "update_or_insert"
    IDENTITY = "identity"


@dataclass(frozen=True)
class GeneratedStatement:
    """SQL text plus the ordered columns whose values it binds."""

    sql: str
    columns: tuple[ColumnMapping, ...]


@dataclass(frozen=True)
class WritePlan:
    """Every statement a writer needs for one (type, table) pair."""

    mapping: TableMapping
    strategy: WriteStrategy
    insert: GeneratedStatement
    update: GeneratedStatement | None = None
    delete: GeneratedStatement | None = None


def _table(mapping: TableMapping) -> str:
    if mapping.table_name is None:
        raise MissingTableNameError(mapping.target_class)
    return mapping.table_name


def _predicate(columns: Sequence[ColumnMapping]) -> str:
    return " AND ".join(f"{c.name} = :{c.attribute}" for c in columns)


def key_predicate(mapping: TableMapping, operation: str = "key predicate") -> str:
    """Conjunction of ``column = :attribute`` over the key columns.

    Raises:
        MissingKeyError: If the mapping has no key columns.
    """
    keys = mapping.key_columns
    if not keys:
        raise MissingKeyError(mapping.target_class, operation)
    return _predicate(keys)


def insert_statement(
    mapping: TableMapping,
    *,
    returning_identity: bool = False,
) -> GeneratedStatement:
    """INSERT of every non-identity column.

    With *returning_identity* the generated identity value comes back as
    the statement's single scalar result.
    """
    table = _table(mapping)
    columns = mapping.non_identity_columns
    if columns:
        names = ", ".join(c.name for c in columns)
        values = ", ".join(f":{c.attribute}" for c in columns)
        sql = f"INSERT INTO {table} ({names}) VALUES ({values})"
    else:
        sql = f"INSERT INTO {table} DEFAULT VALUES"

    identity = mapping.identity_column
    if returning_identity and identity is not None:
        sql += f" RETURNING {identity.name}"
    return GeneratedStatement(sql=sql, columns=columns)


def guarded_insert_statement(
    mapping: TableMapping,
    *,
    predicate_columns: Sequence[ColumnMapping] | None = None,
) -> GeneratedStatement:
    """INSERT that only adds the row when no row matches the predicate.

    The predicate defaults to the key columns.
    """
    table = _table(mapping)
    columns = mapping.non_identity_columns
    if predicate_columns is None:
        predicate = key_predicate(mapping, "existence-guarded insert")
    else:
        predicate = _predicate(predicate_columns)
    names = ", ".join(c.name for c in columns)
    values = ", ".join(f":{c.attribute}" for c in columns)
    sql = (
        f"INSERT INTO {table} ({names}) SELECT {values} "
        f"WHERE NOT EXISTS (SELECT 1 FROM {table} WHERE {predicate})"
    )
    return GeneratedStatement(sql=sql, columns=columns)


def update_statement(mapping: TableMapping) -> GeneratedStatement:
    """UPDATE setting every non-key column, filtered by the key predicate."""
    table = _table(mapping)
    predicate = key_predicate(mapping, "update")
    assignments = ", ".join(f"{c.name} = :{c.attribute}" for c in mapping.non_key_columns)
    sql = f"UPDATE {table} SET {assignments} WHERE {predicate}"
    return GeneratedStatement(sql=sql, columns=mapping.columns)


def delete_statement(mapping: TableMapping) -> GeneratedStatement:
    """DELETE filtered by the key predicate."""
    table = _table(mapping)
    predicate = key_predicate(mapping, "delete")
    return GeneratedStatement(sql=f"DELETE FROM {table} WHERE {predicate}", columns=mapping.key_columns)


def select_strategy(mapping: TableMapping, *, idempotent: bool = False) -> WriteStrategy:
    """Pick the persistence strategy for a mapping's shape.

    * identity column -> IDENTITY
    * no key columns -> INSERT, or INSERT_IF_NOT_EXISTS when *idempotent*
    * every column is a key -> INSERT_IF_NOT_EXISTS
    * otherwise -> UPDATE_OR_INSERT
    """
    if mapping.has_identity:
        return WriteStrategy.IDENTITY
    if not mapping.key_columns:
        return WriteStrategy.INSERT_IF_NOT_EXISTS if idempotent else WriteStrategy.INSERT
    if mapping.all_columns_are_keys:
        return WriteStrategy.INSERT_IF_NOT_EXISTS
    return WriteStrategy.UPDATE_OR_INSERT


def build_write_plan(mapping: TableMapping, *, idempotent: bool = False) -> WritePlan:
    """Synthesize every statement the mapping's write strategy needs."""
    strategy = select_strategy(mapping, idempotent=idempotent)
    has_keys = bool(mapping.key_columns)
    delete = delete_statement(mapping) if has_keys else None

    if strategy is WriteStrategy.IDENTITY:
        update = update_statement(mapping) if mapping.non_key_columns else None
        return WritePlan(
            mapping=mapping,
            strategy=strategy,
            insert=insert_statement(mapping, returning_identity=True),
            update=update,
            delete=delete,
        )
    if strategy is WriteStrategy.UPDATE_OR_INSERT:
        return WritePlan(
            mapping=mapping,
            strategy=strategy,
            insert=guarded_insert_statement(mapping),
            update=update_statement(mapping),
            delete=delete,
        )
    if strategy is WriteStrategy.INSERT_IF_NOT_EXISTS:
        predicate_columns = None if has_keys else mapping.columns
        return WritePlan(
            mapping=mapping,
            strategy=strategy,
            insert=guarded_insert_statement(mapping, predicate_columns=predicate_columns),
            delete=delete,
        )
    return WritePlan(mapping=mapping, strategy=strategy, insert=insert_statement(mapping))
