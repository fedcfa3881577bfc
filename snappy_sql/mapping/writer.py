"""Object persister.

Writers execute the statements of a WritePlan against a caller-supplied
connection. They never commit, roll back or retry: a driver error aborts
the remaining instances of a batch and reaches the caller unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

import structlog

from snappy_sql.core.command import Command
from snappy_sql.core.exceptions import MissingKeyError
from snappy_sql.mapping.conversion import ValueToDb, encode, narrow_identity
from snappy_sql.mapping.metadata import ColumnMapping, TableMapping
from snappy_sql.mapping.statements import GeneratedStatement, WritePlan, WriteStrategy

logger = structlog.get_logger()

T = TypeVar("T")


class ObjectWriter(Generic[T]):
    """Writer for mappings without an identity column.

    Args:
        plan: Statements and strategy for the mapped type.
        adapter: SyncAdapter used to open commands.
        value_to_db: Encoder applied to every bound field value.
    """

    def __init__(self, plan: WritePlan, adapter: Any, value_to_db: ValueToDb) -> None:
        self._plan = plan
        self._adapter = adapter
        self._value_to_db = value_to_db

    @property
    def mapping(self) -> TableMapping:
        return self._plan.mapping

    @property
    def strategy(self) -> WriteStrategy:
        return self._plan.strategy

    @property
    def plan(self) -> WritePlan:
        return self._plan

    def _bind(self, obj: T, columns: Sequence[ColumnMapping]) -> dict[str, Any]:
        return {c.attribute: encode(self._value_to_db, c.get(obj), c) for c in columns}

    def _command(self, connection: Any, statement: GeneratedStatement) -> Command:
        return Command(self._adapter, connection, statement.sql)

    def write_one(self, connection: Any, obj: T) -> int:
        """Persist *obj*. Returns the affected row count."""
        return self.write_many(connection, [obj])

    def write_many(self, connection: Any, objs: Iterable[T]) -> int:
        """Persist every instance, reusing one command per statement.

        Returns the summed affected row count.
        """
        plan = self._plan
        total = 0
        if plan.strategy is WriteStrategy.UPDATE_OR_INSERT:
            assert plan.update is not None
            with (
                self._command(connection, plan.update) as update,
                self._command(connection, plan.insert) as insert,
            ):
                for obj in objs:
                    affected = update.execute(self._bind(obj, plan.update.columns))
                    if affected == 0:
                        affected = insert.execute(self._bind(obj, plan.insert.columns))
                    total += affected
            return total

        with self._command(connection, plan.insert) as insert:
            for obj in objs:
                total += insert.execute(self._bind(obj, plan.insert.columns))
        return total

    def delete(self, connection: Any, obj: T) -> int:
        """Delete the row matching *obj*'s key columns."""
        statement = self._plan.delete
        if statement is None:
            raise MissingKeyError(self.mapping.target_class, "delete")
        with self._command(connection, statement) as command:
            return command.execute(self._bind(obj, statement.columns))


class IdentityObjectWriter(ObjectWriter[T]):
    """Writer for mappings keyed by a storage-assigned identity column.

    An instance whose identity equals the sentinel (or is None) is
    inserted and the generated identity is assigned back onto it; any
    other instance is updated.
    """

    def __init__(self, plan: WritePlan, adapter: Any, value_to_db: ValueToDb) -> None:
        super().__init__(plan, adapter, value_to_db)
        identity = plan.mapping.identity_column
        assert identity is not None
        self._identity: ColumnMapping = identity

    def identity_missing(self, obj: T) -> bool:
        value = self._identity.get(obj)
        return value is None or value == self._identity.identity_default

    def write_one(self, connection: Any, obj: T) -> int:
        if not self.identity_missing(obj):
            return self._update(connection, [obj])
        with self._command(connection, self._plan.insert) as insert:
            self._insert(insert, obj)
        return 1

    def write_many(self, connection: Any, objs: Iterable[T]) -> int:
        """Run all updates, then all inserts.

        Each partition keeps the input order; the interleaving between
        updates and inserts is not preserved.
        """
        updates: list[T] = []
        inserts: list[T] = []
        for obj in objs:
            (inserts if self.identity_missing(obj) else updates).append(obj)
        logger.debug(
            "identity_batch_partitioned",
            target=self.mapping.target_class.__qualname__,
            updates=len(updates),
            inserts=len(inserts),
        )

        total = self._update(connection, updates) if updates else 0
        if inserts:
            with self._command(connection, self._plan.insert) as insert:
                for obj in inserts:
                    self._insert(insert, obj)
                    total += 1
        return total

    def _update(self, connection: Any, objs: list[T]) -> int:
        statement = self._plan.update
        if statement is None:
            # Only the identity is mapped; there is nothing to update
            return 0
        total = 0
        with self._command(connection, statement) as update:
            for obj in objs:
                total += update.execute(self._bind(obj, statement.columns))
        return total

    def _insert(self, insert: Command, obj: T) -> None:
        generated = insert.execute_scalar(self._bind(obj, self._plan.insert.columns))
        self._identity.set(obj, narrow_identity(generated, self._identity))


def create_writer(plan: WritePlan, adapter: Any, value_to_db: ValueToDb) -> ObjectWriter[Any]:
    """Return the writer class matching the plan's strategy."""
    if plan.strategy is WriteStrategy.IDENTITY:
        return IdentityObjectWriter(plan, adapter, value_to_db)
    return ObjectWriter(plan, adapter, value_to_db)
