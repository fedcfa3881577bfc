"""Mapping engine.

The Engine resolves mappings, builds and caches one reader per type and
one writer per (type, table, idempotent) triple, and runs them through
the adapter. Readers and writers are built once under a lock and shared
by every caller afterwards.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import structlog

from snappy_sql.core.command import Command
from snappy_sql.core.connection import ConnectionConfig, ConnectionManager
from snappy_sql.core.exceptions import MixedBatchError
from snappy_sql.core.params import bind_params
from snappy_sql.mapping.conversion import (
    DefaultValueFromDb,
    DefaultValueToDb,
    ValueFromDb,
    ValueToDb,
)
from snappy_sql.mapping.metadata import MappingResolver
from snappy_sql.mapping.reader import ObjectReader
from snappy_sql.mapping.statements import build_write_plan
from snappy_sql.mapping.writer import ObjectWriter, create_writer

logger = structlog.get_logger()

T = TypeVar("T")


class Engine:
    """Synchronous mapping engine.

    Every operation accepts an optional caller-owned ``connection``. The
    engine never commits a caller's connection; without one it opens a
    connection for the call, commits after writes, and closes it.
    """

    def __init__(
        self,
        connection_manager: ConnectionManager,
        value_from_db: ValueFromDb | None = None,
        value_to_db: ValueToDb | None = None,
    ) -> None:
        self._connection_manager = connection_manager
        self._adapter = connection_manager.adapter
        self._value_from_db = value_from_db if value_from_db is not None else DefaultValueFromDb()
        self._value_to_db = value_to_db if value_to_db is not None else DefaultValueToDb()
        self._resolver = MappingResolver()
        self._readers: dict[type, ObjectReader[Any]] = {}
        self._writers: dict[tuple[type, str | None, bool], ObjectWriter[Any]] = {}
        self._reader_lock = threading.Lock()
        self._writer_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: ConnectionConfig,
        value_from_db: ValueFromDb | None = None,
        value_to_db: ValueToDb | None = None,
    ) -> Engine:
        """Create an Engine from a ConnectionConfig.

        Args:
            config: ConnectionConfig instance
            value_from_db: Decoding capability; DefaultValueFromDb when None
            value_to_db: Encoding capability; DefaultValueToDb when None

        Returns:
            Engine instance
        """
        return cls(ConnectionManager(config), value_from_db, value_to_db)

    @property
    def resolver(self) -> MappingResolver:
        return self._resolver

    @property
    def value_to_db(self) -> ValueToDb:
        return self._value_to_db

    # -- Readers and writers -------------------------------------------------

    def get_reader(self, cls: type[T]) -> ObjectReader[T]:
        """Return the cached reader for *cls*, building it on first use."""
        with self._reader_lock:
            reader = self._readers.get(cls)
            if reader is None:
                mapping = self._resolver.resolve(cls, require_table=False)
                reader = ObjectReader.create(mapping, self._value_from_db)
                self._readers[cls] = reader
                logger.debug("reader_built", target=cls.__qualname__)
        return reader

    def get_writer(
        self,
        cls: type[T],
        table_name: str | None = None,
        *,
        idempotent: bool = False,
    ) -> ObjectWriter[T]:
        """Return the cached writer for *cls* stored in *table_name*."""
        key = (cls, table_name, idempotent)
        with self._writer_lock:
            writer = self._writers.get(key)
            if writer is None:
                mapping = self._resolver.resolve(cls, table_name)
                plan = build_write_plan(mapping, idempotent=idempotent)
                writer = create_writer(plan, self._adapter, self._value_to_db)
                self._writers[key] = writer
                logger.debug(
                    "writer_built",
                    target=cls.__qualname__,
                    table=mapping.table_name,
                    strategy=plan.strategy.value,
                )
        return writer

    # -- Connection scope ----------------------------------------------------

    @contextmanager
    def _connection(self, connection: Any | None, *, commit: bool = False) -> Iterator[Any]:
        if connection is not None:
            yield connection
            return
        with self._connection_manager.get_connection() as conn:
            yield conn
            if commit:
                conn.commit()

    # -- Queries ---------------------------------------------------------------

    def fetch_one(
        self,
        cls: type[T],
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        connection: Any | None = None,
    ) -> T | None:
        """Materialize the first result row as *cls*, or None if there is none."""
        reader = self.get_reader(cls)
        with self._connection(connection) as conn, Command(self._adapter, conn, sql) as command:
            return reader.read_one(command.execute_reader(self._bind(params)))

    def fetch_all(
        self,
        cls: type[T],
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        connection: Any | None = None,
    ) -> list[T]:
        """Materialize every result row as *cls*."""
        reader = self.get_reader(cls)
        with self._connection(connection) as conn, Command(self._adapter, conn, sql) as command:
            return reader.read_all(command.execute_reader(self._bind(params)))

    def fetch_scalar(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        connection: Any | None = None,
    ) -> Any:
        """Fetch a single scalar value (first column of first row)."""
        with self._connection(connection) as conn, Command(self._adapter, conn, sql) as command:
            return command.execute_scalar(self._bind(params))

    def fetch_scalars(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        connection: Any | None = None,
    ) -> list[Any]:
        """Fetch the first column of every result row."""
        with self._connection(connection) as conn, Command(self._adapter, conn, sql) as command:
            cursor = command.execute_reader(self._bind(params))
            values = []
            while cursor.advance():
                values.append(cursor.first_value())
            return values

    def execute(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        connection: Any | None = None,
    ) -> int:
        """Execute a write statement. Returns affected row count."""
        with (
            self._connection(connection, commit=True) as conn,
            Command(self._adapter, conn, sql) as command,
        ):
            return command.execute(self._bind(params))

    # -- Persistence -----------------------------------------------------------

    def save(
        self,
        obj: Any,
        table_name: str | None = None,
        *,
        idempotent: bool = False,
        connection: Any | None = None,
    ) -> int:
        """Persist one instance of a mapped type.

        For identity mappings a newly inserted *obj* receives its generated
        identity value.
        """
        writer = self.get_writer(type(obj), table_name, idempotent=idempotent)
        with self._connection(connection, commit=True) as conn:
            return writer.write_one(conn, obj)

    def save_many(
        self,
        objs: Iterable[Any],
        table_name: str | None = None,
        *,
        idempotent: bool = False,
        connection: Any | None = None,
    ) -> int:
        """Persist a homogeneous batch. Returns the summed affected row count.

        Raises:
            MixedBatchError: If the items are not all of the same type.
        """
        items = list(objs)
        if not items:
            return 0
        cls = type(items[0])
        for item in items:
            if type(item) is not cls:
                raise MixedBatchError(cls, type(item))
        writer = self.get_writer(cls, table_name, idempotent=idempotent)
        with self._connection(connection, commit=True) as conn:
            return writer.write_many(conn, items)

    def delete(
        self,
        obj: Any,
        table_name: str | None = None,
        *,
        connection: Any | None = None,
    ) -> int:
        """Delete the row matching *obj*'s key columns."""
        writer = self.get_writer(type(obj), table_name)
        with self._connection(connection, commit=True) as conn:
            return writer.delete(conn, obj)

    def _bind(self, params: dict[str, Any] | None) -> dict[str, Any]:
        return bind_params(params, self._value_to_db)
