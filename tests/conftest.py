"""Shared test fixtures."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest

from snappy_sql.adapters.sqlite import SqliteSyncAdapter
from snappy_sql.core.connection import ConnectionConfig
from snappy_sql.core.engine import Engine


@pytest.fixture
def sqlite_config(tmp_path: Path) -> ConnectionConfig:
    """SQLite file database config.

    Each operation opens its own connection, so the database must
    outlive a single connection.
    """
    return ConnectionConfig(driver="sqlite", database=str(tmp_path / "test.db"))


@pytest.fixture
def create_schema(sqlite_config: ConnectionConfig):
    """Helper running DDL statements against the test database.

    Usage:
        create_schema("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
    """

    def _create(*statements: str) -> None:
        conn = sqlite3.connect(sqlite_config.database)
        try:
            for statement in statements:
                conn.execute(statement)
            conn.commit()
        finally:
            conn.close()

    return _create


@pytest.fixture
def engine(sqlite_config: ConnectionConfig) -> Engine:
    return Engine.from_config(sqlite_config)


@pytest.fixture
def sqlite_connection(sqlite_config: ConnectionConfig) -> Iterator[sqlite3.Connection]:
    """A caller-owned connection opened through the SQLite adapter."""
    adapter = SqliteSyncAdapter()
    conn = adapter.connect(sqlite_config)
    yield conn
    adapter.close(conn)

