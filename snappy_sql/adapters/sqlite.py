"""SQLite adapter using stdlib sqlite3."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from snappy_sql.core.connection import ConnectionConfig
from snappy_sql.core.exceptions import ConnectionError  # noqa: A004


def _adapt_value(value: Any) -> Any:
    """Store values sqlite3 cannot bind natively as ISO/canonical text."""
    if isinstance(value, datetime):
        return value.isoformat(" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return value


class SqliteSyncAdapter:
    """Synchronous SQLite adapter using stdlib sqlite3."""

    @property
    def paramstyle(self) -> str:
        return "named"

    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(config.database, **config.extra)
        except sqlite3.Error as e:
            raise ConnectionError(f"Cannot open SQLite database '{config.database}': {e}") from e
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def close(self, connection: sqlite3.Connection) -> None:
        connection.close()

    def cursor(self, connection: sqlite3.Connection) -> sqlite3.Cursor:
        return connection.cursor()

    def execute(
        self,
        cursor: sqlite3.Cursor,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> sqlite3.Cursor:
        """Execute SQL and return the cursor."""
        bound = {name: _adapt_value(value) for name, value in (params or {}).items()}
        return cursor.execute(sql, bound)
