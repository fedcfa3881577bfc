"""PostgreSQL adapter using psycopg (v3+)."""

from __future__ import annotations

from typing import Any

from snappy_sql.core.connection import ConnectionConfig
from snappy_sql.core.exceptions import ConnectionError  # noqa: A004


def _build_conninfo(config: ConnectionConfig) -> str:
    """Build a libpq connection string from config fields."""
    parts: list[str] = []
    if config.host is not None:
        parts.append(f"host={config.host}")
    if config.port is not None:
        parts.append(f"port={config.port}")
    if config.user is not None:
        parts.append(f"user={config.user}")
    if config.password is not None:
        parts.append(f"password={config.password}")
    parts.append(f"dbname={config.database}")
    return " ".join(parts)


class PostgresqlSyncAdapter:
    """Synchronous PostgreSQL adapter using psycopg (v3+)."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    def connect(self, config: ConnectionConfig) -> Any:
        import psycopg
        import psycopg.rows

        try:
            return psycopg.connect(
                _build_conninfo(config), row_factory=psycopg.rows.dict_row, **config.extra
            )
        except psycopg.OperationalError as e:
            raise ConnectionError(f"Cannot connect to PostgreSQL '{config.database}': {e}") from e

    def close(self, connection: Any) -> None:
        connection.close()

    def cursor(self, connection: Any) -> Any:
        return connection.cursor()

    def execute(
        self,
        cursor: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return cursor.execute(sql, params or {})
