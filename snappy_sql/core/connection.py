"""Connection configuration and management.

ConnectionConfig is a Pydantic model for type-safe connection config.
ConnectionManager loads the adapter for the configured driver and opens
one connection per logical operation; pooling is left to the caller.
"""

from __future__ import annotations

import importlib
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel

from snappy_sql.core.enums import DatabaseBackend
from snappy_sql.core.exceptions import AdapterError


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    driver: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str
    extra: dict[str, Any] = {}


# Adapter module mapping: backend → (module_path, class_name)
_ADAPTER_MAP: dict[DatabaseBackend, tuple[str, str]] = {
    DatabaseBackend.SQLITE: ("snappy_sql.adapters.sqlite", "SqliteSyncAdapter"),
    DatabaseBackend.POSTGRESQL: ("snappy_sql.adapters.postgresql", "PostgresqlSyncAdapter"),
}


def _load_adapter(driver: str) -> Any:
    """Load an adapter by driver name."""
    try:
        backend = DatabaseBackend(driver.lower())
    except ValueError:
        raise AdapterError(f"Unsupported database driver: {driver}") from None

    module_path, cls_name = _ADAPTER_MAP[backend]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{driver}': {e}") from e


class ConnectionManager:
    """Connection provider backed by a SyncAdapter."""

    def __init__(self, config: ConnectionConfig, adapter: Any | None = None) -> None:
        self.config = config
        self._adapter = adapter if adapter is not None else _load_adapter(config.driver)

    @property
    def adapter(self) -> Any:
        return self._adapter

    def open(self) -> Any:
        """Open a new connection. Raises ConnectionError on failure."""
        return self._adapter.connect(self.config)

    def close(self, connection: Any) -> None:
        self._adapter.close(connection)

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        """Open a connection for the duration of the block, then close it."""
        connection = self.open()
        try:
            yield connection
        finally:
            self.close(connection)
