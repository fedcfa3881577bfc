"""Database adapter protocol.

Every adapter module MUST implement this protocol so the engine can run
the same generated statements against any supported driver.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from snappy_sql.core.connection import ConnectionConfig


@runtime_checkable
class SyncAdapter(Protocol):
    """Synchronous database adapter protocol."""

    @property
    def paramstyle(self) -> str:
        """Parameter binding style: 'named' (:name) or 'pyformat' (%(name)s)."""
        ...

    def connect(self, config: ConnectionConfig) -> Any:
        """Open a connection. Raises ConnectionError on failure."""
        ...

    def close(self, connection: Any) -> None:
        """Close a connection."""
        ...

    def cursor(self, connection: Any) -> Any:
        """Open a cursor on a connection."""
        ...

    def execute(
        self,
        cursor: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute SQL on *cursor* and return the cursor."""
        ...
