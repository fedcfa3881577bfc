"""Statement execution surface.

A Command binds one SQL statement to one driver cursor so batch writers
can rebind and re-execute it per instance without re-preparing the text.
"""

from __future__ import annotations

from typing import Any

from snappy_sql.core.cursor import RowCursor
from snappy_sql.core.params import normalize_params


class Command:
    """A SQL statement bound to a single cursor on a connection.

    Args:
        adapter: SyncAdapter used to open the cursor and execute.
        connection: Open driver connection owned by the caller.
        sql: Statement text with ``:name`` parameters.
    """

    def __init__(self, adapter: Any, connection: Any, sql: str) -> None:
        self._adapter = adapter
        self._sql = normalize_params(sql, adapter.paramstyle)
        self._cursor = adapter.cursor(connection)

    @property
    def sql(self) -> str:
        return self._sql

    def execute(self, params: dict[str, Any] | None = None) -> int:
        """Execute and return the affected row count."""
        cursor = self._adapter.execute(self._cursor, self._sql, params or {})
        return int(cursor.rowcount)

    def execute_scalar(self, params: dict[str, Any] | None = None) -> Any:
        """Execute and return the first column of the first row, or None."""
        cursor = self._adapter.execute(self._cursor, self._sql, params or {})
        if cursor.description is None:
            return None
        rows = cursor.fetchall()
        if not rows:
            return None
        row = rows[0]
        if isinstance(row, dict):
            return next(iter(row.values()))
        return row[0]

    def execute_reader(self, params: dict[str, Any] | None = None) -> RowCursor:
        """Execute and return a forward-only cursor over the result rows."""
        cursor = self._adapter.execute(self._cursor, self._sql, params or {})
        return RowCursor(cursor)

    def close(self) -> None:
        self._cursor.close()

    def __enter__(self) -> Command:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()
