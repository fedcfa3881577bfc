"""Forward-only result cursor with by-name column access.

Wraps a DB-API cursor. Handles both tuple-like rows and dict-like rows
from different adapters.
"""

from __future__ import annotations

from typing import Any

from snappy_sql.core.exceptions import ColumnMissingError, MappingError


def _row_to_dict(row: Any, columns: list[str]) -> dict[str, Any]:
    # Already dict-like (e.g., psycopg dict_row)
    if isinstance(row, dict):
        return dict(row)
    return dict(zip(columns, row, strict=True))


class RowCursor:
    """Cursor over a statement's result rows.

    ``advance()`` moves to the next row and reports whether one exists;
    ``get_value()`` reads a raw column value of the current row by name.
    Lookup is exact first, then case-insensitive.
    """

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        description = cursor.description
        self._columns: list[str] = [desc[0] for desc in description] if description else []
        self._folded = {name.lower(): name for name in reversed(self._columns)}
        self._row: dict[str, Any] | None = None
        self._exhausted = description is None

    @property
    def column_names(self) -> list[str]:
        return list(self._columns)

    def advance(self) -> bool:
        """Move to the next row. Returns False once the cursor is exhausted."""
        if self._exhausted:
            self._row = None
            return False
        row = self._cursor.fetchone()
        if row is None:
            self._exhausted = True
            self._row = None
            return False
        self._row = _row_to_dict(row, self._columns)
        return True

    def has_column(self, name: str) -> bool:
        return name in self._columns or name.lower() in self._folded

    def get_value(self, name: str) -> Any:
        """Return the raw value of column *name* in the current row."""
        if self._row is None:
            raise MappingError("Cursor is not positioned on a row")
        try:
            return self._row[name]
        except KeyError:
            pass
        folded = self._folded.get(name.lower())
        if folded is None:
            raise ColumnMissingError(name, self._columns)
        return self._row[folded]

    def first_value(self) -> Any:
        """Return the first column of the current row."""
        if self._row is None:
            raise MappingError("Cursor is not positioned on a row")
        return next(iter(self._row.values()))
