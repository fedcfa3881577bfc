"""SQL parameter normalization and binding.

Converts `:name` parameter syntax to driver-specific format.
Handles string literal exclusion and PostgreSQL `::typecast` syntax.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import TYPE_CHECKING, Any, NamedTuple

from snappy_sql.core.enums import DbType
from snappy_sql.core.exceptions import ConversionError

if TYPE_CHECKING:
    from snappy_sql.mapping.conversion import ValueToDb

# Matches :name but not ::typecast and not inside words
# Negative lookbehind for : (handles ::), \w (handles mid-word colons)
_PARAM_PATTERN = re.compile(r"(?<![:\w]):([a-zA-Z_]\w*)")

# Matches single-quoted string literals (with escaped quotes handled)
_STRING_LITERAL_PATTERN = re.compile(r"'(?:[^'\\]|\\.)*'")


class TypedParam(NamedTuple):
    """A query parameter encoded through the engine's ValueToDb converter."""

    value: Any
    db_type: DbType


def normalize_params(sql: str, paramstyle: str) -> str:
    """Convert :name parameters to the target param style.

    Args:
        sql: SQL string with :name parameters.
        paramstyle: Target style - 'named' (no conversion) or 'pyformat' (%(name)s).

    Returns:
        SQL with parameters converted to the target style.
    """
    if paramstyle == "named":
        return sql
    return _convert_to_pyformat(sql)


@lru_cache(maxsize=256)
def _convert_to_pyformat(sql: str) -> str:
    """Convert :name params to %(name)s, preserving string literals."""
    # Literal % must be doubled once the driver interprets pyformat markers
    parts: list[str] = []
    last_end = 0

    for match in _STRING_LITERAL_PATTERN.finditer(sql):
        start, end = match.span()
        if start > last_end:
            parts.append(_convert_segment(sql[last_end:start]))
        parts.append(match.group().replace("%", "%%"))
        last_end = end

    if last_end < len(sql):
        parts.append(_convert_segment(sql[last_end:]))

    return "".join(parts)


def _convert_segment(segment: str) -> str:
    return _PARAM_PATTERN.sub(r"%(\1)s", segment.replace("%", "%%"))


def bind_params(
    params: dict[str, Any] | None,
    value_to_db: ValueToDb,
) -> dict[str, Any]:
    """Encode ad-hoc query parameters.

    * ``TypedParam`` values go through *value_to_db* with their stored type.
    * Other values are bound as-is; ``None`` binds as SQL NULL.

    Raises:
        ConversionError: If the encoder rejects a ``TypedParam`` value.
    """
    if not params:
        return {}
    bound: dict[str, Any] = {}
    for name, value in params.items():
        if isinstance(value, TypedParam):
            bound[name] = _encode_typed(value_to_db, name, value)
        else:
            bound[name] = value
    return bound


def _encode_typed(value_to_db: ValueToDb, name: str, param: TypedParam) -> Any:
    try:
        return value_to_db.convert_value(param.value, param.db_type)
    except ConversionError:
        raise
    except (ValueError, TypeError, KeyError, ArithmeticError) as e:
        raise ConversionError(
            f"Cannot convert {param.value!r} for parameter '{name}' ({param.db_type.value}): {e}"
        ) from e
