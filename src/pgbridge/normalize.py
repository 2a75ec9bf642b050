"""SQL query normalization via libpg_query."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pgbridge.buffers import encode_input
from pgbridge.lifecycle import copy_string, invoke

if TYPE_CHECKING:
    from pgbridge.buffers import SqlInput


def _normalize(operation: str, query: SqlInput) -> str:
    with encode_input(query) as buf, invoke(operation, buf.pointer) as result:
        return copy_string(result.check().normalized_query) or ""


def normalize(query: SqlInput) -> str:
    """Normalize a SQL query by replacing literal constants with placeholders.

    Calls libpg_query's ``pg_query_normalize`` to replace literal values (strings, numbers, etc.) with parameter
    placeholders (``$1``, ``$2``, ...). This is useful for grouping structurally equivalent queries. Normalizing an
    already-normalized query returns it unchanged.

    Args:
        query: A SQL string, or NUL-terminated UTF-8 bytes.

    Returns:
        The normalized query. May be empty.

    Raises:
        QueryError: If the query cannot be parsed.

    Example:
        >>> normalize("SELECT * FROM users WHERE id = 42 AND name = 'Alice'")
        'SELECT * FROM users WHERE id = $1 AND name = $2'
    """
    return _normalize("normalize", query)


def normalize_utility(query: SqlInput) -> str:
    """Normalize utility (DDL and other non-DML) statements.

    Calls ``pg_query_normalize_utility``, which additionally replaces constants inside utility statements such as
    ``CREATE USER ... PASSWORD 'secret'``.

    Raises:
        QueryError: If the query cannot be parsed.
    """
    return _normalize("normalize_utility", query)
