"""PL/pgSQL function parsing via libpg_query."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pgbridge.buffers import encode_input
from pgbridge.lifecycle import copy_string, invoke

if TYPE_CHECKING:
    from pgbridge.buffers import SqlInput


def parse_plpgsql(sql: SqlInput) -> list[dict[str, Any]]:
    """Parse a PL/pgSQL function into a structured representation.

    Calls libpg_query's ``pg_query_parse_plpgsql`` to parse a ``CREATE FUNCTION ... LANGUAGE plpgsql`` statement and
    returns the parsed function body as a list of dictionaries.

    Args:
        sql: A ``CREATE FUNCTION`` statement with ``LANGUAGE plpgsql``.

    Returns:
        A list of dictionaries describing the parsed PL/pgSQL function(s). Each dictionary contains keys like
        ``"PLpgSQL_function"`` with nested structure representing declarations, statements, and control flow.

    Raises:
        QueryError: If the input contains a syntax error.
    """
    with encode_input(sql) as buf, invoke("parse_plpgsql", buf.pointer) as result:
        funcs = copy_string(result.check().plpgsql_funcs)
    if not funcs:
        return []
    return json.loads(funcs)
