"""SQL query parsing via libpg_query."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pgbridge.buffers import encode_input
from pgbridge.lifecycle import copy_protobuf, copy_string, invoke
from pgbridge.options import ParseMode, ParserFlags, encode_options, validate_mode
from pgbridge.schema import pb2

if TYPE_CHECKING:
    from pgbridge.buffers import SqlInput


def parse(query: SqlInput, *, mode: int = ParseMode.DEFAULT, flags: int = ParserFlags.NONE) -> Any:
    """Parse a SQL query into a protobuf AST.

    Calls libpg_query's ``pg_query_parse_protobuf_opts`` and returns the deserialized ``ParseResult`` protobuf message
    containing the abstract syntax tree.

    Args:
        query: A SQL string, or UTF-8 bytes ending in ``b"\\x00"`` (passed to the engine without copying).
        mode: Grammar entry point, e.g. :attr:`ParseMode.TYPE_NAME` to parse a bare type name.
        flags: :class:`ParserFlags` controlling string literal handling.

    Returns:
        A ``ParseResult`` protobuf message with ``version`` (int) and ``stmts`` (list of ``RawStmt``) fields. Input
        with no statements yields an empty ``ParseResult``.

    Raises:
        QueryError: If the query contains a syntax error.
        ValueError: If *mode* is unknown or a bytes input is not NUL-terminated.
        DecodeError: If the tree nests deeper than the protobuf runtime's recursion limit (about 100 levels of
            subqueries or expressions).

    Example:
        >>> tree = parse("SELECT id, name FROM users WHERE active = true")
        >>> len(tree.stmts)
        1
        >>> tree.stmts[0].stmt.HasField("select_stmt")
        True
    """
    options = encode_options(validate_mode(mode), flags)
    with encode_input(query) as buf, invoke("parse_protobuf_opts", buf.pointer, options) as result:
        data = copy_protobuf(result.check().parse_tree)
    return pb2().ParseResult.FromString(data)


def parse_json(query: SqlInput, *, mode: int = ParseMode.DEFAULT, flags: int = ParserFlags.NONE) -> dict[str, Any]:
    """Parse a SQL query into libpg_query's JSON parse tree.

    Calls ``pg_query_parse_opts``. The JSON tree carries the same information as :func:`parse` without requiring the
    generated protobuf schema.

    Returns:
        The decoded JSON document (``{"version": ..., "stmts": [...]}``).

    Raises:
        QueryError: If the query contains a syntax error.

    Example:
        >>> parse_json("SELECT 1")["stmts"][0]["stmt"].keys()
        dict_keys(['SelectStmt'])
    """
    options = encode_options(validate_mode(mode), flags)
    with encode_input(query) as buf, invoke("parse_opts", buf.pointer, options) as result:
        tree = copy_string(result.check().parse_tree)
    if not tree:
        return {}
    return json.loads(tree)
