"""SQL query fingerprinting via libpg_query."""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from pgbridge.buffers import encode_input
from pgbridge.lifecycle import copy_string, invoke
from pgbridge.options import ParseMode, ParserFlags, encode_options, validate_mode

if TYPE_CHECKING:
    from pgbridge.buffers import SqlInput


class QueryFingerprint(NamedTuple):
    """Result of fingerprinting a SQL query.

    Attributes:
        value: The uint64 numeric hash.
        text: The canonical textual (hexadecimal) form of the fingerprint.
    """

    value: int
    text: str


def fingerprint(
    query: SqlInput, *, mode: int = ParseMode.DEFAULT, flags: int = ParserFlags.NONE
) -> QueryFingerprint:
    """Compute a structural fingerprint of a SQL query.

    Calls libpg_query's ``pg_query_fingerprint_opts`` to produce a hash that identifies structurally equivalent
    queries regardless of literal values. Identical input and options always yield the same fingerprint.

    Args:
        query: A SQL string, or NUL-terminated UTF-8 bytes.
        mode: Grammar entry point.
        flags: :class:`ParserFlags` controlling string literal handling.

    Returns:
        A ``QueryFingerprint`` containing the numeric fingerprint and its text form.

    Raises:
        QueryError: If the query cannot be parsed.

    Example:
        >>> result = fingerprint("SELECT * FROM users WHERE id = 1")
        >>> result.text  # doctest: +SKIP
        '0ca858a0484f5826'
        >>> result == fingerprint("SELECT * FROM users WHERE id = 2")
        True
    """
    options = encode_options(validate_mode(mode), flags)
    with encode_input(query) as buf, invoke("fingerprint_opts", buf.pointer, options) as result:
        fp = result.check()
        return QueryFingerprint(value=fp.fingerprint, text=copy_string(fp.fingerprint_str) or "")
