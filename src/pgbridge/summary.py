"""Statement summaries via libpg_query."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pgbridge.buffers import encode_input
from pgbridge.lifecycle import copy_protobuf, invoke
from pgbridge.options import ParseMode, ParserFlags, encode_options, validate_mode

if TYPE_CHECKING:
    from pgbridge.buffers import SqlInput


def summary(
    query: SqlInput,
    *,
    mode: int = ParseMode.DEFAULT,
    flags: int = ParserFlags.NONE,
    truncate_limit: int = -1,
) -> bytes:
    """Summarize the tables, functions and filter columns a query touches.

    Calls ``pg_query_summary`` and returns the serialized summary protobuf message unchanged; decode it with the
    summary message class of the libpg_query release the library was built from.

    Args:
        query: A SQL string, or NUL-terminated UTF-8 bytes.
        mode: Grammar entry point.
        flags: :class:`ParserFlags` controlling string literal handling.
        truncate_limit: Length limit for the query text embedded in the summary. ``-1`` (default) omits that field
            entirely; any limit ``>= 0`` adds it, truncated to at most that many bytes.

    Returns:
        The serialized summary message (possibly empty).

    Raises:
        QueryError: If the query cannot be parsed.
    """
    options = encode_options(validate_mode(mode), flags)
    with encode_input(query) as buf, invoke("summary", buf.pointer, options, truncate_limit) as result:
        return copy_protobuf(result.check().summary)
