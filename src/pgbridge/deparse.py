"""SQL query deparsing and comment extraction via libpg_query."""

from __future__ import annotations

import ctypes
from ctypes import POINTER
from typing import TYPE_CHECKING

from pgbridge.buffers import encode_input
from pgbridge.lifecycle import check_count, copy_string, invoke
from pgbridge.native import PgQueryProtobuf, PostgresDeparseComment, PostgresDeparseOpts
from pgbridge.options import DeparseComment, DeparseOptions

if TYPE_CHECKING:
    from collections.abc import Sequence

    from google.protobuf.message import Message

    from pgbridge.buffers import SqlInput
    from pgbridge.native import PgQueryDeparseCommentsResult


def _native_options(options: DeparseOptions, comments: Sequence[DeparseComment]) -> PostgresDeparseOpts:
    """Build the by-value ``PostgresDeparseOpts`` struct.

    The returned struct keeps references to the comment records and their pointer array in ``_objects``, so they stay
    alive as long as the struct does.
    """
    opts = PostgresDeparseOpts(
        pretty_print=options.pretty_print,
        indent_size=options.indent_size,
        max_line_length=options.max_line_length,
        trailing_newline=options.trailing_newline,
        commas_start_of_line=options.commas_start_of_line,
    )
    if comments:
        records = [
            PostgresDeparseComment(
                match_location=c.match_location,
                newlines_before_comment=c.newlines_before,
                newlines_after_comment=c.newlines_after,
                str=c.text.encode("utf-8"),
            )
            for c in comments
        ]
        array = (POINTER(PostgresDeparseComment) * len(records))(*(ctypes.pointer(r) for r in records))
        opts.comments = ctypes.cast(array, POINTER(POINTER(PostgresDeparseComment)))
        opts.comment_count = len(records)
    return opts


def deparse(
    tree: Message | bytes,
    options: DeparseOptions | None = None,
    *,
    comments: Sequence[DeparseComment] = (),
) -> str:
    """Convert a protobuf parse tree back into a SQL string.

    Without options or comments this calls ``pg_query_deparse_protobuf`` and returns canonical single-line SQL.
    Otherwise it calls ``pg_query_deparse_protobuf_opts``; when only *comments* are given, default
    :class:`DeparseOptions` apply.

    Note:
        The deparsed SQL is canonicalized by libpg_query and may differ from the original query in whitespace, casing,
        or parenthesization while remaining semantically equivalent.

    Args:
        tree: A ``ParseResult`` protobuf message (as returned by :func:`pgbridge.parse`), or its serialized bytes.
        options: Pretty-printing controls.
        comments: Comments to re-attach, typically from :func:`extract_comments` on the original SQL.

    Returns:
        The deparsed SQL string.

    Raises:
        QueryError: If the parse tree cannot be deparsed.

    Example:
        >>> from pgbridge import parse, deparse
        >>> deparse(parse("SELECT id FROM users"))
        'SELECT id FROM users'
    """
    data = tree if isinstance(tree, (bytes, bytearray)) else tree.SerializeToString()
    buf = ctypes.create_string_buffer(bytes(data))
    pbuf = PgQueryProtobuf(len=len(data), data=ctypes.cast(buf, ctypes.c_void_p).value)

    if options is None and not comments:
        with invoke("deparse_protobuf", pbuf) as result:
            return copy_string(result.check().query) or ""

    opts = _native_options(options or DeparseOptions(), comments)
    with invoke("deparse_protobuf_opts", pbuf, opts) as result:
        return copy_string(result.check().query) or ""


def _comments(result: PgQueryDeparseCommentsResult) -> list[DeparseComment]:
    comments: list[DeparseComment] = []
    if not result.comments:
        return comments
    for i in range(check_count(result.comment_count, "comment count")):
        ptr = result.comments[i]
        if not ptr:
            continue
        record = ptr.contents
        comments.append(
            DeparseComment(
                match_location=record.match_location,
                newlines_before=record.newlines_before_comment,
                newlines_after=record.newlines_after_comment,
                text=copy_string(record.str) or "",
            )
        )
    return comments


def extract_comments(query: SqlInput) -> list[DeparseComment]:
    """Collect the comments in a SQL string with their positions.

    Calls ``pg_query_deparse_comments_for_query``. Feed the result to :func:`deparse` to keep comments when
    re-rendering a modified tree.

    Args:
        query: A SQL string, or NUL-terminated UTF-8 bytes.

    Returns:
        The comments in source order. Empty when the query has none.

    Raises:
        QueryError: If the query cannot be scanned.

    Example:
        >>> [c.text for c in extract_comments("SELECT 1 -- one")]
        ['-- one']
    """
    with encode_input(query) as buf, invoke("deparse_comments_for_query", buf.pointer) as result:
        return _comments(result.check())
