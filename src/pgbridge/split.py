"""SQL statement splitting via libpg_query."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, NamedTuple

from pgbridge.buffers import encode_input
from pgbridge.lifecycle import check_count, invoke

if TYPE_CHECKING:
    from pgbridge.buffers import SqlInput
    from pgbridge.native import PgQuerySplitResult

SplitMethod = Literal["scanner", "parser"]

_SPLIT_OPERATIONS = {
    "scanner": "split_with_scanner",
    "parser": "split_with_parser",
}


class StatementSpan(NamedTuple):
    """Byte range of one statement within the UTF-8 encoded input.

    The range is ``[location, location + length)`` in bytes, not characters.

    Attributes:
        location: Byte offset of the statement's first byte.
        length: Length of the statement in bytes.
    """

    location: int
    length: int

    @property
    def end(self) -> int:
        return self.location + self.length

    def as_slice(self) -> slice:
        return slice(self.location, self.end)

    def extract(self, buffer: bytes | bytearray | memoryview) -> str:
        """Decode this statement's text from the UTF-8 buffer the spans were computed against."""
        return bytes(buffer[self.location : self.end]).decode("utf-8")


def _operation_for(method: str) -> str:
    operation = _SPLIT_OPERATIONS.get(method)
    if operation is None:
        raise ValueError(f"Unknown split method {method!r}; expected 'scanner' or 'parser'")
    return operation


def _spans(result: PgQuerySplitResult) -> list[StatementSpan]:
    count = check_count(result.n_stmts, "statement count")
    if not result.stmts:
        return []
    spans: list[StatementSpan] = []
    for i in range(count):
        stmt_ptr = result.stmts[i]
        if not stmt_ptr:
            # One span per reported statement; a missing entry is an empty span.
            spans.append(StatementSpan(0, 0))
            continue
        stmt = stmt_ptr.contents
        spans.append(
            StatementSpan(
                check_count(stmt.stmt_location, "statement location"),
                check_count(stmt.stmt_len, "statement length"),
            )
        )
    return spans


def split_spans(query: SqlInput, *, method: SplitMethod = "parser") -> list[StatementSpan]:
    """Locate each statement of a multi-statement SQL input as a byte span.

    Useful with NUL-terminated ``bytes`` input, where the spans index straight into the caller's buffer.

    Args:
        query: A SQL string, or NUL-terminated UTF-8 bytes. Spans for a ``str`` refer to its UTF-8 encoding.
        method: ``"parser"`` (default) or ``"scanner"``; see :func:`split`.

    Returns:
        One :class:`StatementSpan` per statement the engine reports, in input order. An entry the engine leaves
        NULL becomes the empty span ``StatementSpan(0, 0)``.

    Raises:
        QueryError: If the SQL causes a parse/scanner error.
        ValueError: If *method* is unknown or a bytes input is not NUL-terminated.

    Example:
        >>> sql = b"select 1; select 2;\\x00"
        >>> spans = split_spans(sql)
        >>> len(spans)
        2
        >>> spans[0].extract(sql)
        'select 1'
    """
    operation = _operation_for(method)
    with encode_input(query) as buf, invoke(operation, buf.pointer) as result:
        return _spans(result.check())


def split(query: SqlInput, *, method: SplitMethod = "parser") -> list[str]:
    """Split a multi-statement SQL string into individual statements.

    Calls the selected libpg_query split function to split the input into individual SQL statements. The ``"parser"``
    method (default) uses the full PostgreSQL parser for improved accuracy, while ``"scanner"`` uses a faster
    scanner-based approach that tolerates invalid SQL.

    Args:
        query: A SQL string potentially containing multiple statements, or NUL-terminated UTF-8 bytes.
        method: Which libpg_query splitter to use. ``"parser"`` (default) calls ``pg_query_split_with_parser`` for
            improved accuracy on valid SQL. ``"scanner"`` calls ``pg_query_split_with_scanner``, which tolerates
            malformed SQL but may miss some edge cases.

    Returns:
        A list of individual SQL statement strings.

    Raises:
        QueryError: If the SQL causes a parse/scanner error.
        ValueError: If *method* is not ``"scanner"`` or ``"parser"``.
    """
    operation = _operation_for(method)
    with encode_input(query) as buf, invoke(operation, buf.pointer) as result:
        spans = _spans(result.check())
        return [span.extract(buf.data) for span in spans]
