"""Error handling for pgbridge.

Provides the public QueryError exception and the translator that builds it from the PgQueryError record attached to
libpg_query result structs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pgbridge.native import PgQueryError

UNKNOWN_ERROR_MESSAGE = "unknown error"


class QueryError(Exception):
    """Structured error raised when libpg_query rejects its input.

    Every pgbridge function that calls into libpg_query (:func:`~pgbridge.parse`, :func:`~pgbridge.normalize`,
    :func:`~pgbridge.fingerprint`, :func:`~pgbridge.split`, :func:`~pgbridge.scan`, :func:`~pgbridge.deparse`,
    :func:`~pgbridge.extract_comments` and the rest) may raise this exception. The error carries the same structured
    fields that the C library provides, so callers can build precise diagnostics without parsing the message string.
    All fields are copied out of engine memory before that memory is released.

    ``cursor_position`` is a **1-based byte offset** into the original UTF-8 SQL pointing to the token where the error
    was detected. When it is ``0`` the position is unknown.

    The ``function``, ``file``, and ``line`` fields refer to the *internal C source* of libpg_query / PostgreSQL's
    parser, not to your Python code.

    Attributes:
        message: Human-readable error description. Never empty.
        function: Internal C function name where the error originated, or ``None``.
        file: Internal C source file where the error originated, or ``None``.
        line: Line number in the internal C source file (``0`` when unavailable).
        cursor_position: 1-based byte offset where the error was detected (``0`` when unavailable).
        context: Additional context from the parser (e.g., PL/pgSQL function name), or ``None``.

    Example:
        >>> from pgbridge import parse, QueryError
        >>> sql = "SELECT * FORM users"
        >>> try:
        ...     parse(sql)
        ... except QueryError as e:
        ...     print(e.message)
        syntax error at or near "FORM"
    """

    def __init__(
        self,
        message: str,
        *,
        function: str | None = None,
        file: str | None = None,
        line: int = 0,
        cursor_position: int = 0,
        context: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.function = function
        self.file = file
        self.line = line
        self.cursor_position = cursor_position
        self.context = context

    def describe(self) -> str:
        """Return a multi-line description including every populated field."""
        lines = [f"{type(self).__name__}: {self.message}"]
        if self.context:
            lines.append(f"Context: {self.context}")
        if self.function:
            lines.append(f"Function: {self.function}")
        if self.file or self.line > 0:
            location = self.file or ""
            if self.line > 0:
                location += f":{self.line}"
            lines.append(f"Location: {location}")
        if self.cursor_position > 0:
            lines.append(f"Cursor: {self.cursor_position}")
        return "\n".join(lines)


def _copy_text(value: bytes | None) -> str | None:
    return value.decode("utf-8", errors="replace") if value else None


def translate_error(record: PgQueryError) -> QueryError:
    """Build a :class:`QueryError` from a native ``PgQueryError`` record.

    Must run while the result owning *record* is still alive: every string is copied into Python memory here.

    Args:
        record: The dereferenced ``PgQueryError`` struct.

    Returns:
        The translated exception (not raised).
    """
    return QueryError(
        _copy_text(record.message) or UNKNOWN_ERROR_MESSAGE,
        function=_copy_text(record.funcname),
        file=_copy_text(record.filename),
        line=record.lineno,
        cursor_position=record.cursorpos,
        context=_copy_text(record.context),
    )
