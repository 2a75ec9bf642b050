"""Parser option bitfields and deparse options.

libpg_query's ``*_opts`` entry points take a single ``int`` that packs the parse mode into the low four bits and the
string-handling flags into higher bits. The public API keeps mode and flags as separate values and only combines them
here, at the boundary.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

PARSE_MODE_BITS = 4
PARSE_MODE_BITMASK = (1 << PARSE_MODE_BITS) - 1


class ParseMode(enum.IntEnum):
    """Grammar entry point used by the parser (mirrors ``PgQueryParseMode``)."""

    DEFAULT = 0
    TYPE_NAME = 1
    PLPGSQL_EXPR = 2
    PLPGSQL_ASSIGN1 = 3
    PLPGSQL_ASSIGN2 = 4
    PLPGSQL_ASSIGN3 = 5


class ParserFlags(enum.IntFlag):
    """String-literal handling switches, combinable with ``|``.

    Bit values match the ``PG_QUERY_DISABLE_*`` macros in ``pg_query.h``. Bits not listed here are passed to the
    engine unchanged.
    """

    NONE = 0
    DISABLE_BACKSLASH_QUOTE = 1 << 4
    DISABLE_STANDARD_CONFORMING_STRINGS = 1 << 5
    DISABLE_ESCAPE_STRING_WARNING = 1 << 6


def validate_mode(value: int) -> ParseMode:
    """Coerce *value* to a :class:`ParseMode`.

    Raises:
        ValueError: If *value* is not one of the engine's parse modes.
    """
    try:
        return ParseMode(value)
    except ValueError:
        raise ValueError(f"Unknown parse mode {value!r}; expected 0-{int(max(ParseMode))}") from None


def encode_options(mode: int = ParseMode.DEFAULT, flags: int = ParserFlags.NONE) -> int:
    """Pack a parse mode and flags into the engine's ``parser_options`` integer.

    The mode is masked to its 4-bit field; flags are OR-ed in untouched.

    Example:
        >>> encode_options(ParseMode.PLPGSQL_EXPR, ParserFlags.DISABLE_BACKSLASH_QUOTE)
        18
    """
    return (int(mode) & PARSE_MODE_BITMASK) | int(flags)


def decode_options(bits: int) -> tuple[ParseMode, ParserFlags]:
    """Split a ``parser_options`` integer back into mode and flags.

    Raises:
        ValueError: If the mode nibble holds an unknown parse mode.
    """
    return validate_mode(bits & PARSE_MODE_BITMASK), ParserFlags(bits & ~PARSE_MODE_BITMASK)


@dataclass(frozen=True)
class DeparseOptions:
    """Pretty-printing controls for :func:`pgbridge.deparse`.

    Attributes:
        pretty_print: Emit line breaks and indentation.
        indent_size: Spaces per indentation level.
        max_line_length: Wrapping hint; ``0`` means no limit.
        trailing_newline: Append a newline to the output.
        commas_start_of_line: Put commas at the start of wrapped lines instead of the end.
    """

    pretty_print: bool = True
    indent_size: int = 2
    max_line_length: int = 0
    trailing_newline: bool = True
    commas_start_of_line: bool = False

    def __post_init__(self) -> None:
        if self.indent_size < 0:
            raise ValueError(f"indent_size must be >= 0, got {self.indent_size}")
        if self.max_line_length < 0:
            raise ValueError(f"max_line_length must be >= 0, got {self.max_line_length}")


@dataclass(frozen=True)
class DeparseComment:
    """A comment located in SQL text, as reported by :func:`pgbridge.extract_comments`.

    Passing these back to :func:`pgbridge.deparse` re-attaches them to the deparsed output.

    Attributes:
        match_location: Byte offset of the token the comment is attached to.
        newlines_before: Newlines immediately before the comment.
        newlines_after: Newlines immediately after the comment.
        text: The comment including its delimiters (``-- hi`` or ``/* hi */``).
    """

    match_location: int
    newlines_before: int
    newlines_after: int
    text: str
