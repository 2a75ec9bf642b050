"""Python bindings to libpg_query via ctypes."""

from pgbridge.buffers import EncodedBuffer
from pgbridge.deparse import deparse, extract_comments
from pgbridge.errors import QueryError
from pgbridge.fingerprint import QueryFingerprint, fingerprint
from pgbridge.normalize import normalize, normalize_utility
from pgbridge.options import DeparseComment, DeparseOptions, ParseMode, ParserFlags, decode_options, encode_options
from pgbridge.parse import parse, parse_json
from pgbridge.plpgsql import parse_plpgsql
from pgbridge.scan import scan
from pgbridge.split import StatementSpan, split, split_spans
from pgbridge.summary import summary

__all__ = [
    "decode_options",
    "deparse",
    "DeparseComment",
    "DeparseOptions",
    "encode_options",
    "EncodedBuffer",
    "extract_comments",
    "fingerprint",
    "normalize_utility",
    "normalize",
    "parse_json",
    "parse_plpgsql",
    "parse",
    "ParseMode",
    "ParserFlags",
    "QueryError",
    "QueryFingerprint",
    "scan",
    "split_spans",
    "split",
    "StatementSpan",
    "summary",
]
