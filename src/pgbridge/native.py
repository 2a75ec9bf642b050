"""Low-level ctypes bindings to libpg_query.

This module loads the libpg_query shared library via ctypes, defines C struct
bindings for all result types, and declares function signatures. It is an
internal module; use the public pgbridge API instead.

The library is loaded lazily on first use (see :func:`get_lib`) so that the
package can be imported, and its pure-Python parts tested, on machines without
the shared library.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import platform
import threading
from ctypes import POINTER, Structure, c_bool, c_char_p, c_int, c_size_t, c_uint64, c_void_p
from pathlib import Path
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

# Struct layouts below are pinned to this libpg_query series. A new major
# version is a breaking change to the binary contract.
PG_MAJOR_VERSION = 17

LIBRARY_ENV_VAR = "PGBRIDGE_LIBRARY"

_VENDORED_LIB_NAMES = {
    "Linux": "libpg_query.so",
    "Darwin": "libpg_query.dylib",
    "Windows": "pg_query.dll",
}


def _load_libpg_query() -> ctypes.CDLL:
    """Load the libpg_query shared library.

    Resolution order:

    1. An explicit path in the ``PGBRIDGE_LIBRARY`` environment variable.
    2. A vendored copy bundled alongside this module.
    3. ``ctypes.util.find_library`` for system-installed libraries.

    Returns:
        The loaded CDLL instance.

    Raises:
        OSError: If libpg_query cannot be found via any method.
    """
    explicit = os.environ.get(LIBRARY_ENV_VAR)
    if explicit:
        logger.info("loading libpg_query from %s=%s", LIBRARY_ENV_VAR, explicit)
        return ctypes.CDLL(explicit)

    lib_name = _VENDORED_LIB_NAMES.get(platform.system())
    if lib_name is not None:
        vendored = Path(__file__).parent / lib_name
        if vendored.is_file():
            logger.info("loading vendored libpg_query from %s", vendored)
            return ctypes.CDLL(str(vendored))

    path = ctypes.util.find_library("pg_query")
    if path is not None:
        logger.info("loading system libpg_query from %s", path)
        return ctypes.CDLL(path)

    raise OSError(
        "libpg_query shared library not found. "
        "Install pgbridge from a pre-built wheel, set PGBRIDGE_LIBRARY to the library path, or "
        "install libpg_query and ensure it is on your library search path "
        "(e.g. LD_LIBRARY_PATH on Linux, DYLD_LIBRARY_PATH on macOS)."
    )


# ---------------------------------------------------------------------------
# Struct definitions
# ---------------------------------------------------------------------------


class PgQueryError(Structure):
    """Mirrors the C PgQueryError struct."""

    _fields_ = [
        ("message", c_char_p),
        ("funcname", c_char_p),
        ("filename", c_char_p),
        ("lineno", c_int),
        ("cursorpos", c_int),
        ("context", c_char_p),
    ]


class PgQueryProtobuf(Structure):
    """Mirrors the C PgQueryProtobuf struct (len + data).

    Uses ``c_void_p`` for ``data`` instead of ``c_char_p`` because protobuf
    binary payloads contain embedded null bytes and ``c_char_p`` would
    silently truncate at the first null.
    """

    _fields_ = [
        ("len", c_size_t),
        ("data", c_void_p),
    ]


class PgQueryScanResult(Structure):
    """Result from pg_query_scan (binary protobuf scan tokens)."""

    _fields_ = [
        ("pbuf", PgQueryProtobuf),
        ("stderr_buffer", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


class PgQueryParseResult(Structure):
    """Result from pg_query_parse (JSON parse tree)."""

    _fields_ = [
        ("parse_tree", c_char_p),
        ("stderr_buffer", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


class PgQueryProtobufParseResult(Structure):
    """Result from pg_query_parse_protobuf (binary protobuf parse tree)."""

    _fields_ = [
        ("parse_tree", PgQueryProtobuf),
        ("stderr_buffer", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


class PgQuerySplitStmt(Structure):
    """Mirrors the C PgQuerySplitStmt struct."""

    _fields_ = [
        ("stmt_location", c_int),
        ("stmt_len", c_int),
    ]


class PgQuerySplitResult(Structure):
    """Result from pg_query_split_with_scanner / pg_query_split_with_parser."""

    _fields_ = [
        ("stmts", POINTER(POINTER(PgQuerySplitStmt))),
        ("n_stmts", c_int),
        ("stderr_buffer", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


class PgQueryDeparseResult(Structure):
    """Result from pg_query_deparse_protobuf."""

    _fields_ = [
        ("query", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


class PostgresDeparseComment(Structure):
    """Mirrors the C PostgresDeparseComment struct from postgres_deparse.h."""

    _fields_ = [
        ("match_location", c_int),
        ("newlines_before_comment", c_int),
        ("newlines_after_comment", c_int),
        ("str", c_char_p),
    ]


class PostgresDeparseOpts(Structure):
    """Mirrors the C PostgresDeparseOpts struct from postgres_deparse.h.

    Passed **by value** to ``pg_query_deparse_protobuf_opts``, so field order,
    widths and padding must match the header exactly. The ``bool`` fields are
    single bytes.
    """

    _fields_ = [
        ("comments", POINTER(POINTER(PostgresDeparseComment))),
        ("comment_count", c_size_t),
        ("pretty_print", c_bool),
        ("indent_size", c_int),
        ("max_line_length", c_int),
        ("trailing_newline", c_bool),
        ("commas_start_of_line", c_bool),
    ]


class PgQueryDeparseCommentsResult(Structure):
    """Result from pg_query_deparse_comments_for_query."""

    _fields_ = [
        ("comments", POINTER(POINTER(PostgresDeparseComment))),
        ("comment_count", c_size_t),
        ("error", POINTER(PgQueryError)),
    ]


class PgQueryPlpgsqlParseResult(Structure):
    """Result from pg_query_parse_plpgsql (JSON function list)."""

    _fields_ = [
        ("plpgsql_funcs", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


class PgQueryFingerprintResult(Structure):
    """Result from pg_query_fingerprint."""

    _fields_ = [
        ("fingerprint", c_uint64),
        ("fingerprint_str", c_char_p),
        ("stderr_buffer", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


class PgQueryNormalizeResult(Structure):
    """Result from pg_query_normalize."""

    _fields_ = [
        ("normalized_query", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


class PgQuerySummaryParseResult(Structure):
    """Result from pg_query_summary (binary protobuf summary)."""

    _fields_ = [
        ("summary", PgQueryProtobuf),
        ("stderr_buffer", c_char_p),
        ("error", POINTER(PgQueryError)),
    ]


# ---------------------------------------------------------------------------
# Function signatures: {name: ([argtypes], restype)}
# ---------------------------------------------------------------------------

SIGNATURES: dict[str, tuple[list[Any], Any]] = {
    # -- Core functions --
    "pg_query_normalize": ([c_char_p], PgQueryNormalizeResult),
    "pg_query_normalize_utility": ([c_char_p], PgQueryNormalizeResult),
    "pg_query_scan": ([c_char_p], PgQueryScanResult),
    "pg_query_parse": ([c_char_p], PgQueryParseResult),
    "pg_query_parse_opts": ([c_char_p, c_int], PgQueryParseResult),
    "pg_query_parse_protobuf": ([c_char_p], PgQueryProtobufParseResult),
    "pg_query_parse_protobuf_opts": ([c_char_p, c_int], PgQueryProtobufParseResult),
    "pg_query_parse_plpgsql": ([c_char_p], PgQueryPlpgsqlParseResult),
    "pg_query_fingerprint": ([c_char_p], PgQueryFingerprintResult),
    "pg_query_fingerprint_opts": ([c_char_p, c_int], PgQueryFingerprintResult),
    "pg_query_split_with_scanner": ([c_char_p], PgQuerySplitResult),
    "pg_query_split_with_parser": ([c_char_p], PgQuerySplitResult),
    "pg_query_deparse_protobuf": ([PgQueryProtobuf], PgQueryDeparseResult),
    "pg_query_deparse_protobuf_opts": ([PgQueryProtobuf, PostgresDeparseOpts], PgQueryDeparseResult),
    "pg_query_deparse_comments_for_query": ([c_char_p], PgQueryDeparseCommentsResult),
    "pg_query_summary": ([c_char_p, c_int, c_int], PgQuerySummaryParseResult),
    # -- Free functions --
    "pg_query_free_normalize_result": ([PgQueryNormalizeResult], None),
    "pg_query_free_scan_result": ([PgQueryScanResult], None),
    "pg_query_free_parse_result": ([PgQueryParseResult], None),
    "pg_query_free_split_result": ([PgQuerySplitResult], None),
    "pg_query_free_deparse_result": ([PgQueryDeparseResult], None),
    "pg_query_free_deparse_comments_result": ([PgQueryDeparseCommentsResult], None),
    "pg_query_free_protobuf_parse_result": ([PgQueryProtobufParseResult], None),
    "pg_query_free_plpgsql_parse_result": ([PgQueryPlpgsqlParseResult], None),
    "pg_query_free_fingerprint_result": ([PgQueryFingerprintResult], None),
    "pg_query_free_summary_parse_result": ([PgQuerySummaryParseResult], None),
    # -- Process-wide lifecycle --
    "pg_query_init": ([], None),
    "pg_query_exit": ([], None),
}


class Operation(NamedTuple):
    """An engine entry point paired with the free function for its result shape."""

    function: str
    free: str


OPERATIONS: dict[str, Operation] = {
    "normalize": Operation("pg_query_normalize", "pg_query_free_normalize_result"),
    "normalize_utility": Operation("pg_query_normalize_utility", "pg_query_free_normalize_result"),
    "scan": Operation("pg_query_scan", "pg_query_free_scan_result"),
    "parse": Operation("pg_query_parse", "pg_query_free_parse_result"),
    "parse_opts": Operation("pg_query_parse_opts", "pg_query_free_parse_result"),
    "parse_protobuf": Operation("pg_query_parse_protobuf", "pg_query_free_protobuf_parse_result"),
    "parse_protobuf_opts": Operation("pg_query_parse_protobuf_opts", "pg_query_free_protobuf_parse_result"),
    "parse_plpgsql": Operation("pg_query_parse_plpgsql", "pg_query_free_plpgsql_parse_result"),
    "fingerprint": Operation("pg_query_fingerprint", "pg_query_free_fingerprint_result"),
    "fingerprint_opts": Operation("pg_query_fingerprint_opts", "pg_query_free_fingerprint_result"),
    "split_with_scanner": Operation("pg_query_split_with_scanner", "pg_query_free_split_result"),
    "split_with_parser": Operation("pg_query_split_with_parser", "pg_query_free_split_result"),
    "deparse_protobuf": Operation("pg_query_deparse_protobuf", "pg_query_free_deparse_result"),
    "deparse_protobuf_opts": Operation("pg_query_deparse_protobuf_opts", "pg_query_free_deparse_result"),
    "deparse_comments_for_query": Operation(
        "pg_query_deparse_comments_for_query", "pg_query_free_deparse_comments_result"
    ),
    "summary": Operation("pg_query_summary", "pg_query_free_summary_parse_result"),
}


# ---------------------------------------------------------------------------
# Load library and declare function signatures
# ---------------------------------------------------------------------------

_lib: ctypes.CDLL | None = None
_lib_lock = threading.Lock()


def _declare(lib: ctypes.CDLL) -> ctypes.CDLL:
    for name, (argtypes, restype) in SIGNATURES.items():
        func = getattr(lib, name)
        func.argtypes = argtypes
        func.restype = restype
    return lib


def get_lib() -> ctypes.CDLL:
    """Return the process-wide libpg_query handle, loading it on first use.

    Raises:
        OSError: If the shared library cannot be located, or lacks one of the
            functions in :data:`SIGNATURES`.
    """
    global _lib
    if _lib is None:
        with _lib_lock:
            if _lib is None:
                try:
                    _lib = _declare(_load_libpg_query())
                except AttributeError as exc:
                    raise OSError(f"libpg_query is missing an expected symbol: {exc}") from exc
    return _lib


def is_available() -> bool:
    """Report whether libpg_query can be loaded in this process."""
    try:
        get_lib()
    except OSError:
        return False
    return True


def init() -> None:
    """Call ``pg_query_init``.

    Deprecated upstream and a no-op on current releases; exposed for
    completeness. Must not run concurrently with any other pgbridge operation.
    """
    get_lib().pg_query_init()


def exit() -> None:  # noqa: A001
    """Call ``pg_query_exit`` to release the engine's memory contexts.

    Only needed by long-running hosts that want to reclaim the engine's
    per-thread allocations. The caller must guarantee that no other pgbridge
    operation is in flight; operations never call this implicitly.
    """
    logger.warning("tearing down libpg_query memory contexts")
    get_lib().pg_query_exit()
