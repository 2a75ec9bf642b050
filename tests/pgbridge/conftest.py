from __future__ import annotations

import ctypes
from ctypes import POINTER, c_void_p
from typing import TYPE_CHECKING, Any

import pytest

from pgbridge import QueryError, deparse, native, parse, schema
from pgbridge.native import (
    PgQueryDeparseCommentsResult,
    PgQueryDeparseResult,
    PgQueryError,
    PgQueryFingerprintResult,
    PgQueryNormalizeResult,
    PgQueryParseResult,
    PgQueryProtobuf,
    PgQueryProtobufParseResult,
    PgQueryScanResult,
    PgQuerySplitResult,
    PgQuerySplitStmt,
    PostgresDeparseComment,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from types import ModuleType

# -- Native-library gating ------------------------------------------------------


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip ``native``-marked tests when libpg_query or the generated schema is missing."""
    if native.is_available() and schema.is_available():
        return
    skip = pytest.mark.skip(reason="libpg_query shared library or generated pg_query_pb2 not available")
    for item in items:
        if "native" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def pb() -> ModuleType:
    return schema.pb2()


# -- Parse-result fixtures (function scope for independent protobuf instances) --


@pytest.fixture
def select1_tree() -> Any:
    return parse("SELECT 1")


@pytest.fixture
def create_table_tree() -> Any:
    return parse("CREATE TABLE t (id int PRIMARY KEY, name text)")


@pytest.fixture
def multi_stmt_tree() -> Any:
    return parse("SELECT 1; SELECT 2")


# -- Assertion helpers ---------------------------------------------------------


def assert_roundtrip(sql: str) -> None:
    """Assert that the canonical form is stable after one roundtrip.

    Deparse canonicalizes SQL, so the deparsed text may differ from the original. We verify that the canonical form
    is a **fixed point**: deparsing the re-parsed canonical SQL produces the same string again.
    """
    canonical = deparse(parse(sql))
    canonical2 = deparse(parse(canonical))
    assert canonical == canonical2, (
        f"Canonical form not stable:\n  original:   {sql}\n  canonical:  {canonical}\n  canonical2: {canonical2}"
    )


def assert_query_error(fn: Callable[..., Any], sql: str, *, check_cursor: bool = False) -> None:
    """Assert that calling fn(sql) raises QueryError with a truthy message."""
    with pytest.raises(QueryError) as exc_info:
        fn(sql)
    assert exc_info.value.message
    if check_cursor:
        assert exc_info.value.cursor_position > 0


# -- Fake engine -----------------------------------------------------------------


class FakeEngine:
    """Stands in for the libpg_query CDLL.

    Engine functions return real ctypes result structs configured per test; every call and every free is recorded so
    tests can assert the release-exactly-once contract without the shared library.
    """

    def __init__(self) -> None:
        self.responses: dict[str, Callable[..., Any]] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.freed: list[str] = []
        self._keepalive: list[Any] = []

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("pg_query_free_"):

            def free(result: Any) -> None:
                self.freed.append(name)

            return free

        if name in self.responses:

            def call(*args: Any) -> Any:
                self.calls.append((name, args))
                return self.responses[name](*args)

            return call

        raise AttributeError(name)

    def respond(self, function: str, result: Any) -> None:
        """Return *result* from every call to *function*."""
        self.responses[function] = lambda *args: result

    def keep(self, obj: Any) -> Any:
        self._keepalive.append(obj)
        return obj

    # -- struct builders --

    def error(
        self,
        message: bytes | None = b'syntax error at or near "FROM"',
        *,
        cursorpos: int = 8,
        funcname: bytes | None = b"scanner_yyerror",
        filename: bytes | None = b"scan.l",
        lineno: int = 1236,
        context: bytes | None = None,
    ) -> Any:
        record = self.keep(
            PgQueryError(
                message=message,
                funcname=funcname,
                filename=filename,
                lineno=lineno,
                cursorpos=cursorpos,
                context=context,
            )
        )
        return ctypes.pointer(record)

    def protobuf(self, data: bytes) -> PgQueryProtobuf:
        if not data:
            return PgQueryProtobuf(len=0, data=None)
        buf = self.keep(ctypes.create_string_buffer(data))
        return PgQueryProtobuf(len=len(data), data=ctypes.cast(buf, c_void_p).value)

    def normalize_result(self, text: bytes | None, error: Any = None) -> PgQueryNormalizeResult:
        result = PgQueryNormalizeResult(normalized_query=text)
        if error is not None:
            result.error = error
        return result

    def fingerprint_result(self, value: int, text: bytes | None, error: Any = None) -> PgQueryFingerprintResult:
        result = PgQueryFingerprintResult(fingerprint=value, fingerprint_str=text)
        if error is not None:
            result.error = error
        return result

    def split_result(self, spans: Iterable[tuple[int, int]], *, n_stmts: int | None = None) -> PgQuerySplitResult:
        stmts = [self.keep(PgQuerySplitStmt(stmt_location=loc, stmt_len=length)) for loc, length in spans]
        array = self.keep((POINTER(PgQuerySplitStmt) * max(len(stmts), 1))(*(ctypes.pointer(s) for s in stmts)))
        return PgQuerySplitResult(
            stmts=ctypes.cast(array, POINTER(POINTER(PgQuerySplitStmt))),
            n_stmts=len(stmts) if n_stmts is None else n_stmts,
        )

    def comments_result(self, comments: Iterable[tuple[int, int, int, bytes]]) -> PgQueryDeparseCommentsResult:
        records = [
            self.keep(
                PostgresDeparseComment(
                    match_location=loc,
                    newlines_before_comment=before,
                    newlines_after_comment=after,
                    str=text,
                )
            )
            for loc, before, after, text in comments
        ]
        array = self.keep(
            (POINTER(PostgresDeparseComment) * max(len(records), 1))(*(ctypes.pointer(r) for r in records))
        )
        return PgQueryDeparseCommentsResult(
            comments=ctypes.cast(array, POINTER(POINTER(PostgresDeparseComment))),
            comment_count=len(records),
        )

    def deparse_result(self, query: bytes | None, error: Any = None) -> PgQueryDeparseResult:
        result = PgQueryDeparseResult(query=query)
        if error is not None:
            result.error = error
        return result

    def json_parse_result(self, tree: bytes | None) -> PgQueryParseResult:
        return PgQueryParseResult(parse_tree=tree)

    def protobuf_parse_result(self, data: bytes) -> PgQueryProtobufParseResult:
        return PgQueryProtobufParseResult(parse_tree=self.protobuf(data))

    def scan_result(self, data: bytes) -> PgQueryScanResult:
        return PgQueryScanResult(pbuf=self.protobuf(data))


@pytest.fixture
def fake_engine(monkeypatch: pytest.MonkeyPatch) -> FakeEngine:
    engine = FakeEngine()
    monkeypatch.setattr(native, "get_lib", lambda: engine)
    return engine
