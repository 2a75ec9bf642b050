import pytest

from pgbridge import split, split_spans

from .conftest import assert_query_error

pytestmark = pytest.mark.native

_METHODS = ["parser", "scanner"]


class TestSplit:
    """Tests for split() with the default method (parser)."""

    def test_single_statement(self):
        assert split("SELECT 1") == ["SELECT 1"]

    def test_two_statements(self):
        result = split("SELECT 1; SELECT 2")
        assert len(result) == 2
        assert "SELECT 1" in result[0]
        assert "SELECT 2" in result[1]

    def test_empty_string(self):
        assert split("") == []

    def test_whitespace_only(self):
        assert split("   ") == []

    def test_empty_semicolons_skipped(self):
        assert len(split("SELECT 1;;; SELECT 2")) == 2

    def test_statements_with_comments(self):
        assert len(split("SELECT 1;\n\n-- comment\nSELECT 2")) == 2

    def test_default_method_is_parser(self):
        sql = "SELECT 1; SELECT 2"
        assert split(sql) == split(sql, method="parser")

    def test_invalid_sql(self):
        assert_query_error(split, "SELECT '")


@pytest.mark.parametrize("method", _METHODS)
class TestBothMethods:
    def test_select_pair(self, method):
        result = split("select 1; select 2;", method=method)
        assert len(result) == 2
        assert result[0].strip() == "select 1"
        assert "select 2" in result[1]

    def test_spans_match_text(self, method):
        sql = "select 1; select 2;"
        spans = split_spans(sql, method=method)
        assert len(spans) == 2
        assert [span.extract(sql.encode()) for span in spans] == split(sql, method=method)

    def test_multibyte_utf8(self, method):
        result = split("SELECT '日本語'; SELECT 1", method=method)
        assert len(result) == 2
        assert "日本語" in result[0]
        assert "SELECT 1" in result[1]

    def test_spans_are_byte_offsets(self, method):
        sql = "SELECT '日本語'; SELECT 1"
        encoded = sql.encode()
        second = split_spans(sql, method=method)[1]
        assert second.location > sql.index("; SELECT 1")
        assert encoded[second.as_slice()].decode().strip() == "SELECT 1"

    def test_bytes_input(self, method):
        sql = b"select 1; select 2;\x00"
        spans = split_spans(sql, method=method)
        assert spans[0].extract(sql).strip() == "select 1"
        assert all(span.end < len(sql) for span in spans)
