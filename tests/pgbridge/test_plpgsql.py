import pytest

from pgbridge import parse_plpgsql

from .conftest import assert_query_error

pytestmark = pytest.mark.native

SIMPLE_FUNC = """\
CREATE FUNCTION add(a int, b int) RETURNS int AS $$
BEGIN
    RETURN a + b;
END;
$$ LANGUAGE plpgsql;
"""

FUNC_WITH_DECLARE = """\
CREATE FUNCTION greet(name text) RETURNS text AS $$
DECLARE
    greeting text;
BEGIN
    greeting := 'Hello, ' || name;
    RETURN greeting;
END;
$$ LANGUAGE plpgsql;
"""

FUNC_WITH_IF = """\
CREATE FUNCTION abs_val(x int) RETURNS int AS $$
BEGIN
    IF x < 0 THEN
        RETURN -x;
    ELSE
        RETURN x;
    END IF;
END;
$$ LANGUAGE plpgsql;
"""


def _body_statement_types(func: dict) -> list[str]:
    body = func["action"]["PLpgSQL_stmt_block"]["body"]
    return [next(iter(stmt)) for stmt in body]


class TestParsePlpgsql:
    def test_simple_function(self):
        result = parse_plpgsql(SIMPLE_FUNC)
        assert isinstance(result, list)
        assert "PLpgSQL_function" in result[0]

    def test_parameters_are_datums(self):
        func = parse_plpgsql(SIMPLE_FUNC)[0]["PLpgSQL_function"]
        assert "PLpgSQL_var" in [next(iter(d)) for d in func["datums"]]

    def test_declare_block(self):
        func = parse_plpgsql(FUNC_WITH_DECLARE)[0]["PLpgSQL_function"]
        assert len(func["datums"]) > 0

    def test_if_else(self):
        func = parse_plpgsql(FUNC_WITH_IF)[0]["PLpgSQL_function"]
        assert "PLpgSQL_stmt_if" in _body_statement_types(func)

    def test_bytes_input(self):
        assert parse_plpgsql(SIMPLE_FUNC.encode() + b"\x00") == parse_plpgsql(SIMPLE_FUNC)


class TestParsePlpgsqlErrors:
    def test_missing_end_if(self):
        sql = """\
CREATE FUNCTION bad() RETURNS void AS $$
BEGIN
    IF true THEN
    -- missing END IF
END;
$$ LANGUAGE plpgsql;
"""
        assert_query_error(parse_plpgsql, sql)

    def test_non_plpgsql_function_passes_through(self):
        sql = "CREATE FUNCTION f() RETURNS int AS $$ SELECT 1 $$ LANGUAGE sql;"
        assert parse_plpgsql(sql) == [{"PLpgSQL_function": {"datums": []}}]
