import pytest

from utils.sql_guard import (
    ConsecutiveSemicolonsError,
    EmptyInputError,
    InvalidStatementStructureError,
    MissingTrailingSemicolonError,
    SqlSanityError,
    UnbalancedParenthesesError,
    check_sql,
    sanity_error,
    strip_code_fences,
)


@pytest.mark.parametrize("sql", [None, "", "   \n\t", ";", "  ;  "])
def test_empty_input_is_rejected(sql):
    with pytest.raises(EmptyInputError) as exc:
        check_sql(sql)
    assert exc.value.code == "EmptyInput"


@pytest.mark.parametrize("sql", [
    "SELECT COUNT(* FROM t",
    "SELECT a FROM t WHERE (b = 1))",
    "SELECT ((1)",
])
def test_unbalanced_parentheses(sql):
    with pytest.raises(UnbalancedParenthesesError):
        check_sql(sql)


@pytest.mark.parametrize("sql", [
    "SELECT * FROM t",
    "select id from users where (age > 3)",
    "INSERT INTO t (a) VALUES (1)",
    "WITH x AS (SELECT 1) SELECT * FROM x",
    "  DELETE FROM t  ",
])
def test_single_statement_without_semicolon_passes_unchanged(sql):
    assert check_sql(sql) == sql.strip()


def test_trailing_semicolon_is_stripped():
    assert check_sql("SELECT * FROM t;") == "SELECT * FROM t"
    assert check_sql("SELECT * FROM t ;  ") == "SELECT * FROM t"


def test_consecutive_semicolons():
    with pytest.raises(ConsecutiveSemicolonsError):
        check_sql("SELECT 1;; SELECT 2;")
    with pytest.raises(ConsecutiveSemicolonsError):
        check_sql("SELECT 1; ;")


def test_multi_statement_with_whitelisted_keywords_passes():
    assert check_sql("CREATE TABLE t (a INT); insert into t VALUES (1);") == (
        "CREATE TABLE t (a INT); insert into t VALUES (1)"
    )


def test_multi_statement_with_unknown_keyword_is_rejected():
    with pytest.raises(InvalidStatementStructureError):
        check_sql("SELECT 1; EXPLAIN SELECT 1;")
    with pytest.raises(InvalidStatementStructureError):
        check_sql("SELECT * FROM t; garbage")


def test_missing_trailing_semicolon():
    with pytest.raises(MissingTrailingSemicolonError):
        check_sql("SELECT 1; SELECT 2; SELECT 3")


def test_single_inner_semicolon_without_trailing_is_accepted():
    assert check_sql("SELECT 1; SELECT 2") == "SELECT 1; SELECT 2"


def test_all_errors_share_base_class():
    with pytest.raises(SqlSanityError):
        check_sql("SELECT (")


def test_sanity_error_returns_message_or_none():
    assert sanity_error("SELECT 1") is None
    assert sanity_error("SELECT (") == "SQL syntax error: Unbalanced parentheses"


def test_strip_code_fences():
    assert strip_code_fences("```sql\nSELECT 1;\n```") == "SELECT 1;"
    assert strip_code_fences("```SELECT 2```") == "SELECT 2"
    assert strip_code_fences(None) == ""
