from unittest.mock import MagicMock

import pytest
import requests

from database.manager import (
    DatabaseManager,
    QueryExecutionError,
    extract_error_code,
    normalize_rows,
    translate_error,
)
from utils.sql_guard import EmptyInputError, UnbalancedParenthesesError


def _response(status=200, payload=None, reason="OK"):
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.reason = reason
    response.content = b"" if payload is None else b"x"
    response.json.return_value = payload
    return response


def _manager(response=None, side_effect=None):
    session = MagicMock()
    session.post.return_value = response
    session.post.side_effect = side_effect
    manager = DatabaseManager("https://db.example.co/", "anon-key", session=session)
    return manager, session


def test_extract_error_code():
    assert extract_error_code('relation "foo" does not exist (42P01)') == "42P01"
    assert extract_error_code("connection refused") is None


def test_missing_table_is_translated():
    error = translate_error('relation "orders" does not exist (42P01)')
    assert error.category == "missing_table"
    assert error.code == "42P01"
    assert error.message.startswith("Table does not exist:")


@pytest.mark.parametrize("code, category, prefix", [
    ("42601", "syntax_error", "SQL syntax error"),
    ("42703", "missing_column", "Column does not exist"),
    ("42702", "ambiguous_column", "Ambiguous column reference"),
    ("42803", "grouping_error", "Grouping error"),
])
def test_known_codes(code, category, prefix):
    error = translate_error(f"boom ({code})", details="some detail")
    assert error.category == category
    assert error.message == f"{prefix}: some detail"


def test_syntax_error_near_semicolon_gets_hint():
    error = translate_error('syntax error at or near ";" (42601)')
    assert "extra semicolon" in error.message


def test_unknown_code_is_generic():
    error = translate_error("permission denied (42501)", details="for table x")
    assert error.category == "database_error"
    assert error.message == "Database query error: permission denied (42501) - for table x"


def test_structured_code_is_used_when_message_has_none():
    error = translate_error('column "foo" does not exist', code="42703")
    assert error.category == "missing_column"


def test_normalize_rows():
    assert normalize_rows(None) == []
    assert normalize_rows([]) == []
    assert normalize_rows({"a": 1}) == [{"a": 1}]
    assert normalize_rows([{"a": 1}, {"a": 2}]) == [{"a": 1}, {"a": 2}]
    assert normalize_rows(5) == [{"value": 5}]
    assert normalize_rows([1, 2]) == [{"value": 1}, {"value": 2}]


def test_execute_query_posts_to_rpc_endpoint():
    manager, session = _manager(_response(payload=[{"id": 1}]))
    assert manager.execute_query("SELECT id FROM t;") == [{"id": 1}]

    args, kwargs = session.post.call_args
    assert args[0] == "https://db.example.co/rest/v1/rpc/execute_sql_query"
    assert kwargs["json"] == {"query_string": "SELECT id FROM t"}
    assert kwargs["headers"]["apikey"] == "anon-key"


def test_execute_query_wraps_single_object():
    manager, _ = _manager(_response(payload={"count": 3}))
    assert manager.execute_query("SELECT count(*) AS count FROM t") == [{"count": 3}]


def test_execute_query_empty_body():
    manager, _ = _manager(_response(payload=None))
    assert manager.execute_query("SELECT 1") == []


def test_execute_query_rejects_malformed_sql_without_network():
    manager, session = _manager(_response(payload=[]))
    with pytest.raises(UnbalancedParenthesesError):
        manager.execute_query("SELECT (1")
    session.post.assert_not_called()


def test_execute_query_translates_backend_error():
    payload = {"code": "42P01", "message": 'relation "orders" does not exist', "details": None}
    manager, _ = _manager(_response(status=400, payload=payload, reason="Bad Request"))
    with pytest.raises(QueryExecutionError) as exc:
        manager.execute_query("SELECT * FROM orders")
    assert exc.value.category == "missing_table"
    assert "orders" in exc.value.message


def test_execute_query_transport_error():
    manager, _ = _manager(side_effect=requests.ConnectionError("connection refused"))
    with pytest.raises(QueryExecutionError) as exc:
        manager.execute_query("SELECT 1")
    assert exc.value.category == "database_error"
    assert exc.value.message == "Database query error: connection refused"


def test_non_json_success_body_is_translated():
    response = _response()
    response.content = b"<html>Bad Gateway</html>"
    response.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)
    manager, _ = _manager(response)

    with pytest.raises(QueryExecutionError) as exc:
        manager.execute_query("SELECT 1")
    assert exc.value.category == "database_error"
    assert exc.value.message.startswith("Database query error: Invalid response from database")


def test_lone_semicolon_is_not_sent():
    manager, session = _manager(_response(payload=[]))
    with pytest.raises(EmptyInputError):
        manager.execute_query(";")
    session.post.assert_not_called()
