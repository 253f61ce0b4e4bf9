import logging
import re
from typing import List, Dict, Any, Optional

import requests

from utils.sql_guard import check_sql

logger = logging.getLogger(__name__)

# Backend-Fehlercode im Text, z. B. "relation does not exist (42P01)"
ERROR_CODE_PATTERN = re.compile(r"\((?P<code>[A-Z0-9]+)\)")

# PostgreSQL SQLSTATE -> (Kategorie, lesbarer Präfix)
ERROR_CATEGORIES = {
    "42601": ("syntax_error", "SQL syntax error"),
    "42P01": ("missing_table", "Table does not exist"),
    "42703": ("missing_column", "Column does not exist"),
    "42702": ("ambiguous_column", "Ambiguous column reference"),
    "42803": ("grouping_error", "Grouping error"),
}

SEMICOLON_HINT = "You may have an extra semicolon or incorrect semicolon placement."


class QueryExecutionError(RuntimeError):
    """Fehler der entfernten Datenbank, übersetzt in eine lesbare Kategorie."""

    def __init__(
        self,
        message: str,
        category: str = "database_error",
        code: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.code = code
        self.detail = detail


def extract_error_code(message: Optional[str]) -> Optional[str]:
    match = ERROR_CODE_PATTERN.search(message or "")
    return match.group("code") if match else None


def translate_error(
    message: str,
    details: Optional[str] = None,
    code: Optional[str] = None,
) -> QueryExecutionError:
    """Bekannte Fehlercodes -> Kategorie; alles andere als allgemeiner Datenbankfehler."""
    pg_code = extract_error_code(message) or code
    detail = details or message

    if pg_code in ERROR_CATEGORIES:
        category, prefix = ERROR_CATEGORIES[pg_code]
        text = f"{prefix}: {detail}"
        if pg_code == "42601" and 'near ";"' in message:
            text = f"{text} {SEMICOLON_HINT}"
        return QueryExecutionError(text, category=category, code=pg_code, detail=detail)

    text = f"Database query error: {message}"
    if details:
        text += f" - {details}"
    return QueryExecutionError(text, code=pg_code, detail=detail)


def normalize_rows(data: Any) -> List[Dict[str, Any]]:
    """Bringt jede Antwort in die Form einer Liste von Zeilen-Dicts."""
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning("Query result is not an array, converting to array")
        data = [data]
    return [row if isinstance(row, dict) else {"value": row} for row in data]


class DatabaseManager:
    """Führt SQL über die RPC-Funktion der gehosteten Datenbank (Supabase/PostgREST) aus."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        function: str = "execute_sql_query",
        argument: str = "query_string",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.function = function
        self.argument = argument
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def rpc_url(self) -> str:
        return f"{self.base_url}/rest/v1/rpc/{self.function}"

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def execute_query(self, sql: str) -> List[Dict[str, Any]]:
        """
        Führt SQL aus und liefert die Zeilen.

        Raises:
            SqlSanityError: bei strukturell fehlerhafter SQL (kein Netzwerkaufruf)
            QueryExecutionError: bei Transport- oder Datenbankfehlern
        """
        statement = check_sql(sql)

        try:
            response = self.session.post(
                self.rpc_url,
                json={self.argument: statement},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error executing database query: {e}")
            raise translate_error(str(e)) from e

        if not response.ok:
            error = self._error_payload(response)
            translated = translate_error(
                error.get("message") or response.reason or f"HTTP {response.status_code}",
                details=error.get("details"),
                code=error.get("code"),
            )
            logger.error(f"Error executing database query: {translated.message}")
            raise translated

        try:
            data = response.json() if response.content else None
        except ValueError as e:
            logger.error(f"Database returned no valid JSON: {e}")
            raise translate_error("Invalid response from database", details=str(e)) from e
        return normalize_rows(data)

    @staticmethod
    def _error_payload(response: requests.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {"message": response.text}
        return payload if isinstance(payload, dict) else {"message": str(payload)}
