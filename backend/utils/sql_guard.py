import re
from typing import Optional

# Erlaubte Statement-Anfänge, wenn mehrere Statements im Text stehen
STATEMENT_KEYWORDS = ("select", "insert", "update", "delete", "create", "alter", "drop", "with")

_LEADING_KEYWORD = re.compile(
    r"^\s*(?:" + "|".join(STATEMENT_KEYWORDS) + r")", flags=re.IGNORECASE
)
_CONSECUTIVE_SEMICOLONS = re.compile(r";\s*;")
_TRAILING_SEMICOLON = re.compile(r"\s*;\s*$")
_CODE_FENCE = re.compile(r"```(?:sql)?", flags=re.IGNORECASE)


class SqlSanityError(ValueError):
    """Strukturell fehlerhafte SQL, erkannt vor dem Versand an die Datenbank."""

    code = "SqlSanityError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EmptyInputError(SqlSanityError):
    code = "EmptyInput"


class UnbalancedParenthesesError(SqlSanityError):
    code = "UnbalancedParentheses"


class InvalidStatementStructureError(SqlSanityError):
    code = "InvalidStatementStructure"


class ConsecutiveSemicolonsError(SqlSanityError):
    code = "ConsecutiveSemicolons"


class MissingTrailingSemicolonError(SqlSanityError):
    code = "MissingTrailingSemicolon"


def check_sql(sql: str) -> str:
    """
    Prüft SQL-Text auf offensichtliche Strukturfehler.

    Die Datenbank bleibt die eigentliche Autorität für gültige Syntax; dieser
    Check liefert nur früh eine verständliche Fehlermeldung.

    Returns:
        Das getrimmte Statement ohne abschließendes Semikolon.
    """
    if not sql or not isinstance(sql, str) or not sql.strip():
        raise EmptyInputError("SQL query is empty or invalid")

    trimmed = sql.strip()

    # 1. Klammern
    if trimmed.count("(") != trimmed.count(")"):
        raise UnbalancedParenthesesError("SQL syntax error: Unbalanced parentheses")

    # 2. Mehrere Statements nur mit bekanntem Anfang
    statements = [s for s in trimmed.split(";") if s.strip()]
    if len(statements) > 1:
        for statement in statements:
            if not _LEADING_KEYWORD.match(statement):
                raise InvalidStatementStructureError(
                    "SQL syntax error: Invalid statement structure or misplaced semicolon"
                )

    # 3. ;; (auch mit Whitespace dazwischen)
    if _CONSECUTIVE_SEMICOLONS.search(trimmed):
        raise ConsecutiveSemicolonsError(
            "SQL syntax error: Multiple consecutive semicolons detected"
        )

    # 4. Mehrere Semikolons, aber keins am Ende
    if ";" in trimmed and not trimmed.endswith(";") and trimmed.count(";") > 1:
        raise MissingTrailingSemicolonError(
            "SQL syntax error: Missing semicolon at the end of a statement"
        )

    statement = _TRAILING_SEMICOLON.sub("", trimmed, count=1)
    if not statement:
        raise EmptyInputError("SQL query is empty or invalid")
    return statement


def sanity_error(sql: str) -> Optional[str]:
    """Wie check_sql, liefert aber nur die Fehlermeldung (oder None)."""
    try:
        check_sql(sql)
    except SqlSanityError as e:
        return e.message
    return None


def strip_code_fences(text: Optional[str]) -> str:
    """Entfernt Markdown-Codeblöcke (```sql ... ```) aus LLM-Antworten."""
    if not text:
        return ""
    return _CODE_FENCE.sub("", text).strip()
