import csv
import io
import logging
import math
import re
from typing import Any, Dict, List, Optional

from models import ColumnInfo, InferredSchema, SchemaStats

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAME = "uploaded_table"

DEFAULT_COLUMNS = [
    ColumnInfo(name="id", type="INTEGER", is_primary=True),
    ColumnInfo(name="content", type="TEXT"),
    ColumnInfo(name="page", type="INTEGER"),
    ColumnInfo(name="created_at", type="TIMESTAMP"),
]

DEFAULT_KEY_TERMS = ["document", "text", "content"]

# Grobe Schätzwerte für Dokumente ohne LLM-Vorschlag
CHARS_PER_ROW = 100
CHARS_PER_PAGE = 3000
CSV_SAMPLE_ROWS = 5

_DATE = re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}$")


def derive_table_name(file_name: Optional[str]) -> str:
    """report 2024 (final).pdf -> report_2024_final"""
    base = re.sub(r"\.[^/.]+$", "", file_name or "")
    name = re.sub(r"[^a-z0-9]+", "_", base.lower()).strip("_")
    if not name:
        return DEFAULT_TABLE_NAME
    if name[0].isdigit():
        name = f"t_{name}"
    return name


def _as_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 else None


def _parse_columns(raw: Any) -> List[ColumnInfo]:
    columns: List[ColumnInfo] = []
    if not isinstance(raw, list):
        return columns
    for item in raw:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        columns.append(ColumnInfo(
            name=str(item["name"]),
            type=str(item.get("type") or "TEXT").upper(),
            is_primary=bool(item.get("is_primary", item.get("isPrimary", False))),
        ))
    return columns


def build_inferred_schema(
    file_name: str,
    text: str,
    proposal: Optional[Dict[str, Any]] = None,
) -> InferredSchema:
    """Setzt LLM-Vorschlag und Standardwerte zu einem vollständigen Schema zusammen."""
    proposal = proposal or {}
    columns = _parse_columns(proposal.get("columns"))
    stats_raw = proposal.get("stats") if isinstance(proposal.get("stats"), dict) else {}

    key_terms = stats_raw.get("key_terms") or proposal.get("key_terms")
    if not isinstance(key_terms, list) or not key_terms:
        key_terms = DEFAULT_KEY_TERMS
    stats = SchemaStats(
        word_count=_as_int(stats_raw.get("word_count")) or len(text.split()),
        page_count=_as_int(stats_raw.get("page_count")) or math.ceil(len(text) / CHARS_PER_PAGE),
        key_terms=[str(term) for term in key_terms],
    )

    return InferredSchema(
        table_name=derive_table_name(file_name),
        columns=columns or [c.model_copy() for c in DEFAULT_COLUMNS],
        row_count=_as_int(proposal.get("estimated_rows")) or math.ceil(len(text) / CHARS_PER_ROW),
        stats=stats,
        degraded=not columns,
    )


def infer_column_type(values: List[str]) -> str:
    """Leitet aus Stichprobenwerten einen SQL-Typ ab."""
    if not values:
        return "VARCHAR"

    def _number(val: str) -> Optional[float]:
        try:
            return float(val)
        except ValueError:
            return None

    if all(val.strip() != "" and _number(val) is not None for val in values):
        if all(_number(val).is_integer() for val in values):
            return "INTEGER"
        return "DECIMAL"

    if all(_DATE.match(val) or val.strip() == "" for val in values):
        return "DATE"

    return "VARCHAR"


def schema_from_csv(file_name: str, content: str) -> InferredSchema:
    """Schema aus Kopfzeile und den ersten Datenzeilen einer CSV-Datei."""
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        raise ValueError("CSV file is empty")

    reader = csv.reader(io.StringIO("\n".join(lines[:CSV_SAMPLE_ROWS + 1])))
    rows = list(reader)
    headers = [h.strip() for h in rows[0]]
    sample = [[cell.strip() for cell in row] for row in rows[1:]]

    columns = []
    for index, header in enumerate(headers):
        values = [row[index] for row in sample if index < len(row)]
        columns.append(ColumnInfo(name=header, type=infer_column_type(values)))

    return InferredSchema(
        table_name=derive_table_name(file_name),
        columns=columns,
        row_count=len(lines) - 1,
    )


def schema_to_prompt(schema: InferredSchema) -> str:
    """Textform für den SQL-Prompt."""
    parts = [f"Table: {schema.table_name}", "Columns:"]
    for column in schema.columns:
        suffix = ", PRIMARY KEY" if column.is_primary else ""
        parts.append(f"- {column.name} ({column.type}{suffix})")
    return "\n".join(parts) + "\n"
