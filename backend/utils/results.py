import math
from typing import Any, Dict, List, Tuple

PAGE_SIZE = 10

SUMMARY_PLACEHOLDER = "Could not generate summary. Please try again later."


def total_pages(row_count: int, page_size: int = PAGE_SIZE) -> int:
    """Mindestens eine Seite, auch bei leerem Ergebnis."""
    return max(1, math.ceil(row_count / page_size))


def clamp_page(page: int, row_count: int, page_size: int = PAGE_SIZE) -> int:
    return min(max(page, 1), total_pages(row_count, page_size))


def get_columns(rows: List[Dict[str, Any]]) -> List[str]:
    """Spaltenreihenfolge = Schlüsselreihenfolge der ersten Zeile."""
    if not rows:
        return []
    return list(rows[0].keys())


def paginate(
    rows: List[Dict[str, Any]],
    page: int = 1,
    page_size: int = PAGE_SIZE,
) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """
    Schneidet eine Seite aus dem (bereits vollständig geladenen) Ergebnis.

    Returns:
        (rows_on_page, paging_info)
    """
    total_rows = len(rows)
    pages = total_pages(total_rows, page_size)
    page = clamp_page(page, total_rows, page_size)
    offset = (page - 1) * page_size
    page_rows = rows[offset:offset + page_size]

    paging_info = {
        "page": page,
        "page_size": page_size,
        "total_rows": total_rows,
        "total_pages": pages,
        "has_next_page": page < pages,
        "has_previous_page": page > 1,
        "rows_on_page": len(page_rows),
    }
    return page_rows, paging_info


class Pagination:
    """Blätter-Zustand über einem Result Set (besitzt die Zeilen nicht)."""

    def __init__(self, rows: List[Dict[str, Any]], page_size: int = PAGE_SIZE):
        self._rows = rows
        self.page_size = page_size
        self.current_page = 1

    @property
    def total_pages(self) -> int:
        return total_pages(len(self._rows), self.page_size)

    @property
    def rows(self) -> List[Dict[str, Any]]:
        page_rows, _ = paginate(self._rows, self.current_page, self.page_size)
        return page_rows

    def go_to_page(self, page: int) -> int:
        self.current_page = clamp_page(page, len(self._rows), self.page_size)
        return self.current_page

    def go_to_previous_page(self) -> int:
        return self.go_to_page(self.current_page - 1)

    def go_to_next_page(self) -> int:
        return self.go_to_page(self.current_page + 1)


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def export_csv(rows: List[Dict[str, Any]]) -> str:
    """
    Exportiert das Ergebnis als kommagetrennten Text.

    Felder werden weder gequotet noch escaped; Werte mit Kommas oder
    Zeilenumbrüchen verschieben die Spalten.
    """
    columns = get_columns(rows)
    lines = [",".join(columns)]
    for row in rows:
        lines.append(",".join(_format_cell(row.get(col)) for col in columns))
    return "\n".join(lines)
