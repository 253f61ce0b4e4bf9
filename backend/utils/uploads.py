from typing import Iterable, Optional

TABLE_MIME_TYPES = (
    "text/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)

DOCUMENT_MIME_TYPES = (
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
)


class UnsupportedFileType(ValueError):
    pass


def _ensure(content_type: Optional[str], allowed: Iterable[str], message: str) -> str:
    # "text/csv; charset=utf-8" -> "text/csv"
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime not in allowed:
        raise UnsupportedFileType(message)
    return mime


def ensure_table_upload(content_type: Optional[str]) -> str:
    return _ensure(content_type, TABLE_MIME_TYPES, "Please upload a CSV or Excel file")


def ensure_document_upload(content_type: Optional[str]) -> str:
    return _ensure(
        content_type,
        DOCUMENT_MIME_TYPES,
        "Please upload a PDF or an image (JPEG, PNG, GIF, WebP)",
    )


def is_csv(content_type: Optional[str]) -> bool:
    return (content_type or "").split(";")[0].strip().lower() == "text/csv"
