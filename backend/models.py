from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional


class ColumnInfo(BaseModel):
    name: str
    type: str
    is_primary: bool = False


class SchemaStats(BaseModel):
    word_count: int = 0
    page_count: int = 0
    key_terms: List[str] = []


class InferredSchema(BaseModel):
    table_name: str
    columns: List[ColumnInfo]
    row_count: int = 0
    stats: Optional[SchemaStats] = None
    degraded: bool = False


class SessionResponse(BaseModel):
    session_id: str


class TranscriptionResponse(BaseModel):
    text: str


class ExtractionResponse(BaseModel):
    file_name: str
    text: str
    degraded: bool = False


class SchemaInferRequest(BaseModel):
    session_id: str = Field(min_length=1)


class SqlGenerateRequest(BaseModel):
    question: str
    table_schema: Optional[str] = None


class SqlGeneration(BaseModel):
    sql: str
    natural_language_query: str
    degraded: bool = False


class QueryRequest(BaseModel):
    question: str
    table_schema: Optional[str] = None
    session_id: Optional[str] = None
    page: int = Field(default=1, ge=1)


class ExecuteRequest(BaseModel):
    sql: str
    question: Optional[str] = None
    session_id: Optional[str] = None
    page: int = Field(default=1, ge=1)


class QueryResponse(BaseModel):
    question: str
    generated_sql: str
    results: List[Dict[str, Any]]
    columns: List[str] = []
    row_count: int
    page: int = 1
    page_size: int = 10
    total_pages: int = 1
    total_rows: int = 0
    has_next_page: bool = False
    has_previous_page: bool = False
    summary: Optional[str] = None
    degraded: bool = False
    error: Optional[str] = None
    error_category: Optional[str] = None


class ResultPageResponse(BaseModel):
    results: List[Dict[str, Any]]
    columns: List[str]
    page: int
    page_size: int
    total_pages: int
    total_rows: int
    has_next_page: bool
    has_previous_page: bool
    rows_on_page: int


class NarrationEvent(BaseModel):
    event: str = Field(pattern="^(end|error)$")
    message: Optional[str] = None


class NarrationResponse(BaseModel):
    supported: bool
    speaking: bool
    commands: List[Dict[str, Any]] = []
