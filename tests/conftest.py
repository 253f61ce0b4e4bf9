from typing import Any, Dict, List, Optional

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from database.manager import QueryExecutionError
from dependencies import (
    get_database,
    get_session_store,
    get_sql_generator,
    get_text_extractor,
    get_transcriber,
)
from extraction.extractor import Extraction
from llm.generator import SqlGenerationError, SqlGenerator
from main import app
from models import SqlGeneration
from session import SessionStore


class FakeGenerator(SqlGenerator):
    provider_name = "Fake"

    def __init__(self, sql: str = "SELECT * FROM customers;", summary: Optional[str] = "Two customers."):
        super().__init__()
        self.sql = sql
        self.summary = summary
        self.proposal: Optional[Dict[str, Any]] = None
        self.calls: List[tuple] = []

    def _complete(self, system_instruction, prompt, temperature=0.2):
        raise SqlGenerationError("not used")

    def generate_sql(self, query, table_schema=None):
        self.calls.append(("generate_sql", query, table_schema))
        return SqlGeneration(sql=self.sql, natural_language_query=query)

    def summarize_results(self, query, results):
        self.calls.append(("summarize_results", query, len(results)))
        if self.summary is None:
            raise SqlGenerationError("summary service down")
        return self.summary

    def infer_schema(self, text):
        self.calls.append(("infer_schema", text))
        if self.proposal is None:
            raise SqlGenerationError("schema service down")
        return self.proposal


class FakeDatabase:
    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows = rows if rows is not None else [
            {"id": 1, "name": "Ada"},
            {"id": 2, "name": "Grace"},
        ]
        self.error: Optional[QueryExecutionError] = None
        self.statements: List[str] = []

    def execute_query(self, sql):
        self.statements.append(sql)
        if self.error:
            raise self.error
        return self.rows


class FakeTranscriber:
    def __init__(self, text: str = "show me all customers"):
        self.text = text

    def transcribe(self, audio, content_type=None):
        return self.text


class FakeExtractor:
    def extract_text(self, data, file_name, content_type):
        return Extraction(text="Invoice 42 for ACME Corp. Total 100 EUR.")


@pytest_asyncio.fixture(scope="function")
async def fakes():
    return {
        "generator": FakeGenerator(),
        "database": FakeDatabase(),
        "transcriber": FakeTranscriber(),
        "extractor": FakeExtractor(),
        "store": SessionStore(maxsize=16, ttl=60),
    }


@pytest_asyncio.fixture(scope="function")
async def client(fakes):
    app.dependency_overrides[get_sql_generator] = lambda: fakes["generator"]
    app.dependency_overrides[get_database] = lambda: fakes["database"]
    app.dependency_overrides[get_transcriber] = lambda: fakes["transcriber"]
    app.dependency_overrides[get_text_extractor] = lambda: fakes["extractor"]
    app.dependency_overrides[get_session_store] = lambda: fakes["store"]

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def session_id(client: AsyncClient):
    response = await client.post("/sessions")
    return response.json()["session_id"]
