import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware

# Lokale Imports
from config import Config
from models import (
    ExecuteRequest,
    ExtractionResponse,
    InferredSchema,
    NarrationEvent,
    NarrationResponse,
    QueryRequest,
    QueryResponse,
    ResultPageResponse,
    SchemaInferRequest,
    SessionResponse,
    SqlGenerateRequest,
    SqlGeneration,
    TranscriptionResponse,
)
from database.manager import DatabaseManager, QueryExecutionError
from dependencies import (
    get_database,
    get_session_store,
    get_sql_generator,
    get_text_extractor,
    get_transcriber,
)
from extraction.extractor import TextExtractionError, TextExtractor
from llm.generator import SchemaInferenceError, SqlGenerationError, SqlGenerator
from session import InputMode, MissingSessionValue, SessionContext, SessionState, SessionStore, UnknownSession
from speech.transcriber import Transcriber, TranscriptionError
from utils.results import SUMMARY_PLACEHOLDER, export_csv, get_columns, paginate
from utils.schema_inference import build_inferred_schema, schema_from_csv, schema_to_prompt
from utils.sql_guard import SqlSanityError, check_sql
from utils.uploads import UnsupportedFileType, ensure_document_upload, ensure_table_upload, is_csv

VERSION = "1.0.0"

# FastAPI App
app = FastAPI(
    title="Voice2SQL",
    version=VERSION,
    description="Sprache oder Text -> SQL -> Ergebnis mit Zusammenfassung"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Thread Pool für blockierende Adapter-Aufrufe
executor = ThreadPoolExecutor(max_workers=4)


async def _run(fn, *args):
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(executor, fn, *args)


def _session_state(store: SessionStore, session_id: Optional[str]) -> Optional[SessionState]:
    if not session_id:
        return None
    try:
        return store.get(session_id)
    except UnknownSession:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")


def _start_query(state: Optional[SessionState], mode: InputMode, raw_input) -> None:
    """Neue Eingabe verwirft das vorige Ergebnis der Sitzung."""
    if state is None:
        return
    state.narrator.close()
    state.query.reset()
    state.query.input_mode = mode
    state.query.raw_input = raw_input


def _error_response(
    question: str,
    sql: str,
    message: str,
    category: str,
    degraded: bool = False,
) -> QueryResponse:
    return QueryResponse(
        question=question,
        generated_sql=sql,
        results=[],
        row_count=0,
        degraded=degraded,
        error=message,
        error_category=category,
    )


async def _execute_and_present(
    question: str,
    sql: str,
    page: int,
    db: DatabaseManager,
    generator: SqlGenerator,
    state: Optional[SessionState],
    degraded: bool = False,
) -> QueryResponse:
    """Sanity Check -> Ausführung -> Zusammenfassung -> erste Seite."""
    query = state.query if state else None
    if query:
        query.generated_sql = sql

    # 1. Client-seitiger Sanity Check
    try:
        statement = check_sql(sql)
    except SqlSanityError as e:
        print(f"❌ Sanity Check: {e.message}")
        if query:
            query.validation_error = e.message
            query.error = e.message
            query.error_category = e.code
        return _error_response(question, sql, e.message, e.code, degraded)

    # 2. Ausführen
    print(f"\n⚡ Führe SQL aus...")
    try:
        results = await _run(db.execute_query, statement)
    except QueryExecutionError as e:
        print(f"❌ Datenbankfehler ({e.category}): {e.message}")
        if query:
            query.error = e.message
            query.error_category = e.category
        return _error_response(question, sql, e.message, e.category, degraded)

    print(f"✅ {len(results)} Zeilen geladen")

    # 3. Zusammenfassung (nicht blockierend für die Anzeige)
    try:
        summary = await _run(generator.summarize_results, question, results)
    except Exception as e:
        print(f"⚠️  Zusammenfassung fehlgeschlagen: {str(e)}")
        summary = SUMMARY_PLACEHOLDER

    if query:
        query.results = results
        query.summary = summary

    page_rows, paging_info = paginate(results, page)
    return QueryResponse(
        question=question,
        generated_sql=sql,
        results=page_rows,
        columns=get_columns(results),
        row_count=len(results),
        page=paging_info["page"],
        page_size=paging_info["page_size"],
        total_pages=paging_info["total_pages"],
        total_rows=paging_info["total_rows"],
        has_next_page=paging_info["has_next_page"],
        has_previous_page=paging_info["has_previous_page"],
        summary=summary,
        degraded=degraded,
    )


async def _answer_question(
    question: str,
    table_schema: Optional[str],
    page: int,
    db: DatabaseManager,
    generator: SqlGenerator,
    state: Optional[SessionState],
) -> QueryResponse:
    print(f"\n{'='*60}")
    print(f"📝 NEUE ANFRAGE: {question}")

    if state and not table_schema:
        table_schema = state.context.get(SessionContext.TABLE_SCHEMA)
    if state:
        state.query.natural_language = question
        state.query.schema_text = table_schema

    try:
        generation = await _run(generator.generate_sql, question, table_schema)
    except SqlGenerationError as e:
        print(f"❌ SQL-Generierung fehlgeschlagen: {str(e)}")
        if state:
            state.query.error = str(e)
        raise HTTPException(status_code=502, detail=str(e))

    if generation.degraded:
        print("⚠️  Mock-SQL (degraded)")
        if state:
            state.query.degraded = True
    print(f"📝 Generierte SQL:\n   {generation.sql[:200]}{'...' if len(generation.sql) > 200 else ''}")

    response = await _execute_and_present(
        question, generation.sql, page, db, generator, state, degraded=generation.degraded
    )
    print(f"{'='*60}\n")
    return response


@app.get("/")
async def root():
    return {
        "message": "Voice2SQL API läuft",
        "version": VERSION,
        "providers": {
            "llm": Config.LLM_PROVIDER,
            "transcriber": Config.TRANSCRIBER_PROVIDER,
            "extractor": Config.EXTRACTOR_PROVIDER,
        },
    }


@app.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(store: SessionStore = Depends(get_session_store)):
    return SessionResponse(session_id=store.create())


@app.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    _session_state(store, session_id)
    store.discard(session_id)
    return Response(status_code=204)


@app.post("/transcribe", response_model=TranscriptionResponse)
async def transcribe(
    audio: UploadFile = File(...),
    transcriber: Transcriber = Depends(get_transcriber),
):
    data = await audio.read()
    if not data:
        raise HTTPException(status_code=400, detail="No audio provided")
    try:
        text = await _run(transcriber.transcribe, data, audio.content_type)
    except TranscriptionError as e:
        print(f"❌ Transkription fehlgeschlagen: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))
    if not text:
        raise HTTPException(status_code=422, detail="Could not transcribe audio. Please try again.")
    return TranscriptionResponse(text=text)


@app.post("/documents/extract", response_model=ExtractionResponse)
async def extract_document(
    file: UploadFile = File(...),
    session_id: Optional[str] = Form(None),
    extractor: TextExtractor = Depends(get_text_extractor),
    store: SessionStore = Depends(get_session_store),
):
    try:
        content_type = ensure_document_upload(file.content_type)
    except UnsupportedFileType as e:
        raise HTTPException(status_code=415, detail=str(e))

    state = _session_state(store, session_id)
    file_name = file.filename or "document"
    data = await file.read()
    try:
        extraction = await _run(extractor.extract_text, data, file_name, content_type)
    except TextExtractionError as e:
        print(f"❌ Texterkennung fehlgeschlagen: {str(e)}")
        raise HTTPException(status_code=502, detail=str(e))

    if state:
        state.context.put(SessionContext.EXTRACTED_TEXT, extraction.text)
        state.context.put(SessionContext.ANALYZED_FILE_NAME, file_name)
    return ExtractionResponse(file_name=file_name, text=extraction.text, degraded=extraction.degraded)


@app.post("/tables/analyze", response_model=InferredSchema)
async def analyze_table(
    file: UploadFile = File(...),
    session_id: Optional[str] = Form(None),
    store: SessionStore = Depends(get_session_store),
):
    try:
        ensure_table_upload(file.content_type)
    except UnsupportedFileType as e:
        raise HTTPException(status_code=415, detail=str(e))

    state = _session_state(store, session_id)
    file_name = file.filename or "table.csv"
    data = await file.read()

    if is_csv(file.content_type):
        try:
            schema = schema_from_csv(file_name, data.decode("utf-8-sig", errors="replace"))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    else:
        # Excel wird nicht geparst: Tabellenname + Standardspalten
        schema = build_inferred_schema(file_name, "")

    if state:
        state.context.put(SessionContext.ANALYZED_FILE_NAME, file_name)
        state.context.put(SessionContext.TABLE_SCHEMA, schema_to_prompt(schema))
    return schema


@app.post("/schema/infer", response_model=InferredSchema)
async def infer_schema(
    request: SchemaInferRequest,
    generator: SqlGenerator = Depends(get_sql_generator),
    store: SessionStore = Depends(get_session_store),
):
    state = _session_state(store, request.session_id)
    if state is None:
        raise HTTPException(status_code=400, detail="A session_id is required.")
    try:
        file_name = state.context.require(SessionContext.ANALYZED_FILE_NAME)
        text = state.context.require(SessionContext.EXTRACTED_TEXT)
    except MissingSessionValue as e:
        raise HTTPException(
            status_code=400,
            detail=f"Missing {e.args[0]}. Please upload a document first.",
        )

    proposal = None
    try:
        proposal = await _run(generator.infer_schema, text)
    except (SqlGenerationError, SchemaInferenceError) as e:
        print(f"⚠️  Schema-Inferenz fehlgeschlagen, verwende Standardspalten: {str(e)}")

    schema = build_inferred_schema(file_name, text, proposal)
    state.context.put(SessionContext.TABLE_SCHEMA, schema_to_prompt(schema))
    return schema


@app.post("/sql/generate", response_model=SqlGeneration)
async def generate_sql(
    request: SqlGenerateRequest,
    generator: SqlGenerator = Depends(get_sql_generator),
):
    question = request.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="No input provided")
    try:
        return await _run(generator.generate_sql, question, request.table_schema)
    except SqlGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.post("/sql/execute", response_model=QueryResponse)
async def execute_sql(
    request: ExecuteRequest,
    db: DatabaseManager = Depends(get_database),
    generator: SqlGenerator = Depends(get_sql_generator),
    store: SessionStore = Depends(get_session_store),
):
    state = _session_state(store, request.session_id)
    question = request.question or ""
    if state:
        # Frage und Schema der Sitzung bleiben erhalten, nur das Ergebnis wird ersetzt
        state.narrator.close()
        for name in ("validation_error", "results", "summary", "error", "error_category"):
            setattr(state.query, name, None)
        state.query.natural_language = question or state.query.natural_language
    return await _execute_and_present(question, request.sql, request.page, db, generator, state)


@app.post("/query", response_model=QueryResponse)
async def query_database(
    request: QueryRequest,
    db: DatabaseManager = Depends(get_database),
    generator: SqlGenerator = Depends(get_sql_generator),
    store: SessionStore = Depends(get_session_store),
):
    """
    Hauptendpoint für Text-to-SQL:
    1. SQL Generierung (optional mit Tabellenschema)
    2. Sanity Check
    3. Ausführung
    4. Zusammenfassung + erste Seite
    """
    question = request.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="No input provided")

    state = _session_state(store, request.session_id)
    _start_query(state, InputMode.TEXT, question)
    return await _answer_question(question, request.table_schema, request.page, db, generator, state)


@app.post("/query/audio", response_model=QueryResponse)
async def query_database_audio(
    audio: UploadFile = File(...),
    session_id: Optional[str] = Form(None),
    table_schema: Optional[str] = Form(None),
    transcriber: Transcriber = Depends(get_transcriber),
    db: DatabaseManager = Depends(get_database),
    generator: SqlGenerator = Depends(get_sql_generator),
    store: SessionStore = Depends(get_session_store),
):
    state = _session_state(store, session_id)
    data = await audio.read()
    if not data:
        raise HTTPException(status_code=400, detail="No audio provided")
    _start_query(state, InputMode.AUDIO, data)

    try:
        question = await _run(transcriber.transcribe, data, audio.content_type)
    except TranscriptionError as e:
        print(f"❌ Transkription fehlgeschlagen: {str(e)}")
        if state:
            state.query.error = str(e)
        raise HTTPException(status_code=502, detail=str(e))

    if not question:
        raise HTTPException(status_code=422, detail="Could not transcribe audio. Please try again.")
    return await _answer_question(question, table_schema, 1, db, generator, state)


def _results_state(store: SessionStore, session_id: str) -> SessionState:
    state = _session_state(store, session_id)
    if not state.query.has_results:
        raise HTTPException(
            status_code=409,
            detail=state.query.error or "No query results in this session.",
        )
    return state


@app.get("/sessions/{session_id}/results", response_model=ResultPageResponse)
async def result_page(
    session_id: str,
    page: int = Query(1),
    store: SessionStore = Depends(get_session_store),
):
    state = _results_state(store, session_id)
    rows = state.query.results
    page_rows, paging_info = paginate(rows, page)
    return ResultPageResponse(results=page_rows, columns=get_columns(rows), **paging_info)


@app.get("/sessions/{session_id}/export")
async def export_results(session_id: str, store: SessionStore = Depends(get_session_store)):
    state = _results_state(store, session_id)
    return Response(
        content=export_csv(state.query.results),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="query_results.csv"'},
    )


@app.post("/sessions/{session_id}/narration/toggle", response_model=NarrationResponse)
async def toggle_narration(session_id: str, store: SessionStore = Depends(get_session_store)):
    state = _session_state(store, session_id)
    if not state.query.summary:
        raise HTTPException(status_code=409, detail="No summary to read aloud.")
    speaking = state.narrator.toggle(state.query.summary)
    return NarrationResponse(
        supported=state.narrator.supported,
        speaking=speaking,
        commands=state.synthesizer.drain(),
    )


@app.post("/sessions/{session_id}/narration/events", response_model=NarrationResponse)
async def narration_event(
    session_id: str,
    event: NarrationEvent,
    store: SessionStore = Depends(get_session_store),
):
    """Rückmeldung des Browsers (onend / onerror der Utterance)."""
    state = _session_state(store, session_id)
    if event.event == "end":
        state.synthesizer.notify_end()
    else:
        state.synthesizer.notify_error(event.message or "unknown error")
    return NarrationResponse(
        supported=state.narrator.supported,
        speaking=state.narrator.is_speaking,
        commands=state.synthesizer.drain(),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
