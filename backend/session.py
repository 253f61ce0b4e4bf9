"""
Sitzungszustand einer Anfrage (Query Session) und explizite Übergabe von
Werten zwischen Schritten (z. B. extrahierter Text -> Schema-Inferenz).
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from cachetools import TTLCache

from utils.narration import BrowserSpeechSynthesizer, SummaryNarrator


class InputMode(str, Enum):
    AUDIO = "audio"
    TEXT = "text"
    FILE = "file"


class MissingSessionValue(KeyError):
    pass


class UnknownSession(KeyError):
    pass


@dataclass
class QuerySession:
    """Ein Durchlauf Eingabe -> SQL -> Ergebnis -> Zusammenfassung."""
    input_mode: Optional[InputMode] = None
    raw_input: Any = None
    natural_language: Optional[str] = None
    schema_text: Optional[str] = None
    generated_sql: Optional[str] = None
    validation_error: Optional[str] = None
    results: Optional[List[Dict[str, Any]]] = None
    summary: Optional[str] = None
    error: Optional[str] = None
    error_category: Optional[str] = None
    degraded: bool = False

    @property
    def has_results(self) -> bool:
        return self.results is not None and self.error is None

    def reset(self):
        for name, value in QuerySession().__dict__.items():
            setattr(self, name, value)


class SessionContext:
    """Schlüssel/Wert-Übergabe innerhalb einer Sitzung mit festen Schlüsseln."""

    EXTRACTED_TEXT = "extracted_text"
    ANALYZED_FILE_NAME = "analyzed_file_name"
    TABLE_SCHEMA = "table_schema"

    KEYS = (EXTRACTED_TEXT, ANALYZED_FILE_NAME, TABLE_SCHEMA)

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def put(self, key: str, value: Any):
        if key not in self.KEYS:
            raise ValueError(f"Unknown session key: {key}")
        self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def require(self, key: str) -> Any:
        value = self._values.get(key)
        if value is None or value == "":
            raise MissingSessionValue(key)
        return value

    def clear(self):
        self._values.clear()


@dataclass
class SessionState:
    context: SessionContext = field(default_factory=SessionContext)
    query: QuerySession = field(default_factory=QuerySession)
    synthesizer: BrowserSpeechSynthesizer = field(default_factory=BrowserSpeechSynthesizer)
    narrator: Optional[SummaryNarrator] = None

    def __post_init__(self):
        if self.narrator is None:
            self.narrator = SummaryNarrator(self.synthesizer)

    def reset(self):
        self.narrator.close()
        self.query.reset()
        self.context.clear()


class SessionStore:
    """Sitzungen im Speicher; verfallen nach SESSION_TTL_SECONDS."""

    def __init__(self, maxsize: int = 1024, ttl: int = 3600):
        self._sessions: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    def create(self) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = SessionState()
        return session_id

    def get(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            raise UnknownSession(session_id)
        return state

    def discard(self, session_id: str):
        state = self._sessions.pop(session_id, None)
        if state is not None:
            state.reset()

    def __len__(self):
        return len(self._sessions)
