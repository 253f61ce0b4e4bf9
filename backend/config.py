import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Zentrale Konfiguration"""
    # LLM (SQL-Generierung, Schema-Inferenz, Zusammenfassung)
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "groq")
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    GROQ_API_KEY = os.getenv("GROQ_API_KEY")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # Spracherkennung
    TRANSCRIBER_PROVIDER = os.getenv("TRANSCRIBER_PROVIDER", "assemblyai")
    ASSEMBLYAI_API_KEY = os.getenv("ASSEMBLYAI_API_KEY")
    ASSEMBLYAI_BASE_URL = os.getenv("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com/v2")
    TRANSCRIPTION_POLL_INTERVAL = float(os.getenv("TRANSCRIPTION_POLL_INTERVAL", "1.0"))
    TRANSCRIPTION_MAX_POLLS = int(os.getenv("TRANSCRIPTION_MAX_POLLS", "300"))

    # Texterkennung (PDF / Bilder)
    EXTRACTOR_PROVIDER = os.getenv("EXTRACTOR_PROVIDER", "openai")
    EXTRACTOR_MODEL = os.getenv("EXTRACTOR_MODEL", "gpt-4o-mini")

    # Datenbank (Supabase RPC)
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")
    SQL_RPC_FUNCTION = os.getenv("SQL_RPC_FUNCTION", "execute_sql_query")
    SQL_RPC_ARGUMENT = os.getenv("SQL_RPC_ARGUMENT", "query_string")
    HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30"))

    # Mock-Ausgaben im Fehlerfall (immer als "degraded" markiert)
    ALLOW_DEGRADED_FALLBACK = _env_bool("ALLOW_DEGRADED_FALLBACK")

    # Sessions
    SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "3600"))
    MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "1024"))

    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    @classmethod
    def require(cls, name: str) -> str:
        """Liefert einen Pflichtwert oder bricht mit lesbarer Meldung ab."""
        value = getattr(cls, name, None)
        if not value:
            raise RuntimeError(
                f"{name} is not set. Please add it to your environment or .env file."
            )
        return value
