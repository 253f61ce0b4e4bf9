"""Adapter-Singletons, beim ersten Zugriff gemäß Config gewählt."""

import logging
from functools import lru_cache

from config import Config
from database.manager import DatabaseManager
from extraction.extractor import MockTextExtractor, OpenAIVisionExtractor, TextExtractor
from llm.generator import GeminiGenerator, MockSqlGenerator, OpenAIGenerator, SqlGenerator
from session import SessionStore
from speech.transcriber import AssemblyAITranscriber, Transcriber, WhisperTranscriber

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_sql_generator() -> SqlGenerator:
    provider = Config.LLM_PROVIDER.lower()
    fallback = Config.ALLOW_DEGRADED_FALLBACK
    logger.info(f"LLM provider: {provider}")

    if provider == "openai":
        return OpenAIGenerator(
            api_key=Config.require("OPENAI_API_KEY"),
            model_name=Config.OPENAI_MODEL,
            fallback_on_error=fallback,
        )
    if provider == "groq":
        return OpenAIGenerator(
            api_key=Config.require("GROQ_API_KEY"),
            model_name=Config.GROQ_MODEL,
            base_url=Config.GROQ_BASE_URL,
            provider_name="Groq",
            fallback_on_error=fallback,
        )
    if provider == "gemini":
        return GeminiGenerator(
            api_key=Config.require("GEMINI_API_KEY"),
            model_name=Config.GEMINI_MODEL,
            fallback_on_error=fallback,
        )
    if provider == "fallback":
        return MockSqlGenerator()
    raise RuntimeError(f"Unknown LLM_PROVIDER: {Config.LLM_PROVIDER}")


@lru_cache(maxsize=1)
def get_transcriber() -> Transcriber:
    provider = Config.TRANSCRIBER_PROVIDER.lower()
    if provider == "assemblyai":
        return AssemblyAITranscriber(
            api_key=Config.require("ASSEMBLYAI_API_KEY"),
            base_url=Config.ASSEMBLYAI_BASE_URL,
            poll_interval=Config.TRANSCRIPTION_POLL_INTERVAL,
            max_polls=Config.TRANSCRIPTION_MAX_POLLS,
            timeout=Config.HTTP_TIMEOUT,
        )
    if provider == "whisper":
        return WhisperTranscriber(api_key=Config.require("OPENAI_API_KEY"))
    raise RuntimeError(f"Unknown TRANSCRIBER_PROVIDER: {Config.TRANSCRIBER_PROVIDER}")


@lru_cache(maxsize=1)
def get_text_extractor() -> TextExtractor:
    provider = Config.EXTRACTOR_PROVIDER.lower()
    if provider == "openai":
        return OpenAIVisionExtractor(
            api_key=Config.require("OPENAI_API_KEY"),
            model_name=Config.EXTRACTOR_MODEL,
            fallback_on_error=Config.ALLOW_DEGRADED_FALLBACK,
        )
    if provider == "fallback":
        return MockTextExtractor()
    raise RuntimeError(f"Unknown EXTRACTOR_PROVIDER: {Config.EXTRACTOR_PROVIDER}")


@lru_cache(maxsize=1)
def get_database() -> DatabaseManager:
    return DatabaseManager(
        base_url=Config.require("SUPABASE_URL"),
        api_key=Config.require("SUPABASE_ANON_KEY"),
        function=Config.SQL_RPC_FUNCTION,
        argument=Config.SQL_RPC_ARGUMENT,
        timeout=Config.HTTP_TIMEOUT,
    )


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    return SessionStore(maxsize=Config.MAX_SESSIONS, ttl=Config.SESSION_TTL_SECONDS)
