import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import requests
from openai import OpenAI, OpenAIError

logger = logging.getLogger(__name__)


class TranscriptionError(RuntimeError):
    """Spracherkennung fehlgeschlagen; die Meldung ist für Nutzer formuliert."""


class Transcriber(ABC):
    """Audio -> Text."""

    @abstractmethod
    def transcribe(self, audio: bytes, content_type: Optional[str] = None) -> str:
        ...


class AssemblyAITranscriber(Transcriber):
    """
    AssemblyAI: Upload, Transkript anlegen, dann Status abfragen bis
    "completed" oder "error".
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.assemblyai.com/v2",
        poll_interval: float = 1.0,
        max_polls: int = 300,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.timeout = timeout
        self.session = session or requests.Session()
        self._sleep = sleep

    def _request(self, stage: str, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = {"authorization": self.api_key}
        headers.update(kwargs.pop("headers", {}))
        try:
            response = self.session.request(
                method, f"{self.base_url}{path}", headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise TranscriptionError(f"AssemblyAI {stage} error: {e}") from e

        if not response.ok:
            try:
                reason = response.json().get("error") or response.reason
            except ValueError:
                reason = response.reason
            raise TranscriptionError(f"AssemblyAI {stage} error: {reason}")
        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionError(f"AssemblyAI {stage} error: invalid response ({e})") from e
        if not isinstance(payload, dict):
            raise TranscriptionError(f"AssemblyAI {stage} error: unexpected response")
        return payload

    @staticmethod
    def _field(stage: str, payload: Dict[str, Any], name: str) -> str:
        value = payload.get(name)
        if not value:
            raise TranscriptionError(f"AssemblyAI {stage} error: response has no '{name}'")
        return value

    def transcribe(self, audio: bytes, content_type: Optional[str] = None) -> str:
        # 1. Upload
        upload = self._request(
            "upload", "POST", "/upload",
            data=audio,
            headers={"Content-Type": "application/octet-stream"},
        )
        audio_url = self._field("upload", upload, "upload_url")

        # 2. Transkription starten
        transcript = self._request(
            "transcription", "POST", "/transcript",
            json={"audio_url": audio_url},
        )
        transcript_id = self._field("transcription", transcript, "id")
        logger.info(f"AssemblyAI transcript {transcript_id} queued")

        # 3. Polling bis Endzustand
        for _ in range(self.max_polls):
            self._sleep(self.poll_interval)
            result = self._request("polling", "GET", f"/transcript/{transcript_id}")
            status = result.get("status")
            if status == "completed":
                return result.get("text") or ""
            if status == "error":
                raise TranscriptionError(f"AssemblyAI transcription failed: {result.get('error')}")

        raise TranscriptionError(
            f"AssemblyAI transcription did not finish after {self.max_polls} status checks."
        )


class WhisperTranscriber(Transcriber):
    """OpenAI Whisper (audio/transcriptions)."""

    def __init__(self, api_key: str, model_name: str = "whisper-1"):
        self.client = OpenAI(api_key=api_key)
        self.model_name = model_name

    def transcribe(self, audio: bytes, content_type: Optional[str] = None) -> str:
        try:
            response = self.client.audio.transcriptions.create(
                model=self.model_name,
                file=("audio.wav", audio, content_type or "audio/wav"),
            )
        except OpenAIError as e:
            raise TranscriptionError(f"OpenAI transcription error: {e}") from e
        return (response.text or "").strip()
