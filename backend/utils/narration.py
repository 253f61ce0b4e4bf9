import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class SpeechSynthesizer(ABC):
    """Plattform-Sprachausgabe (im Browser: window.speechSynthesis)."""

    @abstractmethod
    def speak(
        self,
        text: str,
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        ...

    @abstractmethod
    def cancel(self) -> None:
        ...


class BrowserSpeechSynthesizer(SpeechSynthesizer):
    """
    Sammelt Befehle für die Sprachausgabe im Browser.

    Der Server spricht selbst nichts aus; der Client holt die Befehle ab,
    führt sie mit der Web Speech API aus und meldet onend/onerror zurück.
    """

    def __init__(self):
        self.commands: List[Dict[str, Any]] = []
        self._on_end: Optional[Callable[[], None]] = None
        self._on_error: Optional[Callable[[str], None]] = None

    def speak(self, text, on_end, on_error):
        self._on_end = on_end
        self._on_error = on_error
        self.commands.append({"action": "speak", "text": text})

    def cancel(self):
        self._on_end = None
        self._on_error = None
        self.commands.append({"action": "cancel"})

    def drain(self) -> List[Dict[str, Any]]:
        commands, self.commands = self.commands, []
        return commands

    def notify_end(self):
        if self._on_end:
            callback, self._on_end, self._on_error = self._on_end, None, None
            callback()

    def notify_error(self, message: str):
        if self._on_error:
            callback, self._on_end, self._on_error = self._on_error, None, None
            callback(message)


class SummaryNarrator:
    """Start/Stopp-Schalter für das Vorlesen der Ergebnis-Zusammenfassung."""

    def __init__(self, synthesizer: Optional[SpeechSynthesizer]):
        self.synthesizer = synthesizer
        self.is_speaking = False
        self.last_error: Optional[str] = None

    @property
    def supported(self) -> bool:
        return self.synthesizer is not None

    def toggle(self, summary: str) -> bool:
        """
        Startet das Vorlesen oder bricht die laufende Ausgabe ab.

        Returns:
            True, wenn danach gesprochen wird.
        """
        if not self.supported:
            logger.warning("Text-to-speech not supported on this platform")
            return False

        if self.is_speaking:
            self.synthesizer.cancel()
            self.is_speaking = False
            return False

        if not summary:
            return False

        self.last_error = None
        self.is_speaking = True
        self.synthesizer.speak(summary, self._handle_end, self._handle_error)
        return True

    def close(self):
        """Beim Abbau der Ansicht laufende Ausgabe abbrechen."""
        if self.supported and self.is_speaking:
            self.synthesizer.cancel()
        self.is_speaking = False

    def _handle_end(self):
        self.is_speaking = False

    def _handle_error(self, message: str):
        logger.warning(f"Speech synthesis error: {message}")
        self.last_error = message
        self.is_speaking = False
