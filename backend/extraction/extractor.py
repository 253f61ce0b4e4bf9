import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from openai import OpenAI, OpenAIError

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = "Extract all text content from this document. Return only the text."


class TextExtractionError(RuntimeError):
    pass


@dataclass
class Extraction:
    text: str
    degraded: bool = False


def mock_extract_text(file_name: str) -> str:
    return (
        f"This is extracted text from {file_name}. \n\n"
        "Text extraction was unavailable, so this placeholder stands in for the "
        "document content.\n\n"
        "Sample data:\n- Item 1: Value 1\n- Item 2: Value 2\n- Item 3: Value 3\n"
    )


class TextExtractor(ABC):
    """PDF / Bild -> Text."""

    def __init__(self, fallback_on_error: bool = False):
        self.fallback_on_error = fallback_on_error

    @abstractmethod
    def _extract(self, data: bytes, file_name: str, content_type: str) -> str:
        ...

    def extract_text(self, data: bytes, file_name: str, content_type: str) -> Extraction:
        try:
            text = self._extract(data, file_name, content_type)
        except TextExtractionError as e:
            if not self.fallback_on_error:
                raise
            logger.warning(f"Text extraction failed for {file_name}, using placeholder text: {e}")
            return Extraction(text=mock_extract_text(file_name), degraded=True)

        if not text.strip():
            if not self.fallback_on_error:
                raise TextExtractionError(f"No text could be extracted from {file_name}.")
            return Extraction(text=mock_extract_text(file_name), degraded=True)
        return Extraction(text=text)


class OpenAIVisionExtractor(TextExtractor):
    """Vision-fähiges Chat-Modell: Bilder als image_url, PDFs als file-Part."""

    def __init__(self, api_key: str, model_name: str, fallback_on_error: bool = False):
        super().__init__(fallback_on_error=fallback_on_error)
        self.client = OpenAI(api_key=api_key)
        self.model_name = model_name

    @staticmethod
    def _content_part(data: bytes, file_name: str, content_type: str) -> dict:
        encoded = base64.b64encode(data).decode("ascii")
        data_url = f"data:{content_type};base64,{encoded}"
        if content_type == "application/pdf":
            return {"type": "file", "file": {"filename": file_name, "file_data": data_url}}
        return {"type": "image_url", "image_url": {"url": data_url}}

    def _extract(self, data: bytes, file_name: str, content_type: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": EXTRACTION_PROMPT},
                        self._content_part(data, file_name, content_type),
                    ],
                }],
                max_tokens=4096,
            )
        except OpenAIError as e:
            raise TextExtractionError(f"OpenAI API error: {e}") from e
        return (response.choices[0].message.content or "").strip()


class MockTextExtractor(TextExtractor):
    """Ohne OCR-Anbieter: Platzhaltertext, immer degraded."""

    def _extract(self, data: bytes, file_name: str, content_type: str) -> str:
        raise TextExtractionError("No text extraction provider configured.")

    def extract_text(self, data: bytes, file_name: str, content_type: str) -> Extraction:
        logger.warning("Using placeholder text extraction (degraded mode)")
        return Extraction(text=mock_extract_text(file_name), degraded=True)
