import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

import google.generativeai as genai

from .prompts import SystemPrompts
from models import SqlGeneration
from utils.sql_guard import strip_code_fences
from openai import (
    APIStatusError,
    AuthenticationError,
    OpenAI,
    OpenAIError,
    RateLimitError,
)

logger = logging.getLogger(__name__)


class SqlGenerationError(RuntimeError):
    """LLM-Aufruf fehlgeschlagen (Transport, Kontingent, Authentifizierung)."""


class SchemaInferenceError(RuntimeError):
    pass


def parse_json_response(response: str) -> Dict[str, Any]:
    """Parse JSON Response und entferne Markdown - sehr robust"""
    cleaned = response.replace("```json", "").replace("```", "").strip()

    start = cleaned.find('{')
    if start == -1:
        raise ValueError("No JSON object found in response")

    brace_count = 0
    end = start
    in_string = False
    escape_next = False

    for i in range(start, len(cleaned)):
        char = cleaned[i]

        if char == '"' and not escape_next:
            in_string = not in_string
        elif char == '\\' and not escape_next:
            escape_next = True
            continue

        if not in_string:
            if char == '{':
                brace_count += 1
            elif char == '}':
                brace_count -= 1
                if brace_count == 0:
                    end = i + 1
                    break

        escape_next = False

    if brace_count != 0:
        raise ValueError(f"Unbalanced curly braces (count={brace_count})")

    json_str = cleaned[start:end]

    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parse error: {e}")

        # Tolerant parsen (z. B. unescapte Newlines in Strings)
        try:
            return json.loads(json_str, strict=False)
        except json.JSONDecodeError:
            pass

        # Steuerzeichen entfernen als letzte Rettung
        sanitized = re.sub(r"[\x00-\x1f\x7f]", " ", json_str)
        if sanitized != json_str:
            return json.loads(sanitized, strict=False)

        raise


def mock_generate_sql(query: str) -> str:
    """Beispiel-SQL passend zu ein paar Demo-Fragen."""
    q = query.lower()
    if "customer" in q and "purchase" in q:
        return (
            "SELECT c.customer_name, o.order_date, o.total_amount \n"
            "FROM customers c \n"
            "JOIN orders o ON c.customer_id = o.customer_id \n"
            "WHERE o.order_date >= CURRENT_DATE - INTERVAL '1 month' \n"
            "ORDER BY o.order_date DESC;"
        )
    if "sales" in q and "region" in q:
        return (
            "SELECT r.region_name, SUM(o.total_amount) AS total_sales \n"
            "FROM orders o \n"
            "JOIN customers c ON o.customer_id = c.customer_id \n"
            "JOIN regions r ON c.region_id = r.region_id \n"
            "WHERE o.order_date >= CURRENT_DATE - INTERVAL '3 months' \n"
            "GROUP BY r.region_name \n"
            "ORDER BY total_sales DESC;"
        )
    if "product" in q and "revenue" in q:
        return (
            "SELECT p.product_name, SUM(oi.quantity * oi.unit_price) AS revenue \n"
            "FROM order_items oi \n"
            "JOIN products p ON oi.product_id = p.product_id \n"
            "GROUP BY p.product_name \n"
            "ORDER BY revenue DESC \n"
            "LIMIT 5;"
        )
    if "order" in q and "pending" in q:
        return (
            "SELECT o.order_id, c.customer_name, o.order_date, o.total_amount \n"
            "FROM orders o \n"
            "JOIN customers c ON o.customer_id = c.customer_id \n"
            "WHERE o.status = 'pending' \n"
            "ORDER BY o.order_date;"
        )
    if "customer" in q and "country" in q:
        return (
            "SELECT country, COUNT(*) AS customer_count \n"
            "FROM customers \n"
            "GROUP BY country \n"
            "ORDER BY customer_count DESC;"
        )
    return "SELECT * FROM table_name WHERE condition = 'value';"


class SqlGenerator(ABC):
    """Gemeinsame Schnittstelle für SQL-Generierung, Schema-Inferenz und Zusammenfassung."""

    provider_name = "LLM"

    def __init__(self, fallback_on_error: bool = False):
        self.fallback_on_error = fallback_on_error

    @abstractmethod
    def _complete(self, system_instruction: str, prompt: str, temperature: float = 0.2) -> str:
        ...

    def generate_sql(self, query: str, table_schema: Optional[str] = None) -> SqlGeneration:
        """Generiert SQL aus der Nutzer-Frage"""
        if table_schema:
            system_prompt = SystemPrompts.SQL_GENERATION_WITH_SCHEMA.format(schema=table_schema)
        else:
            system_prompt = SystemPrompts.SQL_GENERATION

        prompt = (
            f"Convert this to SQL: {query}\n\n"
            "Return only the SQL code without any explanations or markdown formatting."
        )
        try:
            response = self._complete(system_prompt, prompt, temperature=0.2)
        except SqlGenerationError as e:
            if not self.fallback_on_error:
                raise
            logger.warning(f"{self.provider_name} SQL generation failed, using mock SQL: {e}")
            return SqlGeneration(sql=mock_generate_sql(query), natural_language_query=query, degraded=True)

        sql = strip_code_fences(response)
        if not sql:
            if not self.fallback_on_error:
                raise SqlGenerationError(f"{self.provider_name} returned no SQL.")
            logger.warning(f"{self.provider_name} returned no SQL, using mock SQL")
            return SqlGeneration(sql=mock_generate_sql(query), natural_language_query=query, degraded=True)

        return SqlGeneration(sql=sql, natural_language_query=query)

    def summarize_results(self, query: str, results: List[Dict[str, Any]]) -> str:
        """Erzeugt eine Kurz-Zusammenfassung des kompletten (ungeblätterten) Ergebnisses."""
        prompt = f"""
Original query: "{query}"

Row count: {len(results)}

Results: {json.dumps(results, indent=2, ensure_ascii=False, default=str)}

Please provide a concise natural language summary of these query results.
"""
        summary = self._complete(SystemPrompts.RESULT_SUMMARY, prompt, temperature=0.3)
        if not summary:
            raise SqlGenerationError(f"{self.provider_name} returned an empty summary.")
        return summary

    def infer_schema(self, text: str) -> Dict[str, Any]:
        """Schlägt Spalten, Zeilenzahl und Statistiken für extrahierten Dokumenttext vor."""
        prompt = f"""
DOCUMENT TEXT:
{text}

Propose the table as JSON.
"""
        response = self._complete(SystemPrompts.SCHEMA_INFERENCE, prompt, temperature=0.2)
        try:
            return parse_json_response(response)
        except (ValueError, json.JSONDecodeError) as e:
            raise SchemaInferenceError(f"{self.provider_name} returned no valid schema JSON: {e}") from e


class OpenAIGenerator(SqlGenerator):
    """OpenAI Chat Completions; über base_url auch für Groq (OpenAI-kompatibel)."""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        base_url: Optional[str] = None,
        provider_name: str = "OpenAI",
        fallback_on_error: bool = False,
    ):
        super().__init__(fallback_on_error=fallback_on_error)
        self.client = OpenAI(api_key=api_key, base_url=base_url)
        self.model_name = model_name
        self.provider_name = provider_name

    def _complete(self, system_instruction: str, prompt: str, temperature: float = 0.2) -> str:
        """Generischer ChatCompletion Call"""
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
            )
            content = response.choices[0].message.content or ""
            return content.strip()
        except RateLimitError as e:
            raise SqlGenerationError(
                f"{self.provider_name} quota or rate limit exceeded. Please check your key, "
                "plan or billing settings."
            ) from e
        except AuthenticationError as e:
            raise SqlGenerationError(
                f"{self.provider_name} authentication failed. Is the API key valid?"
            ) from e
        except APIStatusError as e:
            if e.status_code == 429:
                raise SqlGenerationError(
                    f"{self.provider_name} reports 'Too Many Requests'. Please try again later."
                ) from e
            raise SqlGenerationError(f"{self.provider_name} API error: {e.message}") from e
        except OpenAIError as e:
            raise SqlGenerationError(f"{self.provider_name} API error: {e}") from e


class GeminiGenerator(SqlGenerator):
    """Google Gemini über google-generativeai."""

    provider_name = "Gemini"

    def __init__(self, api_key: str, model_name: str, fallback_on_error: bool = False):
        super().__init__(fallback_on_error=fallback_on_error)
        genai.configure(api_key=api_key)
        self.model_name = model_name

    def _complete(self, system_instruction: str, prompt: str, temperature: float = 0.2) -> str:
        model = genai.GenerativeModel(self.model_name, system_instruction=system_instruction)
        try:
            response = model.generate_content(
                prompt,
                generation_config={"temperature": temperature, "top_k": 40, "top_p": 0.95},
            )
            return (response.text or "").strip()
        except Exception as e:
            raise SqlGenerationError(f"Gemini API error: {e}") from e


class MockSqlGenerator(SqlGenerator):
    """Ohne LLM: Beispiel-SQL, immer als degraded markiert."""

    provider_name = "Mock"

    def _complete(self, system_instruction: str, prompt: str, temperature: float = 0.2) -> str:
        raise SqlGenerationError("No LLM provider configured.")

    def generate_sql(self, query: str, table_schema: Optional[str] = None) -> SqlGeneration:
        logger.warning("Using mock SQL generation (degraded mode)")
        return SqlGeneration(sql=mock_generate_sql(query), natural_language_query=query, degraded=True)

    def infer_schema(self, text: str) -> Dict[str, Any]:
        return {}
