"""
Enrichment: LLM-generated definitions and quiz questions.

Two layers:
- GeminiEnrichmentClient talks to the Gemini generateContent REST API and
  raises EnrichmentError / EnrichmentParseError on any failure.
- EnrichmentService is the cache-first front door used by the study loop.
  It never raises: failures are logged and replaced with clearly labelled
  fallback payloads, which are not cached.

Prefetching (e.g. the next word while the current one is displayed) runs as
fire-and-forget asyncio tasks that only write into the content caches.
"""

from __future__ import annotations

import asyncio
import json
import random
import re
from collections.abc import Callable
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lexideck.core.errors import EnrichmentError, EnrichmentParseError

from .content_cache import ContentCache

# =============================================================================
# Payload Models
# =============================================================================


class WordDefinition(BaseModel):
    """Definition payload for one word."""

    model_config = ConfigDict(populate_by_name=True)

    english_definition: str = Field(default="", alias="englishDefinition")
    vietnamese_definition: str = Field(default="", alias="vietnameseDefinition")
    examples: list[str] = Field(default_factory=list)
    is_fallback: bool = False

    @field_validator("examples", mode="before")
    @classmethod
    def _coerce_examples(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class QuizQuestion(BaseModel):
    """Four-option multiple choice question for one word."""

    model_config = ConfigDict(populate_by_name=True)

    question: str
    options: list[str] = Field(min_length=4, max_length=4)
    correct_answer: str = Field(alias="correctAnswer")
    is_fallback: bool = False

    @property
    def correct_index(self) -> int:
        try:
            return self.options.index(self.correct_answer)
        except ValueError:
            return 0


def fallback_definition(word: str) -> WordDefinition:
    return WordDefinition(
        english_definition=f"Definition unavailable for \"{word}\"",
        vietnamese_definition="Không thể tải định nghĩa",
        examples=["Examples unavailable"],
        is_fallback=True,
    )


def fallback_quiz(word: str) -> QuizQuestion:
    options = [
        "Quiz unavailable",
        "Please try again later",
        "Enrichment service error",
        "Check your connection",
    ]
    return QuizQuestion(
        question=f"What does \"{word}\" mean?",
        options=options,
        correct_answer=options[0],
        is_fallback=True,
    )


def placeholder_definition(word: str) -> WordDefinition:
    """Shown while a definition is still being fetched."""
    return WordDefinition(
        english_definition=f"Loading definition for \"{word}\"...",
        vietnamese_definition="",
        examples=[],
        is_fallback=True,
    )


def placeholder_quiz(word: str) -> QuizQuestion:
    """Shown when a quiz question is still being generated."""
    options = [
        "Question still loading",
        "Answer any letter to continue",
        "This answer is not graded",
        "The next card will be ready",
    ]
    return QuizQuestion(
        question=f"Loading quiz for \"{word}\"...",
        options=options,
        correct_answer=options[0],
        is_fallback=True,
    )


# =============================================================================
# Prompts & Parsing
# =============================================================================

DEFINITION_PROMPT_TEMPLATE = """Define the English word "{word}".

Respond with a JSON object in EXACTLY this format and nothing else:
{{
  "englishDefinition": "Part of speech and a concise English definition",
  "vietnameseDefinition": "A concise Vietnamese translation",
  "examples": ["One to three short example sentences using the word"]
}}
"""

QUIZ_PROMPT_TEMPLATE = """Write one multiple-choice vocabulary question for the English word "{word}".

Use EXACTLY this format, one item per line, and nothing else:
Question: What is the meaning of "{word}"?
A: <option>
B: <option>
C: <option>
D: <option>
Correct: <A, B, C or D>
"""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")
_QUIZ_FIELDS = {
    "question": re.compile(r"Question:\s*(.+)"),
    "A": re.compile(r"^\s*A[:.)]\s*(.+)", re.MULTILINE),
    "B": re.compile(r"^\s*B[:.)]\s*(.+)", re.MULTILINE),
    "C": re.compile(r"^\s*C[:.)]\s*(.+)", re.MULTILINE),
    "D": re.compile(r"^\s*D[:.)]\s*(.+)", re.MULTILINE),
    "correct": re.compile(r"Correct(?: answer)?:\s*\**([A-D])\b", re.IGNORECASE),
}


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ``` or ```json fence if present."""
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_definition_response(text: str) -> WordDefinition:
    """
    Parse the JSON definition returned by the model.

    Empty fields are filled with "not available" placeholders, the same way
    a partially answered request is shown to the learner.

    Raises:
        EnrichmentParseError: If the text is not a JSON object of the expected shape
    """
    cleaned = strip_code_fence(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise EnrichmentParseError(f"Definition is not valid JSON: {e}", raw=text) from e
    if not isinstance(data, dict):
        raise EnrichmentParseError("Definition JSON is not an object", raw=text)

    try:
        definition = WordDefinition.model_validate(data)
    except ValidationError as e:
        raise EnrichmentParseError(f"Definition has unexpected shape: {e}", raw=text) from e

    examples = [e.strip() for e in definition.examples if isinstance(e, str) and e.strip()]
    return WordDefinition(
        english_definition=definition.english_definition.strip() or "Definition not available",
        vietnamese_definition=definition.vietnamese_definition.strip() or "Không có bản dịch",
        examples=examples or ["No examples available"],
    )


def parse_quiz_response(text: str) -> QuizQuestion:
    """
    Parse the line-based quiz format returned by the model.

    Raises:
        EnrichmentParseError: If any of the six lines is missing
    """
    matches = {name: pattern.search(text) for name, pattern in _QUIZ_FIELDS.items()}
    missing = [name for name, match in matches.items() if match is None]
    if missing:
        raise EnrichmentParseError(f"Quiz response missing {', '.join(missing)}", raw=text)

    options = [matches[letter].group(1).strip() for letter in "ABCD"]  # type: ignore[union-attr]
    letter = matches["correct"].group(1).upper()  # type: ignore[union-attr]
    return QuizQuestion(
        question=matches["question"].group(1).strip(),  # type: ignore[union-attr]
        options=options,
        correct_answer=options["ABCD".index(letter)],
    )


# =============================================================================
# Gemini Client
# =============================================================================


class GeminiEnrichmentClient:
    """HTTP client for the Gemini generateContent endpoint."""

    DEFAULT_MODELS = (
        "gemma-3-4b-it",
        "gemma-3-12b-it",
        "gemma-3-27b-it",
    )

    def __init__(
        self,
        api_key: str | None,
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        models: list[str] | tuple[str, ...] | None = None,
        timeout_seconds: float = 20.0,
        temperature: float = 0.2,
        max_output_tokens: int = 300,
        rng: random.Random | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Gemini API key (client is unavailable without one)
            api_base: API root URL
            models: Candidate model names; one is picked at random per request
            timeout_seconds: Per-request timeout
            temperature: Sampling temperature
            max_output_tokens: Response length cap
            rng: Random source for model choice
            http_client: Pre-built AsyncClient (tests)
        """
        self.api_key = api_key or None
        self.api_base = api_base.rstrip("/")
        self.models = list(models or self.DEFAULT_MODELS)
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.rng = rng or random.Random()
        self.client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
        )

        if not self.api_key:
            logger.warning("No Gemini API key - enrichment will use fallback content")

    @property
    def is_available(self) -> bool:
        return self.api_key is not None

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def _pick_model(self) -> str:
        return self.rng.choice(self.models)

    async def generate(self, prompt: str) -> str:
        """
        Send a prompt and return the first candidate's text.

        Raises:
            EnrichmentError: On missing key, transport or HTTP errors
            EnrichmentParseError: If the response envelope is malformed
        """
        if not self.is_available:
            raise EnrichmentError("Gemini API key not configured")

        model = self._pick_model()
        url = f"{self.api_base}/models/{model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "topP": 0.8,
                "topK": 40,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

        logger.debug(f"Gemini request using model {model}")
        try:
            response = await self.client.post(url, params={"key": self.api_key}, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EnrichmentError(
                f"Gemini returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise EnrichmentError(f"Gemini request failed: {e}") from e

        try:
            data = response.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise EnrichmentParseError(f"Unexpected Gemini envelope: {e}", raw=response.text) from e

    async def fetch_definition(self, word: str) -> WordDefinition:
        text = await self.generate(DEFINITION_PROMPT_TEMPLATE.format(word=word))
        return parse_definition_response(text)

    async def fetch_quiz(self, word: str) -> QuizQuestion:
        text = await self.generate(QUIZ_PROMPT_TEMPLATE.format(word=word))
        return parse_quiz_response(text)


# =============================================================================
# Read-through Service
# =============================================================================


class EnrichmentService:
    """
    Cache-first access to definitions and quizzes.

    Callers always get a payload back. Concurrent requests for the same word
    and kind share one in-flight task; a request that arrives after the task
    finished simply reads the cache.
    """

    DEFINITION = "definition"
    QUIZ = "quiz"

    def __init__(
        self,
        client: GeminiEnrichmentClient,
        definitions: ContentCache[WordDefinition],
        quizzes: ContentCache[QuizQuestion],
        on_cached: Callable[[], None] | None = None,
    ):
        """
        Initialize the service.

        Args:
            client: Enrichment client
            definitions: Definition cache
            quizzes: Quiz cache
            on_cached: Called after a fresh payload is cached (persistence hook)
        """
        self.client = client
        self.definitions = definitions
        self.quizzes = quizzes
        self.on_cached = on_cached
        self._inflight: dict[tuple[str, str], asyncio.Task[Any]] = {}

    async def get_definition(self, word: str) -> WordDefinition:
        cached = self.definitions.get(word)
        if cached is not None:
            return cached
        return await self._shared_fetch(self.DEFINITION, word)

    async def get_quiz(self, word: str) -> QuizQuestion:
        cached = self.quizzes.get(word)
        if cached is not None:
            return cached
        return await self._shared_fetch(self.QUIZ, word)

    async def wait_for_definition(self, word: str, timeout: float) -> WordDefinition:
        """
        Wait at most timeout seconds for a definition.

        On timeout a placeholder is returned; the fetch keeps running and
        still fills the cache when it completes.
        """
        cached = self.definitions.get(word)
        if cached is not None:
            return cached
        task = self._task_for(self.DEFINITION, word)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Definition for {word!r} still loading after {timeout}s")
            return placeholder_definition(word)

    async def wait_for_quiz(self, word: str, timeout: float) -> QuizQuestion:
        """Wait at most timeout seconds for a quiz question, else a placeholder."""
        cached = self.quizzes.get(word)
        if cached is not None:
            return cached
        task = self._task_for(self.QUIZ, word)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Quiz for {word!r} still loading after {timeout}s")
            return placeholder_quiz(word)

    def prefetch(self, word: str, kind: str = DEFINITION) -> asyncio.Task[Any] | None:
        """
        Start fetching in the background unless cached or already in flight.

        Must be called from a running event loop.

        Returns:
            The task doing the work, or None if the payload is cached
        """
        cache = self.definitions if kind == self.DEFINITION else self.quizzes
        if word in cache:
            return None
        return self._task_for(kind, word)

    @property
    def pending(self) -> int:
        return len(self._inflight)

    async def close(self) -> None:
        """Cancel outstanding prefetches and close the client."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
        await self.client.close()

    # =========================================================================
    # Internals
    # =========================================================================

    def _task_for(self, kind: str, word: str) -> asyncio.Task[Any]:
        key = (kind, word)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch_and_cache(kind, word))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, key=key: self._inflight.pop(key, None))
        return task

    async def _shared_fetch(self, kind: str, word: str) -> Any:
        return await self._task_for(kind, word)

    async def _fetch_and_cache(self, kind: str, word: str) -> Any:
        logger.debug(f"Fetching {kind} for {word!r}")
        try:
            if kind == self.DEFINITION:
                payload: Any = await self.client.fetch_definition(word)
                self.definitions.put(word, payload)
            else:
                payload = await self.client.fetch_quiz(word)
                self.quizzes.put(word, payload)
        except (EnrichmentError, httpx.HTTPError, ValidationError) as e:
            logger.warning(f"Enrichment {kind} for {word!r} failed, using fallback: {e}")
            return fallback_definition(word) if kind == self.DEFINITION else fallback_quiz(word)

        logger.debug(f"{kind.title()} for {word!r} saved to cache")
        if self.on_cached is not None:
            self.on_cached()
        return payload
