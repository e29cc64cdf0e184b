"""
NoteTag Backend — OpenAI Chat Service
=======================================

What:  Generative provider backed by OpenAI chat completions.
Why:   A general LLM can classify a note against arbitrary tag names and break
       a free-form note into separate actionable items.
How:   openai.AsyncOpenAI, created lazily on first use. Structured answers are
       requested as JSON and parsed defensively (see response_parsing).

Prompt contracts:
    classify_text → JSON array of {"label": str, "score": 0-1}
    split_note    → JSON array of strings
    Malformed JSON is logged and downgraded: [] for classification, the whole
    note for splitting.
"""

import logging
from typing import List, Optional, Sequence

from openai import AsyncOpenAI

from notetag.config import Settings
from notetag.exceptions import ResponseParseError
from notetag.schemas.ai import MAX_SUGGESTED_TAGS, ClassificationResult, ProviderName
from notetag.services.llm_base import LLMService
from notetag.services.response_parsing import parse_json, parse_string_array

logger = logging.getLogger(__name__)

MIN_CLASSIFIER_CONFIDENCE = 0.1


class OpenAIService(LLMService):
    """OpenAI chat-completions implementation."""

    provider = ProviderName.OPENAI
    env_var = "OPENAI_API_KEY"

    CLASSIFY_PROMPT = """Classify the following text into one or more of these categories: {labels}.
Return a JSON array of objects with "label" and "score" (0-1 confidence) properties.
Only include categories that are relevant to the text.

Text: "{text}"

Response (JSON only):"""

    SPLIT_PROMPT = """Parse the following note and extract separate actionable items or tasks.
Return a JSON array of strings, where each string is a distinct item or task.
If the note contains only one item, return an array with that single item.

Note: "{text}"

Response (JSON array only):"""

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        super().__init__(settings)
        self._client = client
        logger.info("OpenAIService initialized with model=%s", settings.openai_model_chat)

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=self.settings.ai_request_timeout,
            )
        return self._client

    async def _complete(
        self,
        operation: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        response = await self._call(
            operation,
            lambda: self.client.chat.completions.create(
                model=self.settings.openai_model_chat,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=temperature,
            ),
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def _ping(self) -> None:
        await self._complete("test_connection", "Hello, this is a test.", max_tokens=5, temperature=0)

    async def classify_text(
        self, text: str, candidate_labels: Sequence[str]
    ) -> List[ClassificationResult]:
        """
        Ask the model to score `candidate_labels` against `text`.

        Returns:
            Scored labels restricted to the candidate set. [] when the model's
            answer is not the requested JSON.

        Raises:
            ProviderConfigurationError: No credential configured.
            ProviderError: The API call failed or returned no content.
        """
        self._require_credential()
        prompt = self.CLASSIFY_PROMPT.format(labels=", ".join(candidate_labels), text=text)
        content = await self._complete("classify_text", prompt, max_tokens=200, temperature=0.3)
        if not content:
            raise ResponseParseError(message="No response from OpenAI")

        try:
            data = parse_json(content)
        except ResponseParseError as e:
            logger.error("Failed to parse OpenAI classification response: %s", e.context.get("raw"))
            return []

        if not isinstance(data, list):
            logger.error("OpenAI classification response is not an array")
            return []

        allowed = set(candidate_labels)
        results = []
        for entry in data:
            if not isinstance(entry, dict):
                continue
            label, score = entry.get("label"), entry.get("score")
            if label not in allowed:
                continue
            if isinstance(score, bool) or not isinstance(score, (int, float)) or score <= 0:
                continue
            results.append(ClassificationResult(label=label, score=min(float(score), 1.0)))
        return results

    async def rank_tags(self, text: str, vocabulary: Sequence[str]) -> List[str]:
        results = await self.classify_text(text, vocabulary)
        top = sorted(
            (r for r in results if r.score > MIN_CLASSIFIER_CONFIDENCE),
            key=lambda r: r.score,
            reverse=True,
        )
        return [r.label for r in top[:MAX_SUGGESTED_TAGS]]

    async def split_note(self, text: str) -> List[str]:
        self._require_credential()
        content = await self._complete(
            "split_note", self.SPLIT_PROMPT.format(text=text), max_tokens=200, temperature=0.3
        )
        try:
            return parse_string_array(content)
        except ResponseParseError as e:
            logger.warning("Failed to parse OpenAI note parsing response: %s", e.message)
            return [text.strip()]

    async def generate_text(self, prompt: str, max_length: int = 100) -> str:
        self._require_generation_credential()
        content = await self._complete("generate_text", prompt, max_tokens=max_length, temperature=0.7)
        return content.strip()
