"""
NoteTag Backend — Google Gemini Service Implementation
========================================================

What:  Generative provider backed by the Google Gemini API.
Why:   Gemini handles open-ended text understanding well and has a free tier,
       which makes it the default provider.
How:   google.generativeai SDK. The SDK keeps the API key in module-level
       state, so genai.configure() runs once, on first use.

Prompt contracts:
    rank_tags                   → comma-separated tag names
    suggest_tags_with_reasoning → JSON {"suggestedTags": [...], "reasoning": "..."}
    split_note                  → JSON array of strings
    Anything the model invents outside the vocabulary is discarded.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import google.generativeai as genai

from notetag.config import Settings
from notetag.exceptions import ResponseParseError
from notetag.schemas.ai import MAX_SUGGESTED_TAGS, ProviderName, ReasonedSuggestion
from notetag.services.llm_base import LLMService
from notetag.services.response_parsing import (
    filter_to_vocabulary,
    mentioned_tags,
    parse_comma_separated,
    parse_json,
    parse_string_array,
)

logger = logging.getLogger(__name__)


class GeminiService(LLMService):
    """
    Google Gemini implementation.

    Architecture:
        - One instance per process, owned by UnifiedAIService
        - SDK configured lazily with the API key on the first real call
        - A GenerativeModel is built per call because generation settings
          (max_output_tokens) vary between operations
    """

    provider = ProviderName.GOOGLE
    env_var = "GOOGLE_API_KEY"

    SUGGEST_PROMPT = """Given the following text content, suggest the most relevant tags from the available options. Return only the tag names, separated by commas, with no additional text or explanation.

Content: "{text}"

Available tags: {tags}

Rules:
- Select maximum 3 most relevant tags
- Only use tags from the available list
- Consider the main topics, themes, and keywords in the content
- Return tag names only, separated by commas"""

    REASONING_PROMPT = """Analyze the following text content and suggest the most relevant tags from the available options. Provide both the suggested tags and your reasoning.

Content: "{text}"

Available tags: {tags}

Please respond in this exact JSON format:
{{
  "suggestedTags": ["tag1", "tag2", "tag3"],
  "reasoning": "Brief explanation of why these tags were chosen"
}}

Rules:
- Select maximum 3 most relevant tags
- Only use tags from the available list
- Consider the main topics, themes, and keywords in the content"""

    SPLIT_PROMPT = """Break down the following text into separate, meaningful items. Each item should be a complete thought or piece of information that can stand alone.

Text: "{text}"

Rules:
- Split into logical, meaningful segments
- Each item should be complete and understandable on its own
- Preserve the original meaning and context
- Return a JSON array of strings and nothing else
- If the text is already a single coherent item, return an array with that one item"""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self._configured = False
        logger.info("GeminiService initialized with model=%s", settings.google_model)

    def _model(self, generation_config: Optional[Dict[str, Any]] = None) -> "genai.GenerativeModel":
        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True
        return genai.GenerativeModel(self.settings.google_model, generation_config=generation_config)

    async def _generate(
        self,
        operation: str,
        prompt: str,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        response = await self._call(
            operation,
            lambda: self._model(generation_config).generate_content_async(
                prompt,
                request_options={"timeout": self.settings.ai_request_timeout},
            ),
        )
        # .text raises when the candidate was blocked; treat as empty output
        try:
            return response.text or ""
        except ValueError:
            logger.warning("Gemini %s returned no text (blocked or empty candidate)", operation)
            return ""

    async def _ping(self) -> None:
        await self._generate("test_connection", "Hello, test connection.")

    async def rank_tags(self, text: str, vocabulary: Sequence[str]) -> List[str]:
        self._require_credential()
        prompt = self.SUGGEST_PROMPT.format(text=text, tags=", ".join(vocabulary))
        answer = await self._generate("rank_tags", prompt)
        return filter_to_vocabulary(parse_comma_separated(answer), vocabulary)

    async def suggest_tags_with_reasoning(
        self, text: str, vocabulary: Sequence[str]
    ) -> ReasonedSuggestion:
        """
        Suggest tags and explain the choice.

        When the model ignores the JSON format, tags are recovered by looking
        for vocabulary names in its free-text answer.

        Raises:
            ProviderConfigurationError: No credential configured.
            ProviderError: The API call failed.
        """
        self._require_credential()
        prompt = self.REASONING_PROMPT.format(text=text, tags=", ".join(vocabulary))
        answer = await self._generate("suggest_tags_with_reasoning", prompt)

        try:
            data = parse_json(answer)
            if not isinstance(data, dict):
                raise ResponseParseError(message="Expected a JSON object", raw=answer)
        except ResponseParseError:
            return ReasonedSuggestion(
                tags=mentioned_tags(answer, vocabulary),
                reasoning="Failed to parse structured response, extracted tags from text",
                provider=self.provider,
            )

        raw_tags = data.get("suggestedTags") or []
        tags = filter_to_vocabulary(
            [t for t in raw_tags if isinstance(t, str)] if isinstance(raw_tags, list) else [],
            vocabulary,
            limit=MAX_SUGGESTED_TAGS,
        )
        reasoning = data.get("reasoning")
        return ReasonedSuggestion(
            tags=tags,
            reasoning=reasoning if isinstance(reasoning, str) and reasoning else "No reasoning provided",
            provider=self.provider,
        )

    async def split_note(self, text: str) -> List[str]:
        self._require_credential()
        answer = await self._generate("split_note", self.SPLIT_PROMPT.format(text=text))
        try:
            return parse_string_array(answer)
        except ResponseParseError as e:
            logger.warning("Failed to parse Gemini note parsing response: %s", e.message)
            return [text.strip()]

    async def generate_text(self, prompt: str, max_length: int = 150) -> str:
        self._require_generation_credential()
        answer = await self._generate(
            "generate_text",
            prompt,
            generation_config={"max_output_tokens": max_length, "temperature": 0.7},
        )
        return answer.strip()
