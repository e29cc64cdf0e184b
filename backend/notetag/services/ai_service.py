"""
NoteTag Backend — Unified AI Service (Provider Registry)
==========================================================

What:  Provider-agnostic facade over the three LLMService implementations.
Why:   Routes should not care which backend answers, and one broken backend
       should not break tag suggestion or note parsing.
How:   Holds one instance per provider in a lookup table keyed by
       ProviderName, tracks the current default provider, and dispatches.
Who:   Built once in the FastAPI lifespan and stored on app.state; routes get
       it through the get_ai_service dependency.

Fallback policy (suggest_tags, parse_note):
    requested provider ──fails──▶ FALLBACK_ORDER[requested] ──fails──▶ give up
    Exactly one hop. The fallback target never falls back again, so a
    request touches at most two providers.

    FALLBACK_ORDER:
        google      → huggingface
        huggingface → google
        openai      → google

    generate_text never falls back and always raises on failure.
    test_connection never falls back: callers need the true status.

Concurrency:
    The default-provider selector is a plain attribute, last write wins. A
    request that reads it while set_provider() runs may use either provider;
    that is acceptable because provider choice is not safety-critical.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Union

from notetag.config import Settings
from notetag.exceptions import UnknownProviderError
from notetag.schemas.ai import (
    ComparisonEntry,
    EntityMention,
    ParseOutcome,
    ProviderComparison,
    ProviderName,
    ProviderStatus,
    ReasonedSuggestion,
    SuggestionOutcome,
)
from notetag.services.gemini_service import GeminiService
from notetag.services.huggingface_service import HuggingFaceService
from notetag.services.llm_base import LLMService
from notetag.services.openai_service import OpenAIService
from notetag.services.response_parsing import filter_to_vocabulary

logger = logging.getLogger(__name__)

FALLBACK_ORDER: Dict[ProviderName, ProviderName] = {
    ProviderName.GOOGLE: ProviderName.HUGGINGFACE,
    ProviderName.HUGGINGFACE: ProviderName.GOOGLE,
    ProviderName.OPENAI: ProviderName.GOOGLE,
}

# First connected provider in this order is recommended
PREFERENCE_ORDER: List[ProviderName] = [
    ProviderName.GOOGLE,
    ProviderName.OPENAI,
    ProviderName.HUGGINGFACE,
]


def _error_message(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error) or type(error).__name__


class UnifiedAIService:
    """
    Registry of provider clients plus the provider-agnostic API.

    Responsibilities:
        - get_provider() / set_provider(): the process-wide default
        - test_connection(), test_all_providers(), get_best_provider()
        - suggest_tags(), suggest_tags_with_reasoning(), compare_providers()
        - parse_note(), generate_text(), extract_entities()
    """

    def __init__(
        self,
        providers: Dict[ProviderName, LLMService],
        default_provider: Union[ProviderName, str] = ProviderName.GOOGLE,
    ):
        self._providers = dict(providers)
        self._current = self._resolve(default_provider)
        logger.info(
            "UnifiedAIService ready: providers=%s, default=%s",
            [p.value for p in self._providers],
            self._current.value,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "UnifiedAIService":
        """Build every provider from settings and select the configured default."""
        return cls(
            providers={
                ProviderName.HUGGINGFACE: HuggingFaceService(settings),
                ProviderName.OPENAI: OpenAIService(settings),
                ProviderName.GOOGLE: GeminiService(settings),
            },
            default_provider=settings.ai_provider,
        )

    # ── Registry ──────────────────────────────────────────────────────────

    def _resolve(self, provider: Union[ProviderName, str, None]) -> ProviderName:
        if provider is None:
            return self._current
        try:
            name = ProviderName(provider)
        except ValueError:
            raise UnknownProviderError(provider=str(provider))
        if name not in self._providers:
            raise UnknownProviderError(provider=name.value)
        return name

    def client(self, provider: Union[ProviderName, str]) -> LLMService:
        return self._providers[self._resolve(provider)]

    @property
    def available_providers(self) -> List[ProviderName]:
        return list(self._providers)

    def get_provider(self) -> ProviderName:
        return self._current

    def set_provider(self, provider: Union[ProviderName, str]) -> ProviderName:
        """
        Switch the default provider. Returns the previous one.

        Does not test connectivity; callers wanting a validated switch call
        test_connection() first.
        """
        name = self._resolve(provider)
        previous, self._current = self._current, name
        logger.info("Default AI provider switched: %s -> %s", previous.value, name.value)
        return previous

    # ── Connection ────────────────────────────────────────────────────────

    async def test_connection(
        self, provider: Union[ProviderName, str, None] = None
    ) -> ProviderStatus:
        name = self._resolve(provider)
        return await self._providers[name].test_connection()

    async def test_all_providers(self) -> ProviderComparison:
        """Test every provider concurrently and recommend the best connected one."""
        names = list(self._providers)
        statuses = await asyncio.gather(
            *(self._providers[name].test_connection() for name in names)
        )
        by_name = dict(zip(names, statuses))
        recommended = next(
            (name for name in PREFERENCE_ORDER if name in by_name and by_name[name].connected),
            None,
        )
        return ProviderComparison(
            providers={name.value: status for name, status in by_name.items()},
            recommended=recommended,
        )

    async def get_best_provider(self) -> Optional[ProviderName]:
        return (await self.test_all_providers()).recommended

    # ── Tag Suggestion ────────────────────────────────────────────────────

    async def suggest_tags(
        self,
        text: str,
        vocabulary: Sequence[str],
        provider: Union[ProviderName, str, None] = None,
    ) -> SuggestionOutcome:
        """
        Suggest up to 3 vocabulary tags, with one fallback hop on failure.

        Never raises for provider failures: when both the requested provider
        and its fallback fail, returns empty tags with the last error.
        """
        name = self._resolve(provider)
        if not vocabulary or not text.strip():
            return SuggestionOutcome(tags=[], provider=name)

        last_error: Optional[BaseException] = None
        for attempt in (name, FALLBACK_ORDER[name]):
            if attempt not in self._providers:
                continue
            if attempt != name:
                logger.info("Attempting fallback to %s", attempt.value)
            try:
                tags = await self._providers[attempt].rank_tags(text, vocabulary)
            except Exception as e:
                logger.warning("Tag suggestion failed with %s: %s", attempt.value, str(e))
                last_error = e
                continue
            return SuggestionOutcome(
                tags=filter_to_vocabulary(tags, vocabulary),
                provider=attempt,
            )

        logger.error("No AI provider available for tag suggestion")
        return SuggestionOutcome(
            tags=[],
            provider=name,
            error=_error_message(last_error) if last_error else None,
        )

    async def suggest_tags_with_reasoning(
        self, text: str, vocabulary: Sequence[str]
    ) -> ReasonedSuggestion:
        """
        Tag suggestion with an explanation. Only Gemini can explain itself;
        otherwise Hugging Face suggestions are returned with a stock reason.
        """
        gemini = self._providers.get(ProviderName.GOOGLE)
        if gemini is not None and hasattr(gemini, "suggest_tags_with_reasoning"):
            status = await gemini.test_connection()
            if status.connected:
                try:
                    return await gemini.suggest_tags_with_reasoning(text, vocabulary)
                except Exception as e:
                    logger.warning("Tag suggestion with reasoning failed: %s", str(e))
                    return ReasonedSuggestion(
                        tags=[],
                        reasoning=f"Error: {_error_message(e)}",
                        provider=ProviderName.GOOGLE,
                    )

        outcome = await self.suggest_tags(text, vocabulary, ProviderName.HUGGINGFACE)
        return ReasonedSuggestion(
            tags=outcome.tags,
            reasoning="Used HuggingFace provider - reasoning not available",
            provider=outcome.provider,
        )

    async def compare_providers(
        self, text: str, vocabulary: Sequence[str]
    ) -> Dict[str, ComparisonEntry]:
        """
        Run every provider's strict tag ranking concurrently.

        All-settled join: a provider that raises is reported as "rejected"
        with its error and never affects its siblings.
        """
        names = list(self._providers)
        if not vocabulary or not text.strip():
            return {name.value: ComparisonEntry(status="fulfilled") for name in names}

        results = await asyncio.gather(
            *(self._providers[name].rank_tags(text, vocabulary) for name in names),
            return_exceptions=True,
        )

        comparison: Dict[str, ComparisonEntry] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.warning("Provider comparison: %s rejected: %s", name.value, str(result))
                comparison[name.value] = ComparisonEntry(
                    status="rejected",
                    tags=[],
                    error=_error_message(result),
                )
            else:
                comparison[name.value] = ComparisonEntry(
                    status="fulfilled",
                    tags=filter_to_vocabulary(result, vocabulary),
                )
        return comparison

    # ── Note Parsing ──────────────────────────────────────────────────────

    async def parse_note(
        self, text: str, provider: Union[ProviderName, str, None] = None
    ) -> ParseOutcome:
        """
        Split a note into items, with one fallback hop on failure.

        Never raises for provider failures; worst case the trimmed note is
        returned as a single item, attributed to the requested provider.
        """
        name = self._resolve(provider)
        for attempt in (name, FALLBACK_ORDER[name]):
            if attempt not in self._providers:
                continue
            if attempt != name:
                logger.info("Attempting fallback to %s", attempt.value)
            try:
                items = await self._providers[attempt].split_note(text)
            except Exception as e:
                logger.warning("Note parsing failed with %s: %s", attempt.value, str(e))
                continue
            return ParseOutcome(items=items or [text.strip()], provider=attempt)

        logger.error("No AI provider available for note parsing")
        return ParseOutcome(items=[text.strip()], provider=name)

    # ── Generation & Entities ─────────────────────────────────────────────

    async def generate_text(
        self,
        prompt: str,
        max_length: int = 100,
        provider: Union[ProviderName, str, None] = None,
    ) -> str:
        """
        Free-text generation with the chosen provider.

        Raises:
            GenerationError: The provider failed. No fallback is attempted.
        """
        name = self._resolve(provider)
        return await self._providers[name].generate_text(prompt, max_length)

    async def extract_entities(self, text: str) -> List[EntityMention]:
        """
        Named entities via the Hugging Face NER model.

        Raises:
            ProviderConfigurationError / ProviderError: NER unavailable.
        """
        hf = self._providers.get(ProviderName.HUGGINGFACE)
        if hf is None or not hasattr(hf, "extract_entities"):
            raise UnknownProviderError(provider=ProviderName.HUGGINGFACE.value)
        return await hf.extract_entities(text)
