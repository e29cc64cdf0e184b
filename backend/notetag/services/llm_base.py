"""
NoteTag Backend — Abstract LLM Service Interface
==================================================

What:  Abstract base class defining the contract every text-AI provider meets.
Why:   Hugging Face, OpenAI and Gemini have different SDKs, failure modes and
       response shapes. Callers (UnifiedAIService, routes, tests) only ever see
       this interface.
How:   Concrete providers implement the strict primitives (_ping, rank_tags,
       split_note, generate_text). The base class wraps them into the
       advisory operations that never raise.

Two layers per operation:
    Strict (raise on failure)       Advisory (never raise)
    ─────────────────────────       ──────────────────────
    rank_tags(text, vocabulary)  →  suggest_tags(text, vocabulary)  → [] on failure
    split_note(text)             →  parse_note(text)                → [text] on failure
    _ping()                      →  test_connection()               → status with error
    generate_text(prompt, n)        (no advisory form: generation always raises)

    The unified service calls the strict layer so it can see failures and
    make its single fallback hop. Direct callers use the advisory layer.

Credentials:
    Read once from settings at construction. A missing key logs a warning but
    does not fail construction; test_connection() then reports
    api_key_configured=False without touching the network client.
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from notetag.config import Settings
from notetag.exceptions import GenerationError, ProviderConfigurationError, ProviderError
from notetag.schemas.ai import ProviderName, ProviderStatus
from notetag.services.response_parsing import filter_to_vocabulary

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LLMService(ABC):
    """
    Abstract interface for a text-AI provider.

    Contract:
        - test_connection() never raises
        - suggest_tags() returns at most 3 vocabulary members, [] on any failure
        - parse_note() returns at least one item, the trimmed input on failure
        - generate_text() raises GenerationError on any failure
        - Provider SDK exceptions are wrapped in ProviderError subclasses

    Implementations:
        - HuggingFaceService: Inference API, zero-shot or local scoring
        - OpenAIService: chat completions
        - GeminiService: Google Gemini
    """

    provider: ProviderName
    env_var: str

    def __init__(self, settings: Settings):
        self.settings = settings
        self.api_key: Optional[str] = settings.credential_for(self.provider.value)
        if self.api_key is None:
            logger.warning(
                "%s not configured. %s features will be disabled.",
                self.env_var,
                self.provider.value,
            )

    @property
    def api_key_configured(self) -> bool:
        return self.api_key is not None

    def _require_credential(self) -> str:
        if self.api_key is None:
            raise ProviderConfigurationError(provider=self.provider.value, env_var=self.env_var)
        return self.api_key

    async def _call(self, operation: str, request: Callable[[], Awaitable[T]]) -> T:
        """
        Make one provider API call with timing logs and error translation.

        `request` builds the SDK coroutine when invoked, so argument and
        signature errors raised while building it are translated too. Any
        SDK exception becomes ProviderError (or GenerationError when the
        operation is text generation) with the original chained as __cause__.
        """
        request_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()
        try:
            result = await request()
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "[%s] %s %s failed after %.0fms: %s",
                request_id,
                self.provider.value,
                operation,
                duration_ms,
                str(e),
            )
            error_cls = GenerationError if operation == "generate_text" else ProviderError
            raise error_cls(
                message=f"{self.provider.value} {operation} failed: {e}",
                provider=self.provider.value,
                context={"request_id": request_id, "error_type": type(e).__name__},
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "[%s] %s %s completed in %.0fms",
            request_id,
            self.provider.value,
            operation,
            duration_ms,
        )
        return result

    # ── Connection ────────────────────────────────────────────────────────

    async def test_connection(self) -> ProviderStatus:
        """
        Issue a minimal real API call and report the outcome.

        Returns immediately (no network) when no credential is configured.
        """
        if not self.api_key_configured:
            return ProviderStatus(
                provider=self.provider,
                connected=False,
                api_key_configured=False,
                error=f"{self.env_var} not configured",
            )
        try:
            await self._ping()
        except Exception as e:
            logger.error("%s connection test failed: %s", self.provider.value, str(e))
            return ProviderStatus(
                provider=self.provider,
                connected=False,
                api_key_configured=True,
                error=str(e),
            )
        return ProviderStatus(provider=self.provider, connected=True, api_key_configured=True)

    @abstractmethod
    async def _ping(self) -> None:
        """Smallest real API call that proves key and endpoint work."""
        ...

    # ── Tag Suggestion ────────────────────────────────────────────────────

    @abstractmethod
    async def rank_tags(self, text: str, vocabulary: Sequence[str]) -> List[str]:
        """
        Rank vocabulary entries by relevance to `text`, best first.

        Returns:
            Up to 3 tags whose score clears the provider's minimum confidence.

        Raises:
            ProviderConfigurationError: No credential configured.
            ProviderError: The provider call failed.
        """
        ...

    async def suggest_tags(self, text: str, vocabulary: Sequence[str]) -> List[str]:
        """
        Advisory tag suggestion: the ranked tags, or [] on any failure.

        Suggestions are never on the critical path, so failures are logged
        and swallowed here.
        """
        if not vocabulary or not text.strip():
            return []
        try:
            tags = await self.rank_tags(text, vocabulary)
        except Exception as e:
            logger.warning("%s tag suggestion failed: %s", self.provider.value, str(e))
            return []
        return filter_to_vocabulary(tags, vocabulary)

    # ── Note Parsing ──────────────────────────────────────────────────────

    @abstractmethod
    async def split_note(self, text: str) -> List[str]:
        """
        Split a note into distinct items.

        Raises:
            ProviderConfigurationError / ProviderError when the provider
            cannot be asked at all. Unparseable model output is NOT an
            error: implementations return [text.strip()] instead.
        """
        ...

    async def parse_note(self, text: str) -> List[str]:
        """Advisory note parsing: never raises, worst case the whole note."""
        try:
            items = await self.split_note(text)
        except Exception as e:
            logger.warning("%s note parsing failed: %s", self.provider.value, str(e))
            return [text.strip()]
        return items or [text.strip()]

    # ── Generation ────────────────────────────────────────────────────────

    @abstractmethod
    async def generate_text(self, prompt: str, max_length: int = 100) -> str:
        """
        Free-form completion.

        Raises:
            GenerationError: Always, on any failure including a missing key.
        """
        ...

    def _require_generation_credential(self) -> str:
        """Like _require_credential, but fails as a GenerationError."""
        if self.api_key is None:
            raise GenerationError(
                message=f"Text generation failed: {self.env_var} not configured",
                provider=self.provider.value,
            )
        return self.api_key
