"""
NoteTag Backend — Hugging Face Inference Service
==================================================

What:  Classifier-style provider backed by the Hugging Face Inference API.
Why:   Zero-shot classification scores arbitrary tag names against a note
       without any per-tag training, and the same API offers NER and
       lightweight text generation.
How:   huggingface_hub.AsyncInferenceClient, created lazily on first use.

Tag ranking modes:
    1. hf_model_classification == "distilbert-base-uncased" (the default)
       DistilBERT is a base model, not a zero-shot classifier. Tags are scored
       locally with the relevance heuristics (threshold 0.2), with keyword
       fallback matching when nothing clears the bar.
    2. Any other model
       Remote zero_shot_classification, threshold 0.1.
    Both modes keep the top 3 and require a credential.

Note splitting:
    Sentence heuristic only (no network call), so parse_note works even when
    the provider is not configured.
"""

import logging
from typing import List, Optional, Sequence

from huggingface_hub import AsyncInferenceClient

from notetag.config import Settings
from notetag.schemas.ai import (
    MAX_SUGGESTED_TAGS,
    ClassificationResult,
    EntityMention,
    ProviderName,
)
from notetag.services.llm_base import LLMService
from notetag.services.relevance import keyword_fallback, rank_by_relevance, split_sentences

logger = logging.getLogger(__name__)

# Base model without a classification head; triggers local scoring
HEURISTIC_MODEL = "distilbert-base-uncased"

MIN_CLASSIFIER_CONFIDENCE = 0.1

CONNECTION_TEST_INPUT = "Hello world, this is a test."


class HuggingFaceService(LLMService):
    """
    Hugging Face Inference API implementation.

    Architecture:
        - One instance per process, owned by UnifiedAIService
        - Client handle built on first network use and then reused
        - An explicit client can be injected (tests use an AsyncMock)
    """

    provider = ProviderName.HUGGINGFACE
    env_var = "HUGGINGFACE_API_KEY"

    def __init__(self, settings: Settings, client: Optional[AsyncInferenceClient] = None):
        super().__init__(settings)
        self._client = client
        logger.info(
            "HuggingFaceService initialized with classification=%s, ner=%s, generation=%s",
            settings.hf_model_classification,
            settings.hf_model_ner,
            settings.hf_model_text_generation,
        )

    @property
    def client(self) -> AsyncInferenceClient:
        if self._client is None:
            self._client = AsyncInferenceClient(
                token=self.api_key,
                timeout=self.settings.ai_request_timeout,
            )
        return self._client

    @property
    def uses_local_scoring(self) -> bool:
        return self.settings.hf_model_classification == HEURISTIC_MODEL

    async def _ping(self) -> None:
        await self._call(
            "test_connection",
            lambda: self.client.text_classification(
                CONNECTION_TEST_INPUT,
                model=self.settings.hf_model_connection_test,
            ),
        )

    async def classify_text(
        self, text: str, candidate_labels: Sequence[str]
    ) -> List[ClassificationResult]:
        """
        Zero-shot classify `text` against `candidate_labels`.

        Raises:
            ProviderConfigurationError: No credential configured.
            ProviderError: The API call failed.
        """
        self._require_credential()
        output = await self._call(
            "classify_text",
            lambda: self.client.zero_shot_classification(
                text,
                list(candidate_labels),
                model=self.settings.hf_model_classification,
            ),
        )
        return [
            ClassificationResult(label=item.label, score=min(max(float(item.score), 0.0), 1.0))
            for item in output
        ]

    async def rank_tags(self, text: str, vocabulary: Sequence[str]) -> List[str]:
        self._require_credential()

        if self.uses_local_scoring:
            ranked = rank_by_relevance(text, vocabulary, limit=MAX_SUGGESTED_TAGS)
            logger.debug("Local relevance scores: %s", ranked)
            if ranked:
                return [tag for tag, _ in ranked]
            logger.info("No tag cleared the relevance threshold, using keyword matching")
            return keyword_fallback(text, vocabulary, limit=MAX_SUGGESTED_TAGS)

        results = await self.classify_text(text, vocabulary)
        top = sorted(
            (r for r in results if r.score > MIN_CLASSIFIER_CONFIDENCE),
            key=lambda r: r.score,
            reverse=True,
        )
        return [r.label for r in top[:MAX_SUGGESTED_TAGS]]

    async def extract_entities(self, text: str) -> List[EntityMention]:
        """
        Named entity recognition with the configured NER model.

        Raises:
            ProviderConfigurationError: No credential configured.
            ProviderError: The API call failed.
        """
        self._require_credential()
        output = await self._call(
            "extract_entities",
            lambda: self.client.token_classification(text, model=self.settings.hf_model_ner),
        )
        entities = []
        for item in output:
            group = getattr(item, "entity_group", None) or getattr(item, "entity", None)
            if not group:
                continue
            entities.append(
                EntityMention(
                    entity_group=group,
                    confidence=float(getattr(item, "score", 0.0) or 0.0),
                    word=item.word,
                    start=getattr(item, "start", None),
                    end=getattr(item, "end", None),
                )
            )
        return entities

    async def split_note(self, text: str) -> List[str]:
        return split_sentences(text)

    async def generate_text(self, prompt: str, max_length: int = 100) -> str:
        self._require_generation_credential()
        generated = await self._call(
            "generate_text",
            lambda: self.client.text_generation(
                prompt,
                model=self.settings.hf_model_text_generation,
                max_new_tokens=max_length,
                temperature=0.7,
                do_sample=True,
            ),
        )
        if not isinstance(generated, str):
            # details=True responses carry the text on an attribute
            generated = getattr(generated, "generated_text", "") or ""
        return generated.strip()

