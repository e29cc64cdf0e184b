"""
NoteTag Backend — Unified AI Service Tests
============================================

What:  Tests for provider selection, fallback and comparison.
Why:   The unified service is the only place that decides which provider
       answers, and the one-hop fallback rule is easy to break.
How:   StubProvider instances (conftest.py) with call counters, so tests can
       assert exactly which providers were touched.

What we test:
    ✅ Default provider get/set, unknown provider rejection
    ✅ Fallback: exactly one hop, attribution to the answering provider
    ✅ Comparison: all-settled, one failure never hides the others
    ✅ Note parsing fallback and generation without fallback
    ✅ Connection tests and provider recommendation
"""

import pytest

from notetag.exceptions import (
    GenerationError,
    ProviderConfigurationError,
    ProviderError,
    UnknownProviderError,
)
from notetag.schemas.ai import ProviderName
from notetag.services.ai_service import FALLBACK_ORDER, UnifiedAIService
from notetag.services.gemini_service import GeminiService
from notetag.services.huggingface_service import HuggingFaceService
from notetag.services.openai_service import OpenAIService

GROCERY_NOTE = "I need to buy tomatoes and cheese for making Italian pasta tonight"
VOCABULARY = ["groceries", "cooking", "italian", "travel"]


def build(stub_provider, **configs):
    """UnifiedAIService from keyword arguments: build(sp, google={...}, openai={...})."""
    providers = {
        ProviderName(name): stub_provider(ProviderName(name), **kwargs)
        for name, kwargs in configs.items()
    }
    return UnifiedAIService(providers, default_provider=ProviderName.GOOGLE)


def not_configured(provider: ProviderName) -> ProviderConfigurationError:
    return ProviderConfigurationError(provider=provider.value, env_var=f"{provider.value.upper()}_API_KEY")


class TestProviderSelection:

    def test_default_from_constructor(self, stub_service):
        assert stub_service.get_provider() == ProviderName.GOOGLE

    def test_set_provider_returns_previous(self, stub_service):
        previous = stub_service.set_provider("openai")

        assert previous == ProviderName.GOOGLE
        assert stub_service.get_provider() == ProviderName.OPENAI

    def test_set_provider_is_idempotent(self, stub_service):
        stub_service.set_provider(ProviderName.HUGGINGFACE)
        stub_service.set_provider(ProviderName.HUGGINGFACE)
        assert stub_service.get_provider() == ProviderName.HUGGINGFACE

    def test_unknown_provider_rejected(self, stub_service):
        with pytest.raises(UnknownProviderError) as exc_info:
            stub_service.set_provider("anthropic")

        assert exc_info.value.provider == "anthropic"
        assert stub_service.get_provider() == ProviderName.GOOGLE

    def test_unknown_default_rejected(self, stub_provider):
        with pytest.raises(UnknownProviderError):
            UnifiedAIService(
                {ProviderName.GOOGLE: stub_provider(ProviderName.GOOGLE)},
                default_provider="cohere",
            )

    def test_fallback_table(self):
        assert FALLBACK_ORDER == {
            ProviderName.GOOGLE: ProviderName.HUGGINGFACE,
            ProviderName.HUGGINGFACE: ProviderName.GOOGLE,
            ProviderName.OPENAI: ProviderName.GOOGLE,
        }

    def test_from_settings_builds_real_providers(self, make_settings):
        service = UnifiedAIService.from_settings(make_settings(ai_provider="openai"))

        assert service.get_provider() == ProviderName.OPENAI
        assert isinstance(service.client("huggingface"), HuggingFaceService)
        assert isinstance(service.client("openai"), OpenAIService)
        assert isinstance(service.client("google"), GeminiService)


class TestSuggestTags:

    @pytest.mark.asyncio
    async def test_uses_current_provider(self, stub_service):
        outcome = await stub_service.suggest_tags(GROCERY_NOTE, VOCABULARY)

        assert outcome.tags == ["groceries", "italian"]
        assert outcome.provider == ProviderName.GOOGLE
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_explicit_provider_overrides_default(self, stub_service):
        outcome = await stub_service.suggest_tags(GROCERY_NOTE, VOCABULARY, "openai")

        assert outcome.tags == ["italian", "cooking"]
        assert outcome.provider == ProviderName.OPENAI
        assert stub_service.get_provider() == ProviderName.GOOGLE

    @pytest.mark.asyncio
    async def test_falls_back_when_requested_is_misconfigured(self, stub_provider):
        service = build(
            stub_provider,
            google={"error": not_configured(ProviderName.GOOGLE)},
            huggingface={"tags": ["cooking"]},
            openai={"tags": ["travel"]},
        )

        outcome = await service.suggest_tags(GROCERY_NOTE, VOCABULARY, "google")

        assert outcome.tags == ["cooking"]
        assert outcome.provider == ProviderName.HUGGINGFACE
        assert service.client("openai").calls["rank_tags"] == 0

    @pytest.mark.asyncio
    async def test_exactly_one_hop(self, stub_provider):
        """openai → google, and google's own fallback (huggingface) is never tried."""
        service = build(
            stub_provider,
            openai={"error": ProviderError(message="boom", provider="openai")},
            google={"error": ProviderError(message="google down", provider="google")},
            huggingface={"tags": ["cooking"]},
        )

        outcome = await service.suggest_tags(GROCERY_NOTE, VOCABULARY, "openai")

        assert outcome.tags == []
        assert outcome.provider == ProviderName.OPENAI
        assert outcome.error == "google down"
        assert service.client("openai").calls["rank_tags"] == 1
        assert service.client("google").calls["rank_tags"] == 1
        assert service.client("huggingface").calls["rank_tags"] == 0

    @pytest.mark.asyncio
    async def test_repeated_calls_give_same_outcome(self, stub_service):
        first = await stub_service.suggest_tags(GROCERY_NOTE, VOCABULARY)
        second = await stub_service.suggest_tags(GROCERY_NOTE, VOCABULARY)

        assert first == second
        assert first.tags == ["groceries", "italian"]

    @pytest.mark.asyncio
    async def test_repeated_calls_with_local_scoring_are_stable(self, configured_settings):
        service = UnifiedAIService(
            {ProviderName.HUGGINGFACE: HuggingFaceService(configured_settings)},
            default_provider=ProviderName.HUGGINGFACE,
        )

        outcomes = [await service.suggest_tags(GROCERY_NOTE, VOCABULARY) for _ in range(3)]

        assert outcomes[0].tags == ["italian", "groceries", "cooking"]
        assert all(outcome == outcomes[0] for outcome in outcomes)

    @pytest.mark.asyncio
    async def test_output_stays_in_vocabulary(self, stub_provider):
        service = build(
            stub_provider,
            google={"tags": ["pizza", "italian", "italian", "cooking", "groceries", "travel"]},
        )

        outcome = await service.suggest_tags(GROCERY_NOTE, VOCABULARY)

        assert outcome.tags == ["italian", "cooking", "groceries"]

    @pytest.mark.asyncio
    async def test_empty_vocabulary_short_circuits(self, stub_service):
        outcome = await stub_service.suggest_tags(GROCERY_NOTE, [])

        assert outcome.tags == []
        assert stub_service.client("google").calls["rank_tags"] == 0

    @pytest.mark.asyncio
    async def test_unknown_provider_raises(self, stub_service):
        with pytest.raises(UnknownProviderError):
            await stub_service.suggest_tags(GROCERY_NOTE, VOCABULARY, "mistral")


class TestSuggestWithReasoning:

    @pytest.mark.asyncio
    async def test_without_reasoning_capable_google_uses_huggingface(self, stub_service):
        result = await stub_service.suggest_tags_with_reasoning(GROCERY_NOTE, VOCABULARY)

        assert result.tags == ["cooking"]
        assert result.provider == ProviderName.HUGGINGFACE
        assert result.reasoning == "Used HuggingFace provider - reasoning not available"


class TestCompareProviders:

    @pytest.mark.asyncio
    async def test_all_fulfilled(self, stub_service):
        comparison = await stub_service.compare_providers(GROCERY_NOTE, VOCABULARY)

        assert set(comparison) == {"huggingface", "openai", "google"}
        assert comparison["google"].status == "fulfilled"
        assert comparison["google"].tags == ["groceries", "italian"]
        assert comparison["openai"].tags == ["italian", "cooking"]

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, stub_provider):
        service = build(
            stub_provider,
            huggingface={"tags": ["cooking"]},
            openai={"error": ProviderError(message="openai exploded", provider="openai")},
            google={"tags": ["italian"]},
        )

        comparison = await service.compare_providers(GROCERY_NOTE, VOCABULARY)

        assert comparison["openai"].status == "rejected"
        assert comparison["openai"].tags == []
        assert comparison["openai"].error == "openai exploded"
        assert comparison["huggingface"].tags == ["cooking"]
        assert comparison["google"].tags == ["italian"]

    @pytest.mark.asyncio
    async def test_no_fallback_inside_comparison(self, stub_provider):
        service = build(
            stub_provider,
            google={"error": ProviderError(message="down", provider="google")},
            huggingface={"tags": ["cooking"]},
        )

        await service.compare_providers(GROCERY_NOTE, VOCABULARY)

        assert service.client("huggingface").calls["rank_tags"] == 1


class TestParseNote:

    @pytest.mark.asyncio
    async def test_uses_requested_provider(self, stub_provider):
        service = build(stub_provider, google={"items": ["Buy milk", "Call dentist"]})

        outcome = await service.parse_note("Buy milk. Call dentist.")

        assert outcome.items == ["Buy milk", "Call dentist"]
        assert outcome.provider == ProviderName.GOOGLE

    @pytest.mark.asyncio
    async def test_falls_back_once(self, stub_provider):
        service = build(
            stub_provider,
            openai={"error": not_configured(ProviderName.OPENAI)},
            google={"items": ["from google"]},
            huggingface={"items": ["from huggingface"]},
        )

        outcome = await service.parse_note("note", "openai")

        assert outcome.items == ["from google"]
        assert outcome.provider == ProviderName.GOOGLE
        assert service.client("huggingface").calls["split_note"] == 0

    @pytest.mark.asyncio
    async def test_fallback_items_attributed_to_answering_provider(self, stub_provider):
        service = build(
            stub_provider,
            google={"error": ProviderError(message="down", provider="google")},
            huggingface={"items": ["from huggingface"]},
        )

        outcome = await service.parse_note("note")

        assert outcome.items == ["from huggingface"]
        assert outcome.provider == ProviderName.HUGGINGFACE

    @pytest.mark.asyncio
    async def test_both_failing_returns_trimmed_note(self, stub_provider):
        error = ProviderError(message="down")
        service = build(stub_provider, google={"error": error}, huggingface={"error": error})

        outcome = await service.parse_note("  Buy milk  ")

        assert outcome.items == ["Buy milk"]
        assert outcome.provider == ProviderName.GOOGLE


class TestGenerateText:

    @pytest.mark.asyncio
    async def test_returns_text(self, stub_service):
        assert await stub_service.generate_text("Write a haiku") == "generated text"

    @pytest.mark.asyncio
    async def test_failure_propagates_without_fallback(self, stub_provider):
        service = build(
            stub_provider,
            google={"error": RuntimeError("boom")},
            huggingface={},
        )

        with pytest.raises(GenerationError):
            await service.generate_text("Write a haiku")
        assert service.client("huggingface").calls["generate_text"] == 0


class TestConnections:

    @pytest.mark.asyncio
    async def test_connection_of_current_provider(self, stub_service):
        status = await stub_service.test_connection()

        assert status.provider == ProviderName.GOOGLE
        assert status.connected is True

    @pytest.mark.asyncio
    async def test_all_providers_recommends_by_preference(self, stub_provider):
        service = build(
            stub_provider,
            google={"connected": False},
            openai={"connected": True},
            huggingface={"connected": True},
        )

        comparison = await service.test_all_providers()

        assert comparison.providers["google"].connected is False
        assert comparison.providers["google"].error == "unreachable"
        assert comparison.recommended == ProviderName.OPENAI

    @pytest.mark.asyncio
    async def test_no_connected_provider_means_no_recommendation(self, stub_provider, unconfigured_settings):
        service = build(
            stub_provider,
            google={"settings": unconfigured_settings},
            openai={"settings": unconfigured_settings},
        )

        assert await service.get_best_provider() is None
        assert service.client("google").calls["ping"] == 0

    @pytest.mark.asyncio
    async def test_extract_entities_needs_huggingface(self, stub_service):
        with pytest.raises(UnknownProviderError):
            await stub_service.extract_entities("Call Alice")
