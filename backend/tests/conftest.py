"""
NoteTag Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Tests never touch real provider APIs; they use injected mock clients
       or stub providers.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── make_settings: Settings factory isolated from .env and the environment
    ├── configured_settings: Settings with every provider key present
    ├── unconfigured_settings: Settings with no provider keys
    ├── stub_provider: Factory for deterministic LLMService stubs
    ├── stub_service: UnifiedAIService wired to three healthy stubs
    └── test_client: HTTPX AsyncClient bound to an app using stub_service
"""

import os
from collections import Counter
from typing import List, Optional, Sequence

# Override settings for testing BEFORE any notetag imports
os.environ["HUGGINGFACE_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["GOOGLE_API_KEY"] = ""
os.environ["AI_PROVIDER"] = "google"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from notetag.config import Settings
from notetag.exceptions import GenerationError, ProviderError
from notetag.schemas.ai import ProviderName
from notetag.services.ai_service import UnifiedAIService
from notetag.services.llm_base import LLMService


class StubProvider(LLMService):
    """
    Deterministic in-memory provider.

    Every strict primitive either returns its canned value or raises the
    configured error. Calls are counted so tests can assert which providers
    were touched.
    """

    env_var = "STUB_API_KEY"

    def __init__(
        self,
        provider: ProviderName,
        settings: Settings,
        tags: Sequence[str] = (),
        items: Optional[List[str]] = None,
        generated: str = "generated text",
        error: Optional[Exception] = None,
        connected: bool = True,
    ):
        self.provider = provider
        super().__init__(settings)
        self.tags = list(tags)
        self.items = items
        self.generated = generated
        self.error = error
        self.connected = connected
        self.calls: Counter = Counter()

    async def _ping(self) -> None:
        self.calls["ping"] += 1
        if not self.connected:
            raise ProviderError(message="unreachable", provider=self.provider.value)

    async def rank_tags(self, text: str, vocabulary: Sequence[str]) -> List[str]:
        self.calls["rank_tags"] += 1
        if self.error:
            raise self.error
        return list(self.tags)

    async def split_note(self, text: str) -> List[str]:
        self.calls["split_note"] += 1
        if self.error:
            raise self.error
        return list(self.items) if self.items is not None else [text.strip()]

    async def generate_text(self, prompt: str, max_length: int = 100) -> str:
        self.calls["generate_text"] += 1
        if self.error:
            raise GenerationError(message=f"Text generation failed: {self.error}", provider=self.provider.value)
        return self.generated


@pytest.fixture
def make_settings():
    """
    Settings factory that ignores .env files.

    Usage:
        settings = make_settings(google_api_key="k", ai_provider="google")
    """
    def _make(**overrides) -> Settings:
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def configured_settings(make_settings):
    return make_settings(
        huggingface_api_key="hf-test-key",
        openai_api_key="sk-test-key",
        google_api_key="google-test-key",
    )


@pytest.fixture
def unconfigured_settings(make_settings):
    return make_settings(huggingface_api_key="", openai_api_key="", google_api_key="")


@pytest.fixture
def stub_provider(configured_settings):
    """Factory: stub_provider(ProviderName.GOOGLE, tags=["a"], error=None, ...)."""
    def _make(provider: ProviderName, **kwargs) -> StubProvider:
        settings = kwargs.pop("settings", configured_settings)
        return StubProvider(provider, settings, **kwargs)

    return _make


@pytest.fixture
def stub_service(stub_provider):
    """UnifiedAIService over three healthy stubs, default provider google."""
    providers = {
        ProviderName.HUGGINGFACE: stub_provider(ProviderName.HUGGINGFACE, tags=["cooking"]),
        ProviderName.OPENAI: stub_provider(ProviderName.OPENAI, tags=["italian", "cooking"]),
        ProviderName.GOOGLE: stub_provider(ProviderName.GOOGLE, tags=["groceries", "italian"]),
    }
    return UnifiedAIService(providers, default_provider=ProviderName.GOOGLE)


@pytest_asyncio.fixture
async def test_client(stub_service, configured_settings):
    """
    HTTPX AsyncClient talking to a fresh app that uses stub_service.

    ASGITransport does not run the lifespan, so the service is injected
    through create_app().
    """
    from notetag.main import create_app

    app = create_app(settings=configured_settings, ai_service=stub_service)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
