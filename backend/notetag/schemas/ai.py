"""
NoteTag Backend — AI Request/Response Schemas
===============================================

What:  Pydantic models for the AI provider layer and its HTTP surface.
Why:   One set of types shared by the services (return values) and the routes
       (request validation, response serialization, OpenAPI docs).
How:   Internal results (ClassificationResult, ProviderStatus, ...) are built
       fresh on every call and never persisted. Request models validate the
       text and vocabulary the caller fetched from its own storage.
"""

from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ProviderName(str, Enum):
    """
    The three interchangeable text-AI backends.

    huggingface: embedding/classifier style (zero-shot or local scoring)
    openai:      generative LLM (chat completions)
    google:      generative LLM (Gemini)
    """

    HUGGINGFACE = "huggingface"
    OPENAI = "openai"
    GOOGLE = "google"


# Upper bound on suggested tags, applied by every provider and again by the
# unified service
MAX_SUGGESTED_TAGS = 3


# ══════════════════════════════════════════════════════════════════════════
# Core Results: produced per provider call
# ══════════════════════════════════════════════════════════════════════════


class ClassificationResult(BaseModel):
    """
    One scored label. Scores rank and filter candidates internally and are
    never returned to API consumers.
    """
    label: str
    score: float = Field(ge=0.0, le=1.0)


class ProviderStatus(BaseModel):
    """
    What:  Result of a live connection test against one provider.
    When:  Recomputed on every test; never cached.
    """
    provider: ProviderName = Field(description="Provider that was tested")
    connected: bool = Field(description="Whether a minimal real API call succeeded")
    api_key_configured: bool = Field(description="Whether a credential is present")
    error: Optional[str] = Field(default=None, description="Failure detail, if any")


class SuggestionOutcome(BaseModel):
    """
    What:  Tags chosen for a note plus the provider that actually produced them.
    Why provider: After a fallback hop this differs from the requested one.
    """
    tags: List[str] = Field(
        default_factory=list,
        max_length=MAX_SUGGESTED_TAGS,
        description="Suggested tags, all drawn from the supplied vocabulary",
    )
    provider: ProviderName
    error: Optional[str] = Field(default=None)


class ParseOutcome(BaseModel):
    """Items split from a note plus the provider that actually split it."""
    items: List[str] = Field(min_length=1)
    provider: ProviderName


class ComparisonEntry(BaseModel):
    """Per-provider result of compare_providers (all-settled semantics)."""
    status: Literal["fulfilled", "rejected"]
    tags: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class ProviderComparison(BaseModel):
    """Connection status of every provider and the one we would pick."""
    providers: Dict[str, ProviderStatus]
    recommended: Optional[ProviderName] = None


class EntityMention(BaseModel):
    """A named entity found by the NER model."""
    entity_group: str
    confidence: float
    word: str
    start: Optional[int] = None
    end: Optional[int] = None


class ReasonedSuggestion(BaseModel):
    """Tag suggestion with the model's explanation of its choice."""
    tags: List[str] = Field(default_factory=list, max_length=MAX_SUGGESTED_TAGS)
    reasoning: str
    provider: ProviderName


# ══════════════════════════════════════════════════════════════════════════
# Request Models: what the client sends
# ══════════════════════════════════════════════════════════════════════════


class SuggestTagsRequest(BaseModel):
    """
    What:  Body for tag suggestion and comparison endpoints.

    vocabulary:
        The closed set of allowed tag names, fetched by the caller from its
        own storage. Duplicates and blank names are dropped while keeping
        the first occurrence's position.
    """
    text: str = Field(min_length=1, max_length=10_000)
    vocabulary: List[str] = Field(default_factory=list, max_length=500)
    provider: Optional[ProviderName] = None

    @field_validator("vocabulary")
    @classmethod
    def dedupe_vocabulary(cls, v: List[str]) -> List[str]:
        seen = set()
        cleaned = []
        for tag in v:
            name = tag.strip()
            if name and name not in seen:
                seen.add(name)
                cleaned.append(name)
        return cleaned


class ParseNoteRequest(BaseModel):
    text: str = Field(min_length=1, max_length=10_000)
    provider: Optional[ProviderName] = None


class GenerateTextRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=10_000)
    max_length: int = Field(default=100, ge=1, le=2048)
    provider: Optional[ProviderName] = None


class EntitiesRequest(BaseModel):
    text: str = Field(min_length=1, max_length=10_000)


class SetProviderRequest(BaseModel):
    """
    What:  Body for switching the default provider.

    force:
        Skip the connection test and switch anyway. Without it the route
        refuses to select a provider that is not currently connected.
    """
    provider: ProviderName
    force: bool = False


# ══════════════════════════════════════════════════════════════════════════
# Response Models: what the API returns
# ══════════════════════════════════════════════════════════════════════════


class ProviderInfoResponse(BaseModel):
    provider: ProviderName
    available: List[ProviderName]


class ProviderSwitchResponse(BaseModel):
    success: bool
    provider: ProviderName
    previous_provider: ProviderName
    status: Optional[ProviderStatus] = None
    message: str


class GenerateTextResponse(BaseModel):
    text: str
    provider: ProviderName


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "generation_error",
            "message": "Text generation failed: quota exceeded",
            "details": {"provider": "openai"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Liveness response. Reports which providers have credentials without
           making any provider calls (use /api/ai/status/all for live checks).
    """
    status: str = Field(description="healthy or degraded (no provider configured)")
    version: str
    default_provider: ProviderName
    providers_configured: Dict[str, bool]
    uptime_seconds: float
