"""
NoteTag Backend — AI Route Handlers
=====================================

What:  HTTP surface over UnifiedAIService.
Why:   Lets the notes UI test providers, switch the default, and ask for tag
       suggestions or note splitting without knowing which backend answers.
How:   Each handler validates its body with a Pydantic model and delegates.

Endpoint Map:
    GET  /api/ai/provider                  current default + available providers
    PUT  /api/ai/provider                  test-then-switch default provider
    GET  /api/ai/status[?provider=]        live connection test (one provider)
    GET  /api/ai/status/all                live connection test (all) + recommendation
    POST /api/ai/suggest-tags              tags with one fallback hop
    POST /api/ai/suggest-tags/reasoning    tags plus explanation
    POST /api/ai/compare                   every provider side by side
    POST /api/ai/parse-note                split a note into items
    POST /api/ai/generate                  free text (503 on failure)
    POST /api/ai/entities                  named entities (503 on failure)

Failure behavior:
    Status, suggestion, comparison and parsing endpoints always answer 200;
    failures show up inside the body. Only generation and entity extraction
    return errors (via the global exception handlers in main.py).
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from notetag.dependencies import get_ai_service
from notetag.schemas.ai import (
    ComparisonEntry,
    EntitiesRequest,
    EntityMention,
    ErrorResponse,
    GenerateTextRequest,
    GenerateTextResponse,
    ParseNoteRequest,
    ParseOutcome,
    ProviderComparison,
    ProviderInfoResponse,
    ProviderName,
    ProviderStatus,
    ProviderSwitchResponse,
    ReasonedSuggestion,
    SetProviderRequest,
    SuggestionOutcome,
    SuggestTagsRequest,
)
from notetag.services.ai_service import UnifiedAIService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])


@router.get("/provider", response_model=ProviderInfoResponse, summary="Current default provider")
async def get_provider(
    ai: UnifiedAIService = Depends(get_ai_service),
) -> ProviderInfoResponse:
    return ProviderInfoResponse(provider=ai.get_provider(), available=ai.available_providers)


@router.put(
    "/provider",
    response_model=ProviderSwitchResponse,
    responses={409: {"description": "Target provider is not connected", "model": ProviderSwitchResponse}},
    summary="Switch the default provider",
)
async def set_provider(
    body: SetProviderRequest,
    ai: UnifiedAIService = Depends(get_ai_service),
):
    """
    Test the target provider, then make it the default.

    With force=true the connection test is skipped. Without it a provider
    that does not connect is refused with 409 and the default is unchanged.
    """
    current = ai.get_provider()
    connection: Optional[ProviderStatus] = None

    if not body.force:
        connection = await ai.test_connection(body.provider)
        if not connection.connected:
            logger.warning(
                "Refusing provider switch to %s: %s",
                body.provider.value,
                connection.error,
            )
            refused = ProviderSwitchResponse(
                success=False,
                provider=current,
                previous_provider=current,
                status=connection,
                message=connection.error or "Provider not available",
            )
            return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=refused.model_dump(mode="json"))

    previous = ai.set_provider(body.provider)
    return ProviderSwitchResponse(
        success=True,
        provider=body.provider,
        previous_provider=previous,
        status=connection,
        message=f"AI provider switched to {body.provider.value}",
    )


@router.get("/status", response_model=ProviderStatus, summary="Test provider connection")
async def test_connection(
    provider: Optional[ProviderName] = None,
    ai: UnifiedAIService = Depends(get_ai_service),
) -> ProviderStatus:
    return await ai.test_connection(provider)


@router.get("/status/all", response_model=ProviderComparison, summary="Test every provider")
async def test_all_providers(
    ai: UnifiedAIService = Depends(get_ai_service),
) -> ProviderComparison:
    return await ai.test_all_providers()


@router.post("/suggest-tags", response_model=SuggestionOutcome, summary="Suggest tags for a note")
async def suggest_tags(
    body: SuggestTagsRequest,
    ai: UnifiedAIService = Depends(get_ai_service),
) -> SuggestionOutcome:
    outcome = await ai.suggest_tags(body.text, body.vocabulary, body.provider)
    logger.info(
        "Suggested %d tag(s) via %s from %d candidates",
        len(outcome.tags),
        outcome.provider.value,
        len(body.vocabulary),
    )
    return outcome


@router.post(
    "/suggest-tags/reasoning",
    response_model=ReasonedSuggestion,
    summary="Suggest tags with an explanation",
)
async def suggest_tags_with_reasoning(
    body: SuggestTagsRequest,
    ai: UnifiedAIService = Depends(get_ai_service),
) -> ReasonedSuggestion:
    return await ai.suggest_tags_with_reasoning(body.text, body.vocabulary)


@router.post(
    "/compare",
    response_model=Dict[str, ComparisonEntry],
    summary="Compare tag suggestions across all providers",
)
async def compare_providers(
    body: SuggestTagsRequest,
    ai: UnifiedAIService = Depends(get_ai_service),
) -> Dict[str, ComparisonEntry]:
    return await ai.compare_providers(body.text, body.vocabulary)


@router.post("/parse-note", response_model=ParseOutcome, summary="Split a note into items")
async def parse_note(
    body: ParseNoteRequest,
    ai: UnifiedAIService = Depends(get_ai_service),
) -> ParseOutcome:
    return await ai.parse_note(body.text, body.provider)


@router.post(
    "/generate",
    response_model=GenerateTextResponse,
    responses={503: {"description": "Generation failed", "model": ErrorResponse}},
    summary="Generate free text",
)
async def generate_text(
    body: GenerateTextRequest,
    ai: UnifiedAIService = Depends(get_ai_service),
) -> GenerateTextResponse:
    provider = body.provider or ai.get_provider()
    text = await ai.generate_text(body.prompt, body.max_length, provider)
    return GenerateTextResponse(text=text, provider=provider)


@router.post(
    "/entities",
    response_model=List[EntityMention],
    responses={503: {"description": "NER unavailable", "model": ErrorResponse}},
    summary="Extract named entities",
)
async def extract_entities(
    body: EntitiesRequest,
    ai: UnifiedAIService = Depends(get_ai_service),
) -> List[EntityMention]:
    return await ai.extract_entities(body.text)
