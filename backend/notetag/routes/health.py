"""
NoteTag Backend — Health Check Route
======================================

What:  Liveness endpoint for monitoring and container probes.
Why:   Orchestrators need a cheap answer to "is the process up?".
How:   Reports credential presence per provider. It deliberately makes no
       provider calls: those cost quota and latency on every probe. Live
       checks are at GET /api/ai/status/all.

Status levels:
    - healthy:  at least one provider has a credential
    - degraded: no provider is configured (suggestions fall back to nothing,
                parsing returns notes whole)
"""

import logging
import time

from fastapi import APIRouter, Depends

from notetag import __version__
from notetag.dependencies import get_ai_service
from notetag.schemas.ai import HealthResponse
from notetag.services.ai_service import UnifiedAIService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(ai: UnifiedAIService = Depends(get_ai_service)) -> HealthResponse:
    configured = {
        name.value: ai.client(name).api_key_configured for name in ai.available_providers
    }
    overall = "healthy" if any(configured.values()) else "degraded"
    if overall == "degraded":
        logger.warning("Health check: no AI provider has a credential configured")

    return HealthResponse(
        status=overall,
        version=__version__,
        default_provider=ai.get_provider(),
        providers_configured=configured,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
