"""
NoteTag Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes logging setup, service construction, middleware, routes
       and exception handlers in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Served by uvicorn (uvicorn notetag.main:app, or the `notetag` script).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware:  Request ID → Logging → GZip → CORS    │
    │                                                     │
    │  Routes:      /api/ai/*            GET /health      │
    │                                                     │
    │  app.state.ai_service: UnifiedAIService             │
    │    ├── HuggingFaceService                           │
    │    ├── OpenAIService                                │
    │    └── GeminiService                                │
    │                                                     │
    │  Exception Handlers:                                │
    │    UnknownProvider→400 │ Generation/Provider→503    │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Warn about providers without credentials (never fatal)
    3. Build UnifiedAIService unless one was injected (tests)
    Shutdown:
    1. Log shutdown complete (provider clients hold no pooled resources we own)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from notetag import __version__
from notetag.config import Settings, settings as default_settings
from notetag.exceptions import (
    GenerationError,
    NoteTagError,
    ProviderConfigurationError,
    ProviderError,
    UnknownProviderError,
)
from notetag.middleware.logging import RequestLoggingMiddleware
from notetag.middleware.request_id import RequestIDMiddleware, request_id_var
from notetag.routes import ai, health
from notetag.services.ai_service import UnifiedAIService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before any service is built.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Provider SDKs log every HTTP round trip
    for noisy in ("uvicorn.access", "httpcore", "httpx", "openai", "huggingface_hub"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions that escape the AI core to JSON error responses.

    Handler hierarchy:
        UnknownProviderError        → 400 Bad Request
        GenerationError             → 503 Service Unavailable
        ProviderConfigurationError  → 503 Service Unavailable
        ProviderError               → 503 Service Unavailable
        NoteTagError (base)         → 500 Internal Server Error
        Exception (fallback)        → 500 Internal Server Error

    Suggestion and parsing never reach these handlers; they degrade inside
    the service layer.
    """

    @app.exception_handler(UnknownProviderError)
    async def handle_unknown_provider(request: Request, exc: UnknownProviderError):
        rid = request_id_var.get("")
        logger.warning("[%s] Unknown provider: %s", rid, exc.provider)
        return JSONResponse(
            status_code=400,
            content={
                "error": "unknown_provider",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(GenerationError)
    async def handle_generation_error(request: Request, exc: GenerationError):
        rid = request_id_var.get("")
        logger.error("[%s] Generation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=503,
            content={
                "error": "generation_error",
                "message": exc.message,
                "details": {"provider": exc.provider},
                "request_id": rid,
            },
        )

    @app.exception_handler(ProviderConfigurationError)
    async def handle_not_configured(request: Request, exc: ProviderConfigurationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Provider not configured: %s", rid, exc.message)
        return JSONResponse(
            status_code=503,
            content={
                "error": "provider_not_configured",
                "message": exc.message,
                "details": {"provider": exc.provider},
                "request_id": rid,
            },
        )

    @app.exception_handler(ProviderError)
    async def handle_provider_error(request: Request, exc: ProviderError):
        rid = request_id_var.get("")
        logger.error("[%s] Provider error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=503,
            content={
                "error": "provider_error",
                "message": exc.message,
                "details": {"provider": exc.provider},
                "request_id": rid,
            },
        )

    @app.exception_handler(NoteTagError)
    async def handle_app_error(request: Request, exc: NoteTagError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    ai_service: Optional[UnifiedAIService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration; defaults to the environment-loaded settings.
        ai_service: Pre-built service (tests inject fakes). Built from
            settings during startup when omitted.
    """
    config = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(config.log_level)
        logger.info("=" * 60)
        logger.info("NoteTag Backend starting up...")

        for env_var in config.missing_credentials():
            logger.warning("%s is not set; that provider will report not configured", env_var)

        if getattr(app.state, "ai_service", None) is None:
            app.state.ai_service = UnifiedAIService.from_settings(config)
        logger.info("Default AI provider: %s", app.state.ai_service.get_provider().value)
        logger.info("=" * 60)

        yield

        logger.info("NoteTag Backend shutting down...")

    app = FastAPI(
        title="NoteTag API",
        description=(
            "Tag suggestion and note parsing over interchangeable AI providers "
            "(Hugging Face, OpenAI, Google Gemini) with automatic fallback."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.ai_service = ai_service

    # Executes in reverse order of addition: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(ai.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "notetag.main:app",
        host=default_settings.backend_host,
        port=default_settings.backend_port,
        log_level=default_settings.log_level.lower(),
    )
