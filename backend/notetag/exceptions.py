"""
NoteTag Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the AI provider layer.
Why:   Lets each layer decide precisely which failures it masks and which it
       propagates. Tag suggestion and note parsing degrade quietly; text
       generation does not.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) turn the ones that
       reach the HTTP layer into structured JSON error responses.

Exception Hierarchy:
    NoteTagError (base)
    ├── ProviderConfigurationError → never leaves the core (status only)
    ├── ProviderError              → 503 Service Unavailable
    │   └── GenerationError        → 503 Service Unavailable
    ├── ResponseParseError         → handled locally, downgraded to fallback
    └── UnknownProviderError       → 400 Bad Request

Masking rules:
    ProviderConfigurationError / ProviderError during suggest or parse:
        caught at the provider boundary (advisory methods) and again at the
        unified service boundary, where it drives the single fallback hop.
    GenerationError:
        propagated to the caller; generation has no safe default output.
    ResponseParseError:
        caught inside the provider that produced the malformed output.
"""

from typing import Any, Dict, Optional


class NoteTagError(Exception):
    """
    Base exception for all NoteTag application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ProviderConfigurationError(NoteTagError):
    """
    Raised when a provider is used without a configured credential.

    Surfaced to users only through ProviderStatus.error and
    api_key_configured=False; the unified service treats it like any other
    provider failure and falls back.
    """

    def __init__(
        self,
        provider: str,
        env_var: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["provider"] = provider
        super().__init__(message=f"{env_var} not configured", context=ctx)
        self.provider = provider
        self.env_var = env_var


class ProviderError(NoteTagError):
    """
    Raised when a provider's API call fails (network, auth, quota, bad model).

    Transient from the caller's point of view: suggest/parse paths convert it
    to an empty or pass-through result.
    """

    def __init__(
        self,
        message: str = "AI provider request failed",
        provider: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if provider:
            ctx["provider"] = provider
        super().__init__(message=message, context=ctx)
        self.provider = provider


class GenerationError(ProviderError):
    """
    Raised when free-text generation fails.

    HTTP: 503 Service Unavailable

    The one category the core never masks: callers asked for content and
    must be told when there is none.
    """

    def __init__(
        self,
        message: str = "Text generation failed",
        provider: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, provider=provider, context=context)


class ResponseParseError(NoteTagError):
    """Raised when a generative model returns output we cannot parse."""

    def __init__(
        self,
        message: str = "Could not parse model response",
        raw: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if raw is not None:
            # Keep the log line short; model output can be long
            ctx["raw"] = raw[:200]
        super().__init__(message=message, context=ctx)


class UnknownProviderError(NoteTagError):
    """
    Raised when a caller names a provider that does not exist.

    HTTP: 400 Bad Request
    """

    def __init__(
        self,
        provider: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["provider"] = provider
        super().__init__(
            message=f"Unknown AI provider '{provider}'. Use huggingface, openai or google.",
            context=ctx,
        )
        self.provider = provider
