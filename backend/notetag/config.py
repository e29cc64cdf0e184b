"""
NoteTag Backend — Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a module-level `settings` object.
Who:   Read by main.py at startup; provider services receive it explicitly.
When:  Loaded once at module import time.

Credentials:
    Every provider credential is optional. A missing key never fails startup;
    it only downgrades that provider to "not configured" (see
    ProviderStatus.api_key_configured). Placeholder values copied from
    .env.example are treated as missing.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Values shipped in .env.example; never valid credentials
PLACEHOLDER_KEYS = {
    "your_huggingface_api_key_here",
    "your_openai_api_key_here",
    "your_google_api_key_here",
}

VALID_PROVIDERS = {"huggingface", "openai", "google"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have working defaults for development. Attributes are
    grouped by provider for readability.
    """

    # ── Provider Selection ────────────────────────────────────────────────
    # What: Provider used when a call does not name one explicitly
    # Options: huggingface, openai, google
    ai_provider: str = Field(default="google")

    # What: Timeout handed to every provider's network client
    ai_request_timeout: float = Field(default=30.0, gt=0, le=300)

    # ── Hugging Face ──────────────────────────────────────────────────────
    huggingface_api_key: str = Field(
        default="",
        description="Hugging Face Inference API token",
    )

    # What: Classification model. The default is not a zero-shot model, so
    # tag ranking switches to local relevance scoring while it is selected.
    hf_model_classification: str = Field(default="distilbert-base-uncased")
    hf_model_ner: str = Field(default="dbmdz/bert-large-cased-finetuned-conll03-english")
    hf_model_text_generation: str = Field(default="gpt2")
    hf_model_connection_test: str = Field(
        default="cardiffnlp/twitter-roberta-base-sentiment-latest"
    )

    # ── OpenAI ────────────────────────────────────────────────────────────
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model_chat: str = Field(default="gpt-3.5-turbo")

    # ── Google Gemini ─────────────────────────────────────────────────────
    # How to obtain: https://aistudio.google.com/app/apikey
    google_api_key: str = Field(default="", description="Google Generative AI key")
    google_model: str = Field(default="gemini-1.5-flash")

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)
    cors_origins: str = Field(default="http://localhost:3000")

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("ai_provider")
    @classmethod
    def validate_ai_provider(cls, v: str) -> str:
        """Ensures the default provider is one we know how to build."""
        lower = v.strip().lower()
        if lower not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid ai_provider '{v}'. Must be one of: {sorted(VALID_PROVIDERS)}"
            )
        return lower

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def credential_for(self, provider: str) -> Optional[str]:
        """
        Return the usable credential for a provider, or None.

        Empty strings and placeholder values both count as "not configured".
        """
        raw = {
            "huggingface": self.huggingface_api_key,
            "openai": self.openai_api_key,
            "google": self.google_api_key,
        }.get(provider, "")
        key = (raw or "").strip()
        if not key or key in PLACEHOLDER_KEYS:
            return None
        return key

    def missing_credentials(self) -> List[str]:
        """
        What:  Lists the environment variables of providers without a key.
        When:  Called during app startup (lifespan) to log warnings.
        Why:   Missing keys are not fatal, but operators should see them.
        """
        names = {
            "huggingface": "HUGGINGFACE_API_KEY",
            "openai": "OPENAI_API_KEY",
            "google": "GOOGLE_API_KEY",
        }
        return [env for provider, env in names.items() if self.credential_for(provider) is None]


settings = Settings()
