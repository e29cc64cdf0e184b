"""
NoteTag Backend — Application Package
========================================

What: AI tag suggestion and note parsing service for a note-taking app.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   UnifiedAIService (registry)       │  ← default provider, fallback hop
    ├─────────────────────────────────────┤
    │   Provider clients (LLMService)     │  ← Hugging Face, OpenAI, Gemini
    ├─────────────────────────────────────┤
    │   Relevance scoring / parsing       │  ← pure functions, no I/O
    └─────────────────────────────────────┘

    Persistence, authentication and the UI are external: callers send the
    candidate tag vocabulary with each request and store the results.
"""

__version__ = "1.0.0"
