# Services package init
"""
NoteTag Backend — Services Layer
==================================

What:  The AI provider abstraction: provider clients plus the unified facade.
Why:   Routes stay thin; everything provider-specific lives here and can be
       tested without HTTP.

Service Inventory:
    - LLMService (abstract): contract shared by every provider
    - HuggingFaceService: Inference API (zero-shot / local scoring, NER)
    - OpenAIService: chat completions
    - GeminiService: Google Gemini
    - UnifiedAIService: provider registry, default selection, fallback hop
    - relevance: pure keyword scoring used by HuggingFaceService
    - response_parsing: JSON / comma-list parsing of model output
"""
