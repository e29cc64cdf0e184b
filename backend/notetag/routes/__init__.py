# Routes package init
"""
NoteTag Backend — API Routes Package
======================================

Route Inventory:
    - ai.py:      /api/ai/*  (provider selection, status, tags, parsing, generation)
    - health.py:  GET /health (liveness, no provider calls)

Design Principle:
    Routes are THIN: validate the body, call UnifiedAIService, shape the
    response. The tag vocabulary arrives in the request body; fetching it
    from storage is the caller's job.
"""
