"""
NoteTag Backend — FastAPI Dependencies
========================================

What:  Dependency providers shared by route modules.
Why:   The UnifiedAIService is built once in the lifespan and kept on
       app.state; routes receive it by reference instead of importing a
       module-level singleton. Tests swap it by assigning app.state.ai_service.
"""

from fastapi import Request

from notetag.services.ai_service import UnifiedAIService


def get_ai_service(request: Request) -> UnifiedAIService:
    return request.app.state.ai_service
