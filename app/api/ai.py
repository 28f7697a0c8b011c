"""AI suggestion and analysis endpoints."""
import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.dependencies import get_ai_manager
from app.services.ai.manager import AIManager
from app.services.ai.providers.base import AIAnalysis, AISuggestion

router = APIRouter(prefix="/api/ai")
logger = logging.getLogger(__name__)


class SuggestionRequest(BaseModel):
    """Suggestion request body."""
    transcript: str
    context: Optional[Dict[str, Any]] = None
    provider: Optional[str] = None


class AnalysisRequest(BaseModel):
    """Analysis request body."""
    transcript: str
    context: Optional[Dict[str, Any]] = None
    provider: Optional[str] = None


@router.post("/suggestion", response_model=AISuggestion)
async def generate_suggestion(
    body: SuggestionRequest,
    ai_manager: AIManager = Depends(get_ai_manager),
):
    """Generate a suggestion with ordered provider fallback."""
    logger.info(
        f"[AI] Suggestion requested - transcript length: {len(body.transcript)}, "
        f"preferred provider: {body.provider or 'none'}"
    )
    return await ai_manager.generate_suggestion(
        body.transcript, body.context, preferred_provider=body.provider
    )


@router.post("/suggestion/balanced", response_model=AISuggestion)
async def generate_suggestion_balanced(
    body: SuggestionRequest,
    ai_manager: AIManager = Depends(get_ai_manager),
):
    """Generate a suggestion using round-robin provider selection."""
    return await ai_manager.generate_suggestion_balanced(body.transcript, body.context)


@router.post("/analyze", response_model=AIAnalysis)
async def analyze_conversation(
    body: AnalysisRequest,
    ai_manager: AIManager = Depends(get_ai_manager),
):
    """Analyze sentiment, key points and next actions of a conversation."""
    return await ai_manager.analyze_conversation(
        body.transcript, body.context, preferred_provider=body.provider
    )


@router.get("/health")
async def providers_health(ai_manager: AIManager = Depends(get_ai_manager)):
    """Report per-provider health. Degraded when any provider is down."""
    providers = await ai_manager.health_check_all()
    status = "ok" if all(providers.values()) else "degraded"
    if status == "degraded":
        logger.warning(f"[AI] Provider health degraded: {providers}")
    return {"status": status, "providers": providers}


@router.get("/providers")
async def list_providers(ai_manager: AIManager = Depends(get_ai_manager)):
    """List configured providers."""
    available = ai_manager.available_providers()
    return {"providers": available, "count": len(available)}
