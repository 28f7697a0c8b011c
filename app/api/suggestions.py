"""Suggestion history endpoints."""
import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.services.persistence.suggestions import SuggestionPersistenceService

router = APIRouter()
logger = logging.getLogger(__name__)


class SuggestionResponse(BaseModel):
    """Suggestion response model."""
    id: int
    call_id: Optional[int] = None
    chat_id: Optional[int] = None
    user_id: str
    type: str
    content: str
    confidence: float
    trigger_text: Optional[str] = None
    provider: Optional[str] = None
    latency_ms: Optional[int] = None
    used: bool
    created_at: datetime
    used_at: Optional[datetime] = None

    class Config:
        from_attributes = True


@router.get("/api/calls/{call_id}/suggestions", response_model=List[SuggestionResponse])
async def list_call_suggestions(call_id: int, db: AsyncSession = Depends(get_db)):
    """Suggestions generated during a call, newest first."""
    return await SuggestionPersistenceService(db).list_for_call(call_id)


@router.get("/api/chats/{chat_id}/suggestions", response_model=List[SuggestionResponse])
async def list_chat_suggestions(chat_id: int, db: AsyncSession = Depends(get_db)):
    """Suggestions generated for a WhatsApp chat, newest first."""
    return await SuggestionPersistenceService(db).list_for_chat(chat_id)


@router.post("/api/suggestions/{suggestion_id}/used", response_model=SuggestionResponse)
async def mark_suggestion_used(suggestion_id: int, db: AsyncSession = Depends(get_db)):
    suggestion = await SuggestionPersistenceService(db).mark_used(suggestion_id)
    if not suggestion:
        logger.warning(f"[SUGGESTIONS] Suggestion not found: {suggestion_id}")
        raise HTTPException(status_code=404, detail="Suggestion not found")
    logger.info(f"[SUGGESTIONS] Suggestion {suggestion_id} marked as used")
    return suggestion
