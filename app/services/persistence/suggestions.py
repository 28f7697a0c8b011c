"""Suggestion persistence service."""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from app.db.models import Suggestion


class SuggestionPersistenceService:
    """Service for persisting AI suggestions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_suggestion(
        self,
        user_id: str,
        content: str,
        confidence: float,
        call_id: Optional[int] = None,
        chat_id: Optional[int] = None,
        trigger_text: Optional[str] = None,
        provider: Optional[str] = None,
        latency_ms: Optional[int] = None,
        type: str = "general",
    ) -> Suggestion:
        """Create a new suggestion linked to a call or a chat."""
        if call_id is None and chat_id is None:
            raise ValueError("A suggestion needs a call_id or a chat_id")

        suggestion = Suggestion(
            call_id=call_id,
            chat_id=chat_id,
            user_id=user_id,
            type=type,
            content=content,
            confidence=confidence,
            trigger_text=trigger_text,
            provider=provider,
            latency_ms=latency_ms,
        )
        self.db.add(suggestion)
        await self.db.commit()
        await self.db.refresh(suggestion)
        return suggestion

    async def get_suggestion(self, suggestion_id: int) -> Optional[Suggestion]:
        result = await self.db.execute(
            select(Suggestion).where(Suggestion.id == suggestion_id)
        )
        return result.scalar_one_or_none()

    async def list_for_call(self, call_id: int) -> List[Suggestion]:
        result = await self.db.execute(
            select(Suggestion)
            .where(Suggestion.call_id == call_id)
            .order_by(desc(Suggestion.created_at), desc(Suggestion.id))
        )
        return list(result.scalars().all())

    async def list_for_chat(self, chat_id: int) -> List[Suggestion]:
        result = await self.db.execute(
            select(Suggestion)
            .where(Suggestion.chat_id == chat_id)
            .order_by(desc(Suggestion.created_at), desc(Suggestion.id))
        )
        return list(result.scalars().all())

    async def mark_used(self, suggestion_id: int) -> Optional[Suggestion]:
        """Flag a suggestion as acted on by the operator."""
        suggestion = await self.get_suggestion(suggestion_id)
        if suggestion and not suggestion.used:
            suggestion.used = True
            suggestion.used_at = datetime.utcnow()
            await self.db.commit()
            await self.db.refresh(suggestion)
        return suggestion
