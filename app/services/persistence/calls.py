"""Call persistence service."""
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.models import Call

# Twilio call status -> stored call status
CALL_STATUS_MAP = {
    "initiated": "initiated",
    "ringing": "ringing",
    "in-progress": "in_progress",
    "completed": "completed",
    "busy": "busy",
    "no-answer": "no_answer",
    "failed": "failed",
    "canceled": "canceled",
}

FINAL_CALL_STATUSES = {"completed", "busy", "no_answer", "failed", "canceled"}


class CallPersistenceService:
    """Service for persisting call data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_call(
        self,
        company_id: int,
        user_id: str,
        phone_number: Optional[str] = None,
        call_sid: Optional[str] = None,
        direction: str = "outbound",
    ) -> Call:
        """Create a new call record."""
        call = Call(
            company_id=company_id,
            user_id=user_id,
            phone_number=phone_number,
            call_sid=call_sid,
            direction=direction,
            status="initiated",
        )
        self.db.add(call)
        await self.db.commit()
        await self.db.refresh(call)
        return call

    async def get_call(self, call_id: int) -> Optional[Call]:
        """Get call by database ID."""
        result = await self.db.execute(select(Call).where(Call.id == call_id))
        return result.scalar_one_or_none()

    async def get_call_by_sid(self, call_sid: str) -> Optional[Call]:
        """Get call by Twilio call SID."""
        result = await self.db.execute(
            select(Call).where(Call.call_sid == call_sid)
        )
        return result.scalar_one_or_none()

    async def attach_call_sid(self, call_id: int, call_sid: str) -> Optional[Call]:
        """Store the Twilio call SID once Twilio has assigned it."""
        call = await self.get_call(call_id)
        if call and call.call_sid != call_sid:
            call.call_sid = call_sid
            await self.db.commit()
            await self.db.refresh(call)
        return call

    async def update_call_status(
        self, call_id: int, status: str, duration: Optional[int] = None
    ) -> Optional[Call]:
        """Update call status from a Twilio status value.

        Unknown Twilio statuses are stored as ``initiated``. Final statuses
        stamp ``ended_at``.
        """
        call = await self.get_call(call_id)
        if call:
            call.status = CALL_STATUS_MAP.get(status, "initiated")
            if duration:
                call.duration = duration
            if call.status in FINAL_CALL_STATUSES and not call.ended_at:
                call.ended_at = datetime.utcnow()
            await self.db.commit()
            await self.db.refresh(call)
        return call

    async def update_call_transcript(self, call_id: int, transcript: str) -> Optional[Call]:
        """Update call transcript."""
        call = await self.get_call(call_id)
        if call:
            call.transcript = transcript
            await self.db.commit()
            await self.db.refresh(call)
        return call
