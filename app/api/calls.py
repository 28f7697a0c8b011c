"""Outbound call endpoints."""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.webhooks.voice import get_base_url
from app.core.dependencies import get_call_dialer
from app.core.errors import TelephonyError
from app.db.database import get_db
from app.db.models import Company
from app.services.persistence.calls import CallPersistenceService
from app.services.telephony.dialer import CallDialer

router = APIRouter()
logger = logging.getLogger(__name__)


class CallCreate(BaseModel):
    """Outbound call request."""
    company_id: int
    user_id: str
    phone_number: str


class CallResponse(BaseModel):
    """Call response model."""
    id: int
    company_id: int
    user_id: str
    call_sid: Optional[str] = None
    phone_number: Optional[str] = None
    direction: str
    status: str
    duration: Optional[int] = None
    created_at: datetime
    ended_at: Optional[datetime] = None

    class Config:
        from_attributes = True


@router.post("/api/calls", response_model=CallResponse, status_code=201)
async def create_call(
    body: CallCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    dialer: CallDialer = Depends(get_call_dialer),
):
    """
    Dial a customer for an operator.

    Twilio fetches the voice webhook of the new call once it is answered,
    which starts the media stream.
    """
    if not dialer.is_configured():
        raise HTTPException(status_code=503, detail="Twilio is not configured")

    company = await db.get(Company, body.company_id)
    if not company or not company.is_active:
        raise HTTPException(status_code=404, detail="Company not found")

    service = CallPersistenceService(db)
    call = await service.create_call(body.company_id, body.user_id, phone_number=body.phone_number)

    base_url = get_base_url(request)
    try:
        call_sid = await dialer.dial(
            body.phone_number,
            voice_url=f"{base_url}/webhooks/voice/{call.id}",
            status_callback=f"{base_url}/webhooks/voice/status/{call.id}",
        )
    except TelephonyError as e:
        logger.error(f"[CALLS] Could not dial call {call.id}: {e}")
        await service.update_call_status(call.id, "failed")
        raise HTTPException(status_code=502, detail=str(e))

    return await service.attach_call_sid(call.id, call_sid)


@router.post("/api/calls/{call_id}/end", response_model=CallResponse)
async def end_call(
    call_id: int,
    db: AsyncSession = Depends(get_db),
    dialer: CallDialer = Depends(get_call_dialer),
):
    """Hang up a call and mark it completed."""
    service = CallPersistenceService(db)
    call = await service.get_call(call_id)
    if not call:
        raise HTTPException(status_code=404, detail="Call not found")
    if not call.call_sid:
        raise HTTPException(status_code=409, detail="Call has no Twilio SID yet")

    try:
        await dialer.hang_up(call.call_sid)
    except TelephonyError as e:
        logger.error(f"[CALLS] Could not end call {call_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return await service.update_call_status(call_id, "completed")
