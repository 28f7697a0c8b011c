"""Twilio voice webhook endpoints."""
import logging
from typing import Optional
from fastapi import APIRouter, Request, Form, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.core.config import settings
from app.core.dependencies import get_notification_gateway, get_speech_service
from app.services.notifications.gateway import NotificationGateway
from app.services.persistence.calls import CallPersistenceService
from app.services.speech.stt import SpeechToTextService

router = APIRouter()
logger = logging.getLogger(__name__)

GREETING = (
    "Olá! Esta é uma chamada do sistema de vendas. "
    "Por favor, aguarde enquanto conectamos você."
)


def get_base_url(request: Request) -> str:
    """
    Get the base URL for constructing absolute URLs.

    Uses BASE_URL environment variable if set, otherwise constructs from request.
    """
    if settings.base_url:
        return settings.base_url.rstrip('/')
    return str(request.base_url).rstrip('/')


def to_websocket_url(base_url: str) -> str:
    """Turn an http(s) base URL into the matching ws(s) URL."""
    if base_url.startswith("https://"):
        return "wss://" + base_url[len("https://"):]
    if base_url.startswith("http://"):
        return "ws://" + base_url[len("http://"):]
    return f"wss://{base_url}"


def generate_stream_twiml(stream_url: str, recording_callback: str, call_id: int) -> str:
    """
    Generate TwiML that greets the callee, forks audio to the media stream and
    records the call.

    Args:
        stream_url: WebSocket URL receiving the media stream
        recording_callback: URL notified when the recording is available
        call_id: Database call ID passed as a stream parameter

    Returns:
        TwiML XML string
    """
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<Response>
    <Start>
        <Stream url="{stream_url}">
            <Parameter name="callId" value="{call_id}" />
        </Stream>
    </Start>
    <Say voice="Polly.Camila" language="pt-BR">{GREETING}</Say>
    <Record maxLength="3600" playBeep="false" recordingStatusCallback="{recording_callback}" />
</Response>"""


@router.post("/voice/status/{call_id}")
async def handle_call_status(
    call_id: int,
    CallStatus: str = Form(...),
    CallDuration: Optional[int] = Form(None),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationGateway = Depends(get_notification_gateway),
):
    """
    Handle call status updates from Twilio.

    Twilio always gets a 200 so it does not retry.
    """
    logger.info(f"[CALL STATUS] Received status update - call: {call_id}, CallStatus: {CallStatus}")

    try:
        call = await CallPersistenceService(db).update_call_status(
            call_id, CallStatus, duration=CallDuration
        )
        if not call:
            logger.warning(f"[CALL STATUS] Call not found: {call_id}")
            return Response(content="OK", media_type="text/plain")

        await notifier.send_call_status_update(
            call.user_id,
            {"callId": call.id, "status": call.status, "duration": call.duration},
        )
    except Exception as e:
        logger.error(
            f"[CALL STATUS] Error handling call status update - call: {call_id}, "
            f"CallStatus: {CallStatus}, Error: {type(e).__name__}: {str(e)}",
            exc_info=True
        )

    return Response(content="OK", media_type="text/plain")


@router.post("/voice/recording/{call_id}")
async def handle_recording(
    call_id: int,
    RecordingUrl: str = Form(...),
    db: AsyncSession = Depends(get_db),
    speech_service: SpeechToTextService = Depends(get_speech_service),
):
    """
    Transcribe the call recording once Twilio has stored it.

    A transcript captured live from the media stream is kept.
    """
    logger.info(f"[RECORDING] Recording available - call: {call_id}")

    try:
        calls = CallPersistenceService(db)
        call = await calls.get_call(call_id)
        if not call:
            logger.warning(f"[RECORDING] Call not found: {call_id}")
        elif call.transcript:
            logger.debug(f"[RECORDING] Call {call_id} already has a live transcript")
        elif not speech_service.is_configured():
            logger.warning("[RECORDING] Deepgram not configured, skipping transcription")
        else:
            transcript = await speech_service.transcribe_url(RecordingUrl)
            if transcript:
                await calls.update_call_transcript(call_id, transcript)
                logger.info(f"[RECORDING] Transcript stored for call {call_id}")
    except Exception as e:
        logger.error(
            f"[RECORDING] Error transcribing recording - call: {call_id}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True
        )

    return Response(content="OK", media_type="text/plain")


@router.post("/voice/{call_id}")
async def handle_voice(
    request: Request,
    call_id: int,
    CallSid: str = Form(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Handle the voice webhook of an outbound call.

    Links the Twilio call SID to the call row and starts the media stream.
    """
    logger.info(f"[VOICE] Voice webhook - call: {call_id}, CallSid: {CallSid}")

    call = await CallPersistenceService(db).attach_call_sid(call_id, CallSid)
    if not call:
        logger.warning(f"[VOICE] Call not found: {call_id}")
        raise HTTPException(status_code=404, detail="Call not found")

    base_url = get_base_url(request)
    twiml = generate_stream_twiml(
        stream_url=f"{to_websocket_url(base_url)}/ws/media",
        recording_callback=f"{base_url}/webhooks/voice/recording/{call_id}",
        call_id=call_id,
    )
    logger.debug(f"[VOICE] TwiML length: {len(twiml)} bytes - CallSid: {CallSid}")
    return Response(content=twiml, media_type="application/xml")
