"""Twilio WhatsApp webhook endpoints."""
import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Form
from fastapi.responses import Response

from app.core.dependencies import get_chat_suggestion_service
from app.services.chat.service import ChatSuggestionService, IncomingWhatsAppMessage

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/whatsapp")
async def handle_incoming_message(
    background_tasks: BackgroundTasks,
    MessageSid: str = Form(...),
    From: str = Form(...),
    To: str = Form(...),
    Body: str = Form(""),
    NumMedia: int = Form(0),
    MediaContentType0: Optional[str] = Form(None),
    ProfileName: Optional[str] = Form(None),
    chat_service: ChatSuggestionService = Depends(get_chat_suggestion_service),
):
    """
    Handle an incoming WhatsApp message.

    The suggestion for the operator runs after Twilio has been answered.
    """
    logger.info(f"[WHATSAPP] Incoming message - MessageSid: {MessageSid}, From: {From}")

    incoming = IncomingWhatsAppMessage(
        message_sid=MessageSid,
        from_number=From,
        to_number=To,
        body=Body,
        num_media=NumMedia,
        media_content_type=MediaContentType0,
        profile_name=ProfileName,
    )

    try:
        chat = await chat_service.process_incoming(incoming)
        text = incoming.body.strip()
        if chat and chat.user_id and text and not incoming.num_media:
            background_tasks.add_task(
                chat_service.generate_chat_suggestion, chat.id, chat.user_id, text
            )
    except Exception as e:
        logger.error(
            f"[WHATSAPP] Error processing message {MessageSid}: {type(e).__name__}: {str(e)}",
            exc_info=True
        )

    return Response(content="OK", media_type="text/plain")


@router.post("/whatsapp/status")
async def handle_message_status(
    MessageSid: str = Form(...),
    MessageStatus: str = Form(...),
    chat_service: ChatSuggestionService = Depends(get_chat_suggestion_service),
):
    """Handle a WhatsApp delivery status callback."""
    try:
        await chat_service.process_status(MessageSid, MessageStatus)
    except Exception as e:
        logger.error(
            f"[WHATSAPP] Error updating status of {MessageSid}: {type(e).__name__}: {str(e)}",
            exc_info=True
        )
    return Response(content="OK", media_type="text/plain")
