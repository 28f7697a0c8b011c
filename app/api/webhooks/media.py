"""Twilio media stream WebSocket endpoint."""
import json
import logging
from typing import Set
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.core.dependencies import get_media_stream_manager
from app.services.call_session.manager import MediaStreamManager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/media")
async def media_stream(
    websocket: WebSocket,
    manager: MediaStreamManager = Depends(get_media_stream_manager),
):
    """
    Receive Twilio media stream frames.

    Streams started on this socket are closed when it drops without a stop.
    """
    await websocket.accept()
    logger.info("[MEDIA STREAM] Twilio media stream connected")

    stream_sids: Set[str] = set()
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"[MEDIA STREAM] Invalid JSON frame: {raw[:100]}")
                continue

            if not isinstance(message, dict):
                logger.warning(f"[MEDIA STREAM] Ignoring non-object frame: {raw[:100]}")
                continue

            try:
                stream_sid = await manager.handle_message(message)
            except Exception as e:
                logger.error(
                    f"[MEDIA STREAM] Error handling {message.get('event')} frame: {e}",
                    exc_info=True,
                )
                continue

            if stream_sid and message.get("event") == "start":
                stream_sids.add(stream_sid)
    except WebSocketDisconnect:
        logger.info("[MEDIA STREAM] Twilio media stream disconnected")
    finally:
        await manager.close_streams(stream_sids)
