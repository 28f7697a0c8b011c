"""Health check endpoint."""
import logging
from fastapi import APIRouter, Depends, Request

from app.core.dependencies import get_media_stream_manager, get_notification_gateway
from app.services.call_session.manager import MediaStreamManager
from app.services.notifications.gateway import NotificationGateway

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(
    request: Request,
    manager: MediaStreamManager = Depends(get_media_stream_manager),
    notifier: NotificationGateway = Depends(get_notification_gateway),
):
    """Health check endpoint."""
    logger.debug(
        f"[HEALTH] Health check requested - Client: {request.client.host if request.client else 'unknown'}"
    )
    return {
        "status": "healthy",
        "active_streams": manager.active_stream_count(),
        "pubsub": notifier.pubsub_enabled,
    }
