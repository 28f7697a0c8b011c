"""FastAPI dependencies.

The AI manager (round-robin counter), notification gateway (socket server)
and media stream manager are process-wide singletons.
"""
from functools import lru_cache

from app.core.config import settings
from app.db.database import AsyncSessionLocal
from app.services.ai.manager import AIManager
from app.services.call_session.manager import MediaStreamManager
from app.services.chat.service import ChatSuggestionService
from app.services.notifications.gateway import NotificationGateway
from app.services.speech.stt import SpeechToTextService
from app.services.telephony.dialer import CallDialer


@lru_cache
def get_ai_manager() -> AIManager:
    """Get AI manager instance."""
    return AIManager.from_settings(settings)


@lru_cache
def get_speech_service() -> SpeechToTextService:
    """Get speech-to-text service instance."""
    return SpeechToTextService(
        settings.deepgram_api_key,
        model=settings.deepgram_model,
        language=settings.deepgram_language,
    )


@lru_cache
def get_call_dialer() -> CallDialer:
    """Get Twilio call dialer instance."""
    return CallDialer(
        settings.twilio_account_sid,
        settings.twilio_auth_token,
        settings.twilio_phone_number,
    )


@lru_cache
def get_notification_gateway() -> NotificationGateway:
    """Get notification gateway instance."""
    return NotificationGateway(
        redis_url=settings.redis_url,
        cors_origin=settings.frontend_url,
    )


@lru_cache
def get_media_stream_manager() -> MediaStreamManager:
    """Get media stream manager instance."""
    return MediaStreamManager(
        AsyncSessionLocal,
        get_ai_manager(),
        get_notification_gateway(),
        get_speech_service(),
    )


@lru_cache
def get_chat_suggestion_service() -> ChatSuggestionService:
    """Get WhatsApp chat suggestion service instance."""
    return ChatSuggestionService(
        AsyncSessionLocal,
        get_ai_manager(),
        get_notification_gateway(),
    )
