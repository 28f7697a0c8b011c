"""WhatsApp chat orchestration: store incoming messages, notify, suggest."""
import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import Suggestion, WhatsAppChat
from app.services.ai.manager import AIManager
from app.services.notifications.gateway import NotificationGateway
from app.services.persistence.chats import ChatPersistenceService
from app.services.persistence.suggestions import SuggestionPersistenceService

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10


class IncomingWhatsAppMessage(BaseModel):
    """Incoming WhatsApp message as posted by Twilio (form fields)."""

    message_sid: str
    from_number: str
    to_number: str
    body: str = ""
    num_media: int = 0
    media_content_type: Optional[str] = None
    profile_name: Optional[str] = None


def extract_phone(address: str) -> str:
    """Strip the ``whatsapp:`` prefix from a Twilio address."""
    return address.replace("whatsapp:", "", 1).strip()


def describe_media(content_type: Optional[str]) -> str:
    return f"[Media received: {content_type or 'file'}]"


class ChatSuggestionService:
    """Handles inbound WhatsApp traffic for the operator dashboards."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ai_manager: AIManager,
        notifier: NotificationGateway,
    ):
        self.session_factory = session_factory
        self.ai_manager = ai_manager
        self.notifier = notifier

    async def process_incoming(self, incoming: IncomingWhatsAppMessage) -> Optional[WhatsAppChat]:
        """
        Store an incoming message and notify the operator.

        Returns:
            The chat the message was stored in, or None when it was skipped
        """
        content = incoming.body.strip()
        has_media = incoming.num_media > 0

        if not content and not has_media:
            logger.warning("[WHATSAPP] Empty message received, skipping")
            return None

        customer_phone = extract_phone(incoming.from_number)
        to_number = extract_phone(incoming.to_number)
        message_content = describe_media(incoming.media_content_type) if has_media else content

        async with self.session_factory() as db:
            chats = ChatPersistenceService(db)
            company = await chats.find_company_by_whatsapp_number(to_number)
            if not company:
                logger.warning(f"[WHATSAPP] No company found for WhatsApp number: {to_number}")
                return None

            chat = await chats.find_or_create_chat(
                company_id=company.id,
                customer_phone=customer_phone,
                customer_name=incoming.profile_name,
            )
            message = await chats.add_message(
                chat,
                message_content,
                direction="incoming",
                wa_message_id=incoming.message_sid,
            )

        payload = {
            "chatId": chat.id,
            "message": {
                "id": message.id,
                "content": message.content,
                "direction": message.direction,
                "createdAt": message.created_at.isoformat(),
            },
            "unreadCount": chat.unread_count,
        }

        if chat.user_id:
            await self.notifier.send_whatsapp_message(chat.user_id, payload)
        else:
            payload.update({"customerPhone": customer_phone, "customerName": chat.customer_name})
            await self.notifier.broadcast_to_company(
                str(chat.company_id), "whatsapp:new_message", payload
            )

        logger.info(f"[WHATSAPP] Incoming message stored in chat {chat.id}")
        return chat

    async def generate_chat_suggestion(
        self, chat_id: int, user_id: str, incoming_text: str
    ) -> Optional[Suggestion]:
        """Suggest a reply over the last messages of the chat.

        Errors are logged and swallowed.
        """
        try:
            async with self.session_factory() as db:
                recent = await ChatPersistenceService(db).recent_messages(chat_id, HISTORY_LIMIT)

            history = "\n".join(
                f"{'Cliente' if m.direction == 'incoming' else 'Vendedor'}: {m.content}"
                for m in recent
            )

            suggestion = await self.ai_manager.generate_suggestion(
                incoming_text,
                {"conversation_history": history, "sentiment": "neutral", "type": "whatsapp"},
            )

            async with self.session_factory() as db:
                record = await SuggestionPersistenceService(db).create_suggestion(
                    user_id=user_id,
                    chat_id=chat_id,
                    content=suggestion.text,
                    confidence=suggestion.confidence,
                    trigger_text=incoming_text,
                    provider=suggestion.provider,
                    latency_ms=suggestion.latency_ms,
                )

            await self.notifier.send_ai_suggestion(
                user_id,
                {
                    "suggestionId": record.id,
                    "chatId": chat_id,
                    "suggestion": suggestion.text,
                    "confidence": suggestion.confidence,
                    "type": record.type,
                    "context": "whatsapp",
                    "timestamp": datetime.utcnow().isoformat(),
                },
            )
            logger.info(f"[WHATSAPP] AI suggestion sent to user {user_id}")
            return record
        except Exception as e:
            logger.error(f"[WHATSAPP] AI suggestion failed for chat {chat_id}: {e}", exc_info=True)
            return None

    async def process_status(self, message_sid: str, status: str) -> int:
        """Apply a Twilio delivery status callback."""
        async with self.session_factory() as db:
            updated = await ChatPersistenceService(db).update_message_status(message_sid, status)
        logger.info(f"[WHATSAPP] Message {message_sid} status: {status} ({updated} updated)")
        return updated
