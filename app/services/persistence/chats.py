"""WhatsApp chat persistence service."""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, asc

from app.db.models import Company, WhatsAppChat, WhatsAppMessage

# Twilio message status -> stored message status
MESSAGE_STATUS_MAP = {
    "sent": "sent",
    "delivered": "delivered",
    "read": "read",
    "failed": "failed",
    "undelivered": "failed",
}


class ChatPersistenceService:
    """Service for persisting WhatsApp chats and messages."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_company_by_whatsapp_number(self, phone_number: str) -> Optional[Company]:
        """Find the tenant owning a WhatsApp number.

        Falls back to the oldest active company (sandbox mode, where every
        tenant shares one number).
        """
        result = await self.db.execute(
            select(Company).where(Company.whatsapp_number == phone_number)
        )
        company = result.scalar_one_or_none()
        if company:
            return company

        result = await self.db.execute(
            select(Company)
            .where(Company.is_active.is_(True))
            .order_by(asc(Company.created_at), asc(Company.id))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_chat(self, chat_id: int) -> Optional[WhatsAppChat]:
        result = await self.db.execute(
            select(WhatsAppChat).where(WhatsAppChat.id == chat_id)
        )
        return result.scalar_one_or_none()

    async def find_or_create_chat(
        self,
        company_id: int,
        customer_phone: str,
        customer_name: Optional[str] = None,
    ) -> WhatsAppChat:
        """Get the chat for a customer, creating it on first contact."""
        result = await self.db.execute(
            select(WhatsAppChat).where(
                WhatsAppChat.company_id == company_id,
                WhatsAppChat.customer_phone == customer_phone,
            )
        )
        chat = result.scalar_one_or_none()

        if chat:
            # Update name if we now have it
            if customer_name and not chat.customer_name:
                chat.customer_name = customer_name
                await self.db.commit()
                await self.db.refresh(chat)
            return chat

        chat = WhatsAppChat(
            company_id=company_id,
            customer_phone=customer_phone,
            customer_name=customer_name,
            unread_count=0,
            last_message_preview="",
        )
        self.db.add(chat)
        await self.db.commit()
        await self.db.refresh(chat)
        return chat

    async def add_message(
        self,
        chat: WhatsAppChat,
        content: str,
        direction: str = "incoming",
        wa_message_id: Optional[str] = None,
    ) -> WhatsAppMessage:
        """Store a message and update the chat's unread count and preview."""
        message = WhatsAppMessage(
            chat_id=chat.id,
            wa_message_id=wa_message_id,
            direction=direction,
            status="delivered",
            content=content,
        )
        self.db.add(message)

        if direction == "incoming":
            chat.unread_count = (chat.unread_count or 0) + 1
        chat.last_message_at = datetime.utcnow()
        chat.last_message_preview = content[:100]

        await self.db.commit()
        await self.db.refresh(message)
        await self.db.refresh(chat)
        return message

    async def recent_messages(self, chat_id: int, limit: int = 10) -> List[WhatsAppMessage]:
        """Get the latest messages of a chat, oldest first."""
        result = await self.db.execute(
            select(WhatsAppMessage)
            .where(WhatsAppMessage.chat_id == chat_id)
            .order_by(desc(WhatsAppMessage.created_at), desc(WhatsAppMessage.id))
            .limit(limit)
        )
        return list(reversed(result.scalars().all()))

    async def update_message_status(self, wa_message_id: str, status: str) -> int:
        """Apply a Twilio delivery status. Returns the number of messages updated."""
        new_status = MESSAGE_STATUS_MAP.get(status)
        if not new_status:
            return 0

        result = await self.db.execute(
            select(WhatsAppMessage).where(WhatsAppMessage.wa_message_id == wa_message_id)
        )
        messages = result.scalars().all()
        for message in messages:
            message.status = new_status
        await self.db.commit()
        return len(messages)
