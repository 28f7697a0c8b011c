"""Unit tests for persistence services (calls, chats and suggestions)."""
import pytest

from app.services.persistence.calls import CallPersistenceService
from app.services.persistence.chats import ChatPersistenceService
from app.services.persistence.suggestions import SuggestionPersistenceService


class TestCallPersistence:
    """Test call persistence service."""

    @pytest.mark.asyncio
    async def test_create_call(self, test_db, test_company):
        """Test creating a new call record."""
        service = CallPersistenceService(test_db)

        call = await service.create_call(test_company.id, "user-1", phone_number="+5511900000000")

        assert call.id is not None
        assert call.status == "initiated"
        assert call.direction == "outbound"
        assert call.call_sid is None

    @pytest.mark.asyncio
    async def test_attach_call_sid(self, test_db, test_company):
        """Test linking the Twilio call SID to a call."""
        service = CallPersistenceService(test_db)
        call = await service.create_call(test_company.id, "user-1")

        await service.attach_call_sid(call.id, "CA999")
        retrieved = await service.get_call_by_sid("CA999")

        assert retrieved.id == call.id

    @pytest.mark.asyncio
    async def test_status_mapping(self, test_db, test_call):
        """Test Twilio statuses map onto stored statuses."""
        service = CallPersistenceService(test_db)

        call = await service.update_call_status(test_call.id, "in-progress")
        assert call.status == "in_progress"
        assert call.ended_at is None

        call = await service.update_call_status(test_call.id, "no-answer")
        assert call.status == "no_answer"
        assert call.ended_at is not None

    @pytest.mark.asyncio
    async def test_unknown_status_stored_as_initiated(self, test_db, test_call):
        """Test an unknown Twilio status falls back to initiated."""
        call = await CallPersistenceService(test_db).update_call_status(test_call.id, "queued")

        assert call.status == "initiated"

    @pytest.mark.asyncio
    async def test_completed_with_duration(self, test_db, test_call):
        """Test completed calls store duration and end time."""
        call = await CallPersistenceService(test_db).update_call_status(
            test_call.id, "completed", duration=95
        )

        assert call.duration == 95
        assert call.ended_at is not None

    @pytest.mark.asyncio
    async def test_update_missing_call(self, test_db):
        """Test updating a missing call returns None."""
        assert await CallPersistenceService(test_db).update_call_status(999, "completed") is None


class TestSuggestionPersistence:
    """Test suggestion persistence service."""

    @pytest.mark.asyncio
    async def test_suggestion_needs_call_or_chat(self, test_db):
        """Test a suggestion without call or chat is refused."""
        with pytest.raises(ValueError):
            await SuggestionPersistenceService(test_db).create_suggestion("user-1", "text", 0.9)

    @pytest.mark.asyncio
    async def test_list_for_call_newest_first(self, test_db, test_call):
        """Test call suggestions are listed newest first."""
        service = SuggestionPersistenceService(test_db)
        first = await service.create_suggestion("user-1", "primeira", 0.9, call_id=test_call.id)
        second = await service.create_suggestion("user-1", "segunda", 0.9, call_id=test_call.id)

        listed = await service.list_for_call(test_call.id)

        assert [s.id for s in listed] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_mark_used(self, test_db, test_call):
        """Test marking a suggestion as used."""
        service = SuggestionPersistenceService(test_db)
        suggestion = await service.create_suggestion("user-1", "texto", 0.9, call_id=test_call.id)

        used = await service.mark_used(suggestion.id)

        assert used.used is True
        assert used.used_at is not None


class TestChatPersistence:
    """Test WhatsApp chat persistence service."""

    @pytest.mark.asyncio
    async def test_company_by_number(self, test_db, test_company):
        """Test tenant lookup by WhatsApp number."""
        company = await ChatPersistenceService(test_db).find_company_by_whatsapp_number("+14155238886")

        assert company.id == test_company.id

    @pytest.mark.asyncio
    async def test_company_fallback_to_first_active(self, test_db, test_company):
        """Test an unknown number falls back to the first active tenant."""
        company = await ChatPersistenceService(test_db).find_company_by_whatsapp_number("+10000000000")

        assert company.id == test_company.id

    @pytest.mark.asyncio
    async def test_find_or_create_chat_reuses_chat(self, test_db, test_company):
        """Test the same customer maps to one chat."""
        service = ChatPersistenceService(test_db)

        first = await service.find_or_create_chat(test_company.id, "+5511911112222")
        second = await service.find_or_create_chat(test_company.id, "+5511911112222", "João")

        assert first.id == second.id
        assert second.customer_name == "João"

    @pytest.mark.asyncio
    async def test_add_message_updates_chat(self, test_db, test_company):
        """Test incoming messages bump unread count and preview."""
        service = ChatPersistenceService(test_db)
        chat = await service.find_or_create_chat(test_company.id, "+5511911112222")

        await service.add_message(chat, "x" * 150, wa_message_id="SM1")
        await service.add_message(chat, "oi", wa_message_id="SM2")

        assert chat.unread_count == 2
        assert chat.last_message_preview == "oi"

    @pytest.mark.asyncio
    async def test_recent_messages_oldest_first(self, test_db, test_company):
        """Test the history window is the latest messages, oldest first."""
        service = ChatPersistenceService(test_db)
        chat = await service.find_or_create_chat(test_company.id, "+5511911112222")
        for i in range(12):
            await service.add_message(chat, f"msg {i}")

        recent = await service.recent_messages(chat.id, limit=10)

        assert [m.content for m in recent] == [f"msg {i}" for i in range(2, 12)]

    @pytest.mark.asyncio
    async def test_message_status_update(self, test_db, test_company):
        """Test delivery status callbacks update stored messages."""
        service = ChatPersistenceService(test_db)
        chat = await service.find_or_create_chat(test_company.id, "+5511911112222")
        message = await service.add_message(chat, "oi", wa_message_id="SM1")

        assert await service.update_message_status("SM1", "undelivered") == 1
        await test_db.refresh(message)
        assert message.status == "failed"
        assert await service.update_message_status("SM1", "queued") == 0
