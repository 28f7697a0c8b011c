"""Unit tests for WhatsApp chat handling."""
import pytest

from app.services.chat.service import IncomingWhatsAppMessage, extract_phone
from app.services.persistence.chats import ChatPersistenceService
from app.services.persistence.suggestions import SuggestionPersistenceService


def incoming(body="Olá, qual o preço?", from_number="whatsapp:+5511988887777", **kwargs):
    return IncomingWhatsAppMessage(
        message_sid=kwargs.pop("message_sid", "SM100"),
        from_number=from_number,
        to_number="whatsapp:+14155238886",
        body=body,
        **kwargs,
    )


class TestIncomingMessages:
    """Test storing and routing incoming messages."""

    def test_extract_phone(self):
        """Test the whatsapp: prefix is stripped."""
        assert extract_phone("whatsapp:+5511988887777") == "+5511988887777"
        assert extract_phone("+5511988887777") == "+5511988887777"

    @pytest.mark.asyncio
    async def test_empty_message_skipped(self, chat_service, test_company, mock_notifier):
        """Test a message with no text and no media is dropped."""
        chat = await chat_service.process_incoming(incoming(body="   "))

        assert chat is None
        mock_notifier.broadcast_to_company.assert_not_awaited()
        mock_notifier.send_whatsapp_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unassigned_chat_broadcast_to_company(self, chat_service, test_company, mock_notifier):
        """Test a new customer is announced to the whole company."""
        chat = await chat_service.process_incoming(incoming(profile_name="Carlos"))

        assert chat.customer_phone == "+5511988887777"
        assert chat.customer_name == "Carlos"
        assert chat.user_id is None

        mock_notifier.broadcast_to_company.assert_awaited_once()
        company_id, event, payload = mock_notifier.broadcast_to_company.call_args.args
        assert company_id == str(test_company.id)
        assert event == "whatsapp:new_message"
        assert payload["chatId"] == chat.id
        assert payload["message"]["content"] == "Olá, qual o preço?"
        assert payload["customerName"] == "Carlos"

    @pytest.mark.asyncio
    async def test_assigned_chat_pushed_to_operator(
        self, chat_service, assigned_chat, mock_notifier
    ):
        """Test messages of an assigned chat go to its operator."""
        chat = await chat_service.process_incoming(incoming())

        assert chat.id == assigned_chat.id
        mock_notifier.send_whatsapp_message.assert_awaited_once()
        user_id, payload = mock_notifier.send_whatsapp_message.call_args.args
        assert user_id == "user-1"
        assert payload["unreadCount"] == 1
        mock_notifier.broadcast_to_company.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_media_message_stored_as_placeholder(self, chat_service, test_company, test_db):
        """Test media messages are stored with a placeholder text."""
        chat = await chat_service.process_incoming(
            incoming(body="", num_media=1, media_content_type="image/jpeg")
        )

        messages = await ChatPersistenceService(test_db).recent_messages(chat.id)
        assert messages[-1].content == "[Media received: image/jpeg]"

    @pytest.mark.asyncio
    async def test_no_company(self, chat_service, mock_notifier):
        """Test messages for an unknown tenant are dropped."""
        assert await chat_service.process_incoming(incoming()) is None
        mock_notifier.broadcast_to_company.assert_not_awaited()


class TestChatSuggestions:
    """Test reply suggestions for WhatsApp chats."""

    @pytest.mark.asyncio
    async def test_suggestion_uses_labelled_history(
        self, chat_service, assigned_chat, test_db, mock_ai_manager, mock_notifier
    ):
        """Test the last messages are sent to the AI with speaker labels."""
        service = ChatPersistenceService(test_db)
        await service.add_message(assigned_chat, "Bom dia", direction="incoming")
        await service.add_message(assigned_chat, "Bom dia! Como posso ajudar?", direction="outgoing")

        record = await chat_service.generate_chat_suggestion(assigned_chat.id, "user-1", "Bom dia")

        transcript, context = mock_ai_manager.generate_suggestion.call_args.args
        assert transcript == "Bom dia"
        assert context["conversation_history"] == (
            "Cliente: Bom dia\nVendedor: Bom dia! Como posso ajudar?"
        )

        stored = await SuggestionPersistenceService(test_db).list_for_chat(assigned_chat.id)
        assert [s.id for s in stored] == [record.id]

        user_id, payload = mock_notifier.send_ai_suggestion.call_args.args
        assert user_id == "user-1"
        assert payload["context"] == "whatsapp"
        assert payload["chatId"] == assigned_chat.id

    @pytest.mark.asyncio
    async def test_suggestion_failure_swallowed(
        self, chat_service, assigned_chat, mock_ai_manager, mock_notifier
    ):
        """Test an AI failure is logged, not raised."""
        mock_ai_manager.generate_suggestion.side_effect = RuntimeError("boom")

        assert await chat_service.generate_chat_suggestion(assigned_chat.id, "user-1", "oi") is None
        mock_notifier.send_ai_suggestion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_process_status(self, chat_service, assigned_chat, test_db):
        """Test delivery status callbacks reach stored messages."""
        await ChatPersistenceService(test_db).add_message(assigned_chat, "oi", wa_message_id="SM7")

        assert await chat_service.process_status("SM7", "read") == 1
