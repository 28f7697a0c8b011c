"""Shared test fixtures and configuration."""
import pytest
import os
from unittest.mock import Mock, AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BASE_URL", "https://copilot.test")

from app.main import app
from app.db.database import Base, get_db
from app.db.models import Call, Company, WhatsAppChat
from app.core.dependencies import (
    get_ai_manager,
    get_call_dialer,
    get_chat_suggestion_service,
    get_media_stream_manager,
    get_notification_gateway,
    get_speech_service,
)
from app.services.ai.manager import AIManager
from app.services.ai.providers.base import AIAnalysis, AIProvider, AISuggestion, ProviderConfig
from app.services.call_session.manager import MediaStreamManager
from app.services.chat.service import ChatSuggestionService


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeProvider(AIProvider):
    """Scripted provider: answers with a fixed text or raises."""

    def __init__(self, name: str, fail: bool = False, healthy: bool = True):
        super().__init__(ProviderConfig(api_key="test-key"), name)
        self.fail = fail
        self.healthy = healthy
        self.calls = 0

    async def generate_suggestion(self, transcript, context=None):
        self.calls += 1
        if self.fail:
            raise RuntimeError(f"{self.name} is down")
        return AISuggestion(
            text=f"{self.name} suggestion",
            confidence=0.9,
            provider=self.name,
            latency_ms=12,
        )

    async def analyze_conversation(self, transcript, context=None):
        self.calls += 1
        if self.fail:
            raise RuntimeError(f"{self.name} is down")
        return AIAnalysis(
            sentiment="positive",
            key_points=["price"],
            suggested_actions=["send proposal"],
            confidence=0.8,
            provider=self.name,
        )

    async def health_check(self):
        return self.healthy


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_company(test_db):
    """Tenant with a WhatsApp number."""
    company = Company(name="Acme Vendas", whatsapp_number="+14155238886")
    test_db.add(company)
    await test_db.commit()
    await test_db.refresh(company)
    return company


@pytest.fixture
async def test_call(test_db, test_company):
    """Outbound call already linked to a Twilio call SID."""
    call = Call(
        company_id=test_company.id,
        user_id="user-1",
        phone_number="+5511999990000",
        call_sid="CA123",
    )
    test_db.add(call)
    await test_db.commit()
    await test_db.refresh(call)
    return call


@pytest.fixture
async def assigned_chat(test_db, test_company):
    """WhatsApp chat assigned to an operator."""
    chat = WhatsAppChat(
        company_id=test_company.id,
        user_id="user-1",
        customer_phone="+5511988887777",
        customer_name="Maria",
    )
    test_db.add(chat)
    await test_db.commit()
    await test_db.refresh(chat)
    return chat


@pytest.fixture
def mock_notifier():
    """Notification gateway double recording every push."""
    notifier = Mock()
    notifier.send_ai_suggestion = AsyncMock()
    notifier.send_call_status_update = AsyncMock()
    notifier.send_whatsapp_message = AsyncMock()
    notifier.send_notification = AsyncMock()
    notifier.send_to_call = AsyncMock()
    notifier.broadcast_to_company = AsyncMock()
    notifier.pubsub_enabled = False
    return notifier


@pytest.fixture
def mock_ai_manager():
    """AI manager double that always answers with one suggestion."""
    manager = Mock()
    manager.generate_suggestion = AsyncMock(
        return_value=AISuggestion(
            text="Ask about their budget",
            confidence=0.9,
            provider="OpenAI",
            latency_ms=120,
        )
    )
    return manager


@pytest.fixture
def mock_stt_session():
    """Live STT session double."""
    session = Mock()
    session.send_audio = AsyncMock()
    session.finish = AsyncMock()
    return session


@pytest.fixture
def mock_speech_service(mock_stt_session):
    """Speech service double capturing the transcript callback."""
    service = Mock()
    service.callbacks = {}

    async def _create_live_session(on_transcript, on_error=None):
        service.callbacks["on_transcript"] = on_transcript
        service.callbacks["on_error"] = on_error
        return mock_stt_session

    service.create_live_session = AsyncMock(side_effect=_create_live_session)
    service.is_configured = Mock(return_value=True)
    service.transcribe_url = AsyncMock(return_value="recorded transcript")
    return service


@pytest.fixture
def stream_manager(session_factory, mock_ai_manager, mock_notifier, mock_speech_service):
    """Media stream manager wired to test doubles."""
    return MediaStreamManager(session_factory, mock_ai_manager, mock_notifier, mock_speech_service)


@pytest.fixture
def chat_service(session_factory, mock_ai_manager, mock_notifier):
    """WhatsApp chat service wired to test doubles."""
    return ChatSuggestionService(session_factory, mock_ai_manager, mock_notifier)


@pytest.fixture
def fake_ai_manager():
    """Real AI manager over two healthy scripted providers."""
    return AIManager({"openai": FakeProvider("OpenAI"), "claude": FakeProvider("Claude")})


@pytest.fixture
def mock_dialer():
    """Twilio dialer double."""
    dialer = Mock()
    dialer.is_configured = Mock(return_value=True)
    dialer.dial = AsyncMock(return_value="CA555")
    dialer.hang_up = AsyncMock()
    return dialer


@pytest.fixture
def override_get_db(test_db):
    """Override get_db dependency with test database."""
    async def _override_get_db():
        yield test_db
    return _override_get_db


@pytest.fixture
def test_client(
    override_get_db,
    fake_ai_manager,
    mock_notifier,
    mock_speech_service,
    stream_manager,
    chat_service,
    mock_dialer,
):
    """Create FastAPI test client with overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_manager] = lambda: fake_ai_manager
    app.dependency_overrides[get_notification_gateway] = lambda: mock_notifier
    app.dependency_overrides[get_speech_service] = lambda: mock_speech_service
    app.dependency_overrides[get_media_stream_manager] = lambda: stream_manager
    app.dependency_overrides[get_chat_suggestion_service] = lambda: chat_service
    app.dependency_overrides[get_call_dialer] = lambda: mock_dialer

    client = TestClient(app)

    yield client

    # Clear overrides
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clean_stream_sessions():
    """Clean up media stream sessions before and after tests."""
    from app.services.call_session import manager
    manager._sessions.clear()
    yield
    manager._sessions.clear()


@pytest.fixture
def provider_factory():
    """Build scripted providers: provider_factory("OpenAI", fail=True)."""
    return FakeProvider
