"""Unit tests for the Deepgram speech-to-text adapter."""
import asyncio
import json
import pytest
from unittest.mock import AsyncMock, patch

from app.core.errors import SpeechToTextError
from app.services.speech.stt import (
    DeepgramLiveSession,
    SpeechToTextService,
    parse_live_message,
)


def results_message(text: str, is_final: bool = True) -> str:
    return json.dumps({
        "type": "Results",
        "is_final": is_final,
        "channel": {"alternatives": [{"transcript": text, "confidence": 0.97, "words": []}]},
    })


class FakeWebSocket:
    """Deepgram socket double: yields scripted messages, then stays open."""

    def __init__(self, messages=None):
        self.messages = list(messages or [])
        self.send = AsyncMock()
        self.close = AsyncMock()
        self._open = asyncio.Event()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        await self._open.wait()


class TestParseLiveMessage:
    """Test mapping of Deepgram live messages."""

    def test_final_result(self):
        """Test a final result becomes a final chunk."""
        chunk = parse_live_message(results_message("bom dia"))

        assert chunk.text == "bom dia"
        assert chunk.is_final is True
        assert chunk.confidence == 0.97

    def test_interim_result(self):
        """Test interim results are flagged as not final."""
        chunk = parse_live_message(results_message("bom", is_final=False))

        assert chunk.is_final is False

    def test_empty_transcript_ignored(self):
        """Test silence produces no chunk."""
        assert parse_live_message(results_message("   ")) is None

    def test_other_message_types_ignored(self):
        """Test metadata and VAD events produce no chunk."""
        assert parse_live_message({"type": "Metadata"}) is None
        assert parse_live_message({"type": "SpeechStarted"}) is None


class TestDeepgramLiveSession:
    """Test the live session lifecycle."""

    def test_url_carries_telephony_audio_format(self):
        """Test the listen URL asks for mulaw 8kHz mono."""
        session = DeepgramLiveSession("dg-key", AsyncMock())

        assert session.url.startswith("wss://api.deepgram.com/v1/listen?")
        assert "encoding=mulaw" in session.url
        assert "sample_rate=8000" in session.url
        assert "utterance_end_ms=1000" in session.url

    @pytest.mark.asyncio
    async def test_transcripts_delivered_to_callback(self):
        """Test results received on the socket reach the callback."""
        on_transcript = AsyncMock()
        fake_ws = FakeWebSocket([results_message("quero um orçamento")])
        session = DeepgramLiveSession("dg-key", on_transcript)

        with patch("app.services.speech.stt.websockets.connect", AsyncMock(return_value=fake_ws)):
            await session.connect()

        for _ in range(5):
            await asyncio.sleep(0)

        on_transcript.assert_awaited_once()
        assert on_transcript.call_args.args[0].text == "quero um orçamento"
        await session.finish()

    @pytest.mark.asyncio
    async def test_error_message_reported(self):
        """Test vendor Error messages go to the error callback."""
        on_error = AsyncMock()
        fake_ws = FakeWebSocket([json.dumps({"type": "Error", "description": "bad audio"})])
        session = DeepgramLiveSession("dg-key", AsyncMock(), on_error)

        with patch("app.services.speech.stt.websockets.connect", AsyncMock(return_value=fake_ws)):
            await session.connect()

        for _ in range(5):
            await asyncio.sleep(0)

        on_error.assert_awaited_once()
        assert isinstance(on_error.call_args.args[0], SpeechToTextError)
        await session.finish()

    @pytest.mark.asyncio
    async def test_finish_is_idempotent(self):
        """Test the vendor sees a single close however often finish is called."""
        fake_ws = FakeWebSocket()
        session = DeepgramLiveSession("dg-key", AsyncMock())

        with patch("app.services.speech.stt.websockets.connect", AsyncMock(return_value=fake_ws)):
            await session.connect()

        await session.finish()
        await session.finish()

        fake_ws.send.assert_awaited_once_with(json.dumps({"type": "CloseStream"}))
        fake_ws.close.assert_awaited_once()
        assert session.is_open is False

    @pytest.mark.asyncio
    async def test_audio_after_finish_dropped(self):
        """Test frames sent after finish never reach the socket."""
        fake_ws = FakeWebSocket()
        session = DeepgramLiveSession("dg-key", AsyncMock())

        with patch("app.services.speech.stt.websockets.connect", AsyncMock(return_value=fake_ws)):
            await session.connect()

        await session.send_audio(b"\xff\x7f")
        await session.finish()
        await session.send_audio(b"\xff\x7f")

        audio_sends = [c for c in fake_ws.send.call_args_list if c.args[0] == b"\xff\x7f"]
        assert len(audio_sends) == 1

    @pytest.mark.asyncio
    async def test_connection_failure_raises(self):
        """Test a refused connection surfaces as SpeechToTextError."""
        session = DeepgramLiveSession("dg-key", AsyncMock())

        with patch(
            "app.services.speech.stt.websockets.connect",
            AsyncMock(side_effect=OSError("refused")),
        ):
            with pytest.raises(SpeechToTextError):
                await session.connect()


class TestSpeechToTextService:
    """Test the STT service factory."""

    @pytest.mark.asyncio
    async def test_unconfigured_service_raises(self):
        """Test live sessions need an API key."""
        service = SpeechToTextService(None)

        assert service.is_configured() is False
        with pytest.raises(SpeechToTextError):
            await service.create_live_session(AsyncMock())

    @pytest.mark.asyncio
    async def test_transcribe_url_unconfigured(self):
        """Test recording transcription needs an API key."""
        with pytest.raises(SpeechToTextError):
            await SpeechToTextService("").transcribe_url("https://example.com/rec.wav")
