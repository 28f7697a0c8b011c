"""Speech-to-text service (Deepgram streaming and prerecorded)."""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlencode

import httpx
import websockets
from pydantic import BaseModel

from app.core.errors import SpeechToTextError

logger = logging.getLogger(__name__)

DEEPGRAM_LISTEN_URL = "https://api.deepgram.com/v1/listen"
DEEPGRAM_LIVE_URL = "wss://api.deepgram.com/v1/listen"


class TranscriptChunk(BaseModel):
    """One transcript result from the STT vendor."""

    text: str
    is_final: bool = False
    confidence: float = 0.0
    words: List[Dict[str, Any]] = []


TranscriptCallback = Callable[[TranscriptChunk], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]


def parse_live_message(raw: Any) -> Optional[TranscriptChunk]:
    """Map a Deepgram live ``Results`` message to a transcript chunk.

    Returns None for other message types and for results with no text.
    """
    data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    if data.get("type", "Results") != "Results":
        return None

    alternatives = (data.get("channel") or {}).get("alternatives") or []
    if not alternatives:
        return None

    best = alternatives[0]
    text = (best.get("transcript") or "").strip()
    if not text:
        return None

    return TranscriptChunk(
        text=text,
        is_final=bool(data.get("is_final", False)),
        confidence=best.get("confidence") or 0.0,
        words=best.get("words") or [],
    )


class DeepgramLiveSession:
    """Streaming transcription session for one phone call.

    Audio is mulaw 8kHz mono, which is what Twilio media streams carry.
    """

    def __init__(
        self,
        api_key: str,
        on_transcript: TranscriptCallback,
        on_error: Optional[ErrorCallback] = None,
        model: str = "nova-2",
        language: str = "pt-BR",
        encoding: str = "mulaw",
        sample_rate: int = 8000,
    ):
        self.api_key = api_key
        self._on_transcript = on_transcript
        self._on_error = on_error
        self.options = {
            "model": model,
            "language": language,
            "smart_format": "true",
            "interim_results": "true",
            "utterance_end_ms": 1000,
            "vad_events": "true",
            "encoding": encoding,
            "sample_rate": sample_rate,
            "channels": 1,
        }
        self.ws = None
        self._receive_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def url(self) -> str:
        return f"{DEEPGRAM_LIVE_URL}?{urlencode(self.options)}"

    @property
    def is_open(self) -> bool:
        return self.ws is not None and not self._closed

    async def connect(self) -> None:
        try:
            self.ws = await websockets.connect(
                self.url,
                additional_headers={"Authorization": f"Token {self.api_key}"},
                ping_interval=5,
                ping_timeout=20,
            )
        except Exception as e:
            logger.error(f"[STT] Deepgram connection failed: {e}")
            raise SpeechToTextError(f"Deepgram connection failed: {e}") from e

        self._receive_task = asyncio.create_task(self._receive_loop())
        logger.info("[STT] Deepgram live session opened")

    async def _receive_loop(self) -> None:
        try:
            async for message in self.ws:
                await self._handle_message(message)
        except websockets.ConnectionClosed as e:
            logger.info(f"[STT] Deepgram live session closed: {e}")
        except Exception as e:
            logger.error(f"[STT] Deepgram receive error: {e}", exc_info=True)
            await self._report_error(e)

    async def _handle_message(self, raw: Any) -> None:
        data = json.loads(raw)
        if data.get("type") == "Error":
            await self._report_error(
                SpeechToTextError(data.get("description") or data.get("message") or str(data))
            )
            return

        chunk = parse_live_message(data)
        if chunk:
            await self._on_transcript(chunk)

    async def _report_error(self, error: Exception) -> None:
        logger.error(f"[STT] Deepgram error: {error}")
        if self._on_error:
            await self._on_error(error)

    async def send_audio(self, audio: bytes) -> None:
        """Forward one raw audio frame. Frames sent after finish are dropped."""
        if not self.is_open:
            return
        try:
            await self.ws.send(audio)
        except Exception as e:
            logger.error(f"[STT] Deepgram send error: {e}")

    async def finish(self) -> None:
        """Flush and close the session. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        if self.ws is not None:
            try:
                await self.ws.send(json.dumps({"type": "CloseStream"}))
                await self.ws.close()
            except Exception as e:
                logger.warning(f"[STT] Error closing Deepgram session: {e}")

        if self._receive_task:
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
        logger.info("[STT] Deepgram live session finished")


class SpeechToTextService:
    """Factory for live STT sessions plus post-call transcription."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "nova-2",
        language: str = "pt-BR",
    ):
        self.api_key = api_key
        self.model = model
        self.language = language
        if not api_key:
            logger.warning("[STT] Deepgram API key not configured")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def create_live_session(
        self,
        on_transcript: TranscriptCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> DeepgramLiveSession:
        """Open a streaming session that accepts raw mulaw audio frames."""
        if not self.is_configured():
            raise SpeechToTextError("Deepgram not configured")

        session = DeepgramLiveSession(
            self.api_key,
            on_transcript,
            on_error,
            model=self.model,
            language=self.language,
        )
        await session.connect()
        return session

    async def transcribe_url(self, recording_url: str) -> str:
        """
        Transcribe a recording URL after the call.

        Args:
            recording_url: Public URL of the recording

        Returns:
            Transcribed text (empty string when nothing was recognized)
        """
        if not self.is_configured():
            raise SpeechToTextError("Deepgram not configured")

        params = {
            "model": self.model,
            "language": self.language,
            "smart_format": "true",
            "punctuate": "true",
        }
        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.post(
                DEEPGRAM_LISTEN_URL,
                params=params,
                headers={"Authorization": f"Token {self.api_key}"},
                json={"url": recording_url},
            )
            if response.status_code >= 400:
                raise SpeechToTextError(
                    f"Deepgram transcription failed ({response.status_code}): {response.text}"
                )
            data = response.json()

        channels = (data.get("results") or {}).get("channels") or []
        if not channels:
            return ""
        alternatives = channels[0].get("alternatives") or []
        return alternatives[0].get("transcript", "") if alternatives else ""
