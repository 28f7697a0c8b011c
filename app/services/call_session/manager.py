"""Media stream session manager.

Twilio media stream -> Deepgram live STT -> AI manager -> suggestion row ->
operator socket. One in-memory session per active stream SID.
"""
import asyncio
import base64
import binascii
import logging
from datetime import datetime
from typing import Any, Awaitable, Dict, Iterable, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import Suggestion
from app.services.ai.manager import AIManager
from app.services.call_session.models import MediaStreamSession, StreamState
from app.services.notifications.gateway import NotificationGateway
from app.services.persistence.calls import CallPersistenceService
from app.services.persistence.suggestions import SuggestionPersistenceService
from app.services.speech.stt import SpeechToTextService, TranscriptChunk

logger = logging.getLogger(__name__)

# Module-level session storage (persists across websocket connections)
# Lost on restart; an external store would be needed for multi-instance resume
_sessions: Dict[str, MediaStreamSession] = {}


class MediaStreamManager:
    """Runs the per-stream state machine: NONE -> STREAMING -> ENDED."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ai_manager: AIManager,
        notifier: NotificationGateway,
        speech_service: SpeechToTextService,
    ):
        self.session_factory = session_factory
        self.ai_manager = ai_manager
        self.notifier = notifier
        self.speech_service = speech_service
        self._pending: Set[asyncio.Task] = set()

    def get_session(self, stream_sid: str) -> Optional[MediaStreamSession]:
        return _sessions.get(stream_sid)

    def active_stream_count(self) -> int:
        return len(_sessions)

    async def handle_message(self, message: Dict[str, Any]) -> Optional[str]:
        """Dispatch one Twilio media stream message. Returns its stream SID."""
        event = message.get("event")
        if event == "start":
            await self.handle_start(message)
        elif event == "media":
            await self.handle_media(message)
        elif event == "stop":
            await self.handle_stop(message)
        elif event != "connected":
            logger.debug(f"[MEDIA STREAM] Ignoring event: {event}")
        return message.get("streamSid")

    async def handle_start(self, message: Dict[str, Any]) -> Optional[MediaStreamSession]:
        start = message.get("start") or {}
        stream_sid = message.get("streamSid") or start.get("streamSid")
        call_sid = start.get("callSid")

        if not stream_sid or not call_sid:
            logger.warning(f"[MEDIA STREAM] Start event without stream/call SID: {message}")
            return None

        if stream_sid in _sessions:
            logger.warning(f"[MEDIA STREAM] Duplicate start for stream {stream_sid}")
            return _sessions[stream_sid]

        logger.info(f"[MEDIA STREAM] Stream started: {stream_sid} for call: {call_sid}")

        async with self.session_factory() as db:
            call = await CallPersistenceService(db).get_call_by_sid(call_sid)

        if not call:
            logger.warning(f"[MEDIA STREAM] Call not found for SID: {call_sid}")
            return None

        session = MediaStreamSession(
            stream_sid=stream_sid,
            call_sid=call_sid,
            call_id=call.id,
            user_id=call.user_id,
            company_id=call.company_id,
        )

        async def on_transcript(chunk: TranscriptChunk) -> None:
            self.handle_transcript(stream_sid, chunk)

        async def on_error(error: Exception) -> None:
            logger.error(f"[MEDIA STREAM] STT error on stream {stream_sid}: {error}")

        try:
            session.stt_session = await self.speech_service.create_live_session(
                on_transcript, on_error
            )
        except Exception as e:
            logger.error(
                f"[MEDIA STREAM] Could not open STT session for stream {stream_sid}: {e}",
                exc_info=True,
            )
            return None

        session.state = StreamState.STREAMING
        _sessions[stream_sid] = session

        try:
            await self.notifier.send_call_status_update(
                session.user_id,
                {"callId": session.call_id, "status": "in_progress", "streamSid": stream_sid},
            )
        except Exception as e:
            logger.warning(f"[MEDIA STREAM] Could not push call status for stream {stream_sid}: {e}")

        return session

    async def handle_media(self, message: Dict[str, Any]) -> None:
        session = _sessions.get(message.get("streamSid"))
        if not session or not session.stt_session:
            return

        payload = (message.get("media") or {}).get("payload")
        if not payload:
            return

        try:
            audio = base64.b64decode(payload)
        except (binascii.Error, ValueError):
            logger.warning(f"[MEDIA STREAM] Invalid audio payload on stream {session.stream_sid}")
            return

        await session.stt_session.send_audio(audio)

    def handle_transcript(self, stream_sid: str, chunk: TranscriptChunk) -> Optional[asyncio.Task]:
        """Record a finalized utterance and schedule a suggestion for it.

        The utterance is appended before this returns, so a stop handled right
        after the callback still writes it back. Interim, empty and post-stop
        chunks are ignored. Returns the scheduled suggestion task.
        """
        session = _sessions.get(stream_sid)
        if not session or session.state != StreamState.STREAMING:
            return None
        if not chunk.is_final or not chunk.text.strip():
            return None

        session.add_utterance(chunk.text)
        logger.info(f"[MEDIA STREAM] Transcript ({stream_sid}): '{chunk.text}'")

        window = session.context_window()
        context = {
            "recent_transcript": " ".join(window),
            "recent_utterances": window,
            "type": "sales_call",
        }
        return self._schedule(self.process_utterance(session, chunk.text, context))

    async def process_utterance(
        self, session: MediaStreamSession, text: str, context: Dict[str, Any]
    ) -> Optional[Suggestion]:
        """Generate, persist and push a suggestion for one utterance.

        A suggestion that completes after the stream ended is still persisted
        and pushed. Failures are logged and never propagate to the stream.
        """
        try:
            suggestion = await self.ai_manager.generate_suggestion(text, context)
            if not suggestion.text:
                return None

            async with self.session_factory() as db:
                record = await SuggestionPersistenceService(db).create_suggestion(
                    user_id=session.user_id,
                    call_id=session.call_id,
                    content=suggestion.text,
                    confidence=suggestion.confidence,
                    trigger_text=text,
                    provider=suggestion.provider,
                    latency_ms=suggestion.latency_ms,
                )

            await self.notifier.send_ai_suggestion(
                session.user_id,
                {
                    "suggestionId": record.id,
                    "callId": session.call_id,
                    "transcript": text,
                    "suggestion": suggestion.text,
                    "confidence": suggestion.confidence,
                    "provider": suggestion.provider,
                    "timestamp": datetime.utcnow().isoformat(),
                },
            )
            return record
        except Exception as e:
            logger.error(
                f"[MEDIA STREAM] Error generating AI suggestion for stream "
                f"{session.stream_sid}: {e}",
                exc_info=True,
            )
            return None

    async def handle_stop(self, message: Dict[str, Any]) -> Optional[MediaStreamSession]:
        stream_sid = message.get("streamSid")
        # Removed first so a repeated stop is a no-op
        session = _sessions.pop(stream_sid, None)
        if not session:
            return None

        logger.info(f"[MEDIA STREAM] Stream stopped: {stream_sid}")
        session.state = StreamState.ENDED

        if session.stt_session:
            try:
                await session.stt_session.finish()
            except Exception as e:
                logger.warning(f"[MEDIA STREAM] Error finishing STT session {stream_sid}: {e}")

        transcript = session.get_transcript_text()
        if transcript:
            try:
                async with self.session_factory() as db:
                    await CallPersistenceService(db).update_call_transcript(
                        session.call_id, transcript
                    )
            except Exception as e:
                logger.error(
                    f"[MEDIA STREAM] Failed to save transcript for call {session.call_id}: {e}",
                    exc_info=True,
                )

        return session

    async def close_streams(self, stream_sids: Iterable[str]) -> None:
        """End streams whose telephony socket dropped without a stop event."""
        for stream_sid in list(stream_sids):
            if stream_sid in _sessions:
                logger.info(f"[MEDIA STREAM] Socket dropped, closing stream {stream_sid}")
                await self.handle_stop({"streamSid": stream_sid})

    def _schedule(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight suggestion tasks."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
