"""Media stream session models."""
from enum import Enum
from typing import List, Optional

from app.services.speech.stt import DeepgramLiveSession

CONTEXT_WINDOW_SIZE = 5


class StreamState(str, Enum):
    """Lifecycle of a media stream."""

    NONE = "none"
    STREAMING = "streaming"
    ENDED = "ended"


class MediaStreamSession:
    """In-memory state of one active Twilio media stream."""

    def __init__(
        self,
        stream_sid: str,
        call_sid: str,
        call_id: int,
        user_id: str,
        company_id: int,
        stt_session: Optional[DeepgramLiveSession] = None,
    ):
        self.stream_sid = stream_sid
        self.call_sid = call_sid
        self.call_id = call_id  # Database ID
        self.user_id = user_id
        self.company_id = company_id
        self.stt_session = stt_session
        self.transcript: List[str] = []
        self.state = StreamState.NONE

    def add_utterance(self, text: str) -> None:
        self.transcript.append(text)

    def context_window(self, size: int = CONTEXT_WINDOW_SIZE) -> List[str]:
        """The last ``size`` finalized utterances."""
        return self.transcript[-size:]

    def get_transcript_text(self) -> str:
        return " ".join(self.transcript)
