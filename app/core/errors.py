"""Application exceptions."""


class ProviderError(Exception):
    """Raised by an LLM provider adapter when its vendor call fails."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider} error: {message}")
        self.provider = provider


class SpeechToTextError(Exception):
    """Raised when the speech-to-text vendor is unavailable or rejects a request."""


class TelephonyError(Exception):
    """Raised when Twilio is not configured or rejects a call request."""
