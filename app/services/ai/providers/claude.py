"""Anthropic Claude provider."""
import time
from typing import Any, Dict, Optional
import anthropic

from app.core.errors import ProviderError
from app.services.ai.providers.base import (
    AIAnalysis,
    AIProvider,
    AISuggestion,
    ANALYSIS_PROMPT,
    ProviderConfig,
    SUGGESTION_SYSTEM_PROMPT,
    build_suggestion_prompt,
    parse_analysis,
)


def _first_text(response: Any, default: str) -> str:
    blocks = getattr(response, "content", None) or []
    if blocks and getattr(blocks[0], "type", None) == "text":
        return blocks[0].text
    return default


class ClaudeProvider(AIProvider):
    """Suggestions through the Anthropic messages API."""

    default_model = "claude-3-5-sonnet-20241022"

    def __init__(self, config: ProviderConfig):
        super().__init__(config, "Claude")
        self.client = anthropic.AsyncAnthropic(
            api_key=config.api_key,
            timeout=config.timeout,
        )

    async def generate_suggestion(
        self, transcript: str, context: Optional[Dict[str, Any]] = None
    ) -> AISuggestion:
        start = time.monotonic()
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.config.max_tokens,
                system=SUGGESTION_SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": build_suggestion_prompt(transcript, context)}
                ],
            )
        except Exception as e:
            raise ProviderError(self.name, str(e)) from e

        usage = getattr(response, "usage", None)
        tokens = None
        if usage is not None:
            tokens = usage.input_tokens + usage.output_tokens

        return AISuggestion(
            text=_first_text(response, "").strip() or "No suggestion",
            confidence=0.92,
            provider=self.name,
            latency_ms=int((time.monotonic() - start) * 1000),
            tokens_used=tokens,
        )

    async def analyze_conversation(
        self, transcript: str, context: Optional[Dict[str, Any]] = None
    ) -> AIAnalysis:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=300,
                messages=[
                    {
                        "role": "user",
                        "content": f"{ANALYSIS_PROMPT}\n\nConversation: {transcript}",
                    }
                ],
            )
            return parse_analysis(_first_text(response, "{}"), self.name, 0.88)
        except Exception as e:
            raise ProviderError(self.name, f"analysis failed: {e}") from e

    async def health_check(self) -> bool:
        try:
            await self.client.messages.create(
                model=self.model,
                max_tokens=10,
                messages=[{"role": "user", "content": "test"}],
            )
            return True
        except Exception:
            return False
