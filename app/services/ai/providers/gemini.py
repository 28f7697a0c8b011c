"""Google Gemini provider."""
import time
from typing import Any, Dict, Optional
from google import genai
from google.genai import types

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


class GeminiProvider(AIProvider):
    """Suggestions through the google-genai async client."""

    default_model = "gemini-1.5-flash"

    def __init__(self, config: ProviderConfig):
        super().__init__(config, "Gemini")
        self.client = genai.Client(api_key=config.api_key)

    async def generate_suggestion(
        self, transcript: str, context: Optional[Dict[str, Any]] = None
    ) -> AISuggestion:
        start = time.monotonic()
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=build_suggestion_prompt(transcript, context),
                config=types.GenerateContentConfig(
                    system_instruction=SUGGESTION_SYSTEM_PROMPT,
                    max_output_tokens=self.config.max_tokens,
                    temperature=0.7,
                ),
            )
        except Exception as e:
            raise ProviderError(self.name, str(e)) from e

        usage = getattr(response, "usage_metadata", None)
        return AISuggestion(
            text=(response.text or "").strip() or "No suggestion",
            confidence=0.87,
            provider=self.name,
            latency_ms=int((time.monotonic() - start) * 1000),
            tokens_used=getattr(usage, "total_token_count", None),
        )

    async def analyze_conversation(
        self, transcript: str, context: Optional[Dict[str, Any]] = None
    ) -> AIAnalysis:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=f"{ANALYSIS_PROMPT}\n\nConversation: {transcript}",
                config=types.GenerateContentConfig(
                    max_output_tokens=300,
                    response_mime_type="application/json",
                ),
            )
            return parse_analysis(response.text or "{}", self.name, 0.83)
        except Exception as e:
            raise ProviderError(self.name, f"analysis failed: {e}") from e

    async def health_check(self) -> bool:
        try:
            await self.client.aio.models.generate_content(model=self.model, contents="test")
            return True
        except Exception:
            return False
