"""OpenAI provider."""
import time
from typing import Any, Dict, Optional
from openai import AsyncOpenAI

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


class OpenAIProvider(AIProvider):
    """Suggestions through the OpenAI chat completions API."""

    default_model = "gpt-4o-mini"
    suggestion_confidence = 0.9
    analysis_confidence = 0.85

    def __init__(self, config: ProviderConfig, name: str = "OpenAI", base_url: Optional[str] = None):
        super().__init__(config, name)
        self.client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=base_url,
            timeout=config.timeout,
        )

    async def generate_suggestion(
        self, transcript: str, context: Optional[Dict[str, Any]] = None
    ) -> AISuggestion:
        start = time.monotonic()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SUGGESTION_SYSTEM_PROMPT},
                    {"role": "user", "content": build_suggestion_prompt(transcript, context)},
                ],
                max_tokens=self.config.max_tokens,
                temperature=0.7,
            )
        except Exception as e:
            raise ProviderError(self.name, str(e)) from e

        usage = getattr(response, "usage", None)
        return AISuggestion(
            text=(response.choices[0].message.content or "").strip() or "No suggestion",
            confidence=self.suggestion_confidence,
            provider=self.name,
            latency_ms=int((time.monotonic() - start) * 1000),
            tokens_used=getattr(usage, "total_tokens", None),
        )

    async def analyze_conversation(
        self, transcript: str, context: Optional[Dict[str, Any]] = None
    ) -> AIAnalysis:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": ANALYSIS_PROMPT},
                    {"role": "user", "content": transcript},
                ],
                max_tokens=300,
            )
            return parse_analysis(
                response.choices[0].message.content or "{}",
                self.name,
                self.analysis_confidence,
            )
        except Exception as e:
            raise ProviderError(self.name, f"analysis failed: {e}") from e

    async def health_check(self) -> bool:
        try:
            await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": "test"}],
                max_tokens=10,
            )
            return True
        except Exception:
            return False
