"""AI provider manager: ordered fallback and round-robin balancing."""
import logging
from typing import Any, Dict, List, Optional

from app.core.config import Settings
from app.services.ai.providers.base import (
    AIAnalysis,
    AIProvider,
    AISuggestion,
    ProviderConfig,
)

logger = logging.getLogger(__name__)

FALLBACK_ORDER = ["openai", "claude", "gemini", "perplexity"]

MOCK_SUGGESTION_TEXT = (
    "Continue listening actively and ask clarifying questions about their needs."
)


class AIManager:
    """Holds the configured providers and picks one per request.

    A request is never failed back to the caller: when every provider raises,
    a fixed low-confidence mock is returned instead.
    """

    def __init__(self, providers: Dict[str, AIProvider]):
        self.providers = providers
        self._rotation_index = 0

        if not self.providers:
            logger.warning("[AI MANAGER] No AI providers configured - using mock mode")

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIManager":
        """Build providers for every API key present in settings."""
        from app.services.ai.providers.claude import ClaudeProvider
        from app.services.ai.providers.gemini import GeminiProvider
        from app.services.ai.providers.openai_provider import OpenAIProvider
        from app.services.ai.providers.perplexity import PerplexityProvider

        candidates = {
            "openai": (OpenAIProvider, settings.openai_api_key, settings.openai_model),
            "claude": (ClaudeProvider, settings.claude_api_key, settings.claude_model),
            "gemini": (GeminiProvider, settings.gemini_api_key, settings.gemini_model),
            "perplexity": (PerplexityProvider, settings.perplexity_api_key, settings.perplexity_model),
        }

        providers: Dict[str, AIProvider] = {}
        for key in FALLBACK_ORDER:
            provider_cls, api_key, model = candidates[key]
            if not api_key:
                continue
            providers[key] = provider_cls(
                ProviderConfig(
                    api_key=api_key,
                    model=model,
                    timeout=settings.ai_timeout_seconds,
                    max_tokens=settings.ai_max_tokens,
                )
            )
            logger.info(f"[AI MANAGER] {key} provider initialized")

        return cls(providers)

    def available_providers(self) -> List[str]:
        return list(self.providers.keys())

    async def generate_suggestion(
        self,
        transcript: str,
        context: Optional[Dict[str, Any]] = None,
        preferred_provider: Optional[str] = None,
    ) -> AISuggestion:
        """Generate a suggestion, trying the preferred provider first.

        Falls through the static order of the remaining providers on failure;
        returns the mock when every provider failed. Each provider gets a
        single attempt.
        """
        attempted = None
        if preferred_provider and preferred_provider in self.providers:
            attempted = preferred_provider
            try:
                return await self.providers[preferred_provider].generate_suggestion(
                    transcript, context
                )
            except Exception as e:
                logger.error(
                    f"[AI MANAGER] {preferred_provider} failed, trying fallback: {e}"
                )

        for provider_name in FALLBACK_ORDER:
            provider = self.providers.get(provider_name)
            if not provider or provider_name == attempted:
                continue
            try:
                logger.info(f"[AI MANAGER] Trying provider: {provider_name}")
                return await provider.generate_suggestion(transcript, context)
            except Exception as e:
                logger.error(f"[AI MANAGER] {provider_name} failed: {e}")

        logger.warning("[AI MANAGER] All providers failed - returning mock suggestion")
        return self.mock_suggestion()

    async def analyze_conversation(
        self,
        transcript: str,
        context: Optional[Dict[str, Any]] = None,
        preferred_provider: Optional[str] = None,
    ) -> AIAnalysis:
        """Analyze a conversation with the same fallback policy as suggestions."""
        attempted = None
        if preferred_provider and preferred_provider in self.providers:
            attempted = preferred_provider
            try:
                return await self.providers[preferred_provider].analyze_conversation(
                    transcript, context
                )
            except Exception as e:
                logger.error(f"[AI MANAGER] {preferred_provider} analysis failed: {e}")

        for provider_name in FALLBACK_ORDER:
            provider = self.providers.get(provider_name)
            if not provider or provider_name == attempted:
                continue
            try:
                return await provider.analyze_conversation(transcript, context)
            except Exception as e:
                logger.error(f"[AI MANAGER] {provider_name} analysis failed: {e}")

        return self.mock_analysis()

    async def generate_suggestion_balanced(
        self, transcript: str, context: Optional[Dict[str, Any]] = None
    ) -> AISuggestion:
        """Round-robin across configured providers.

        A failed pick is retried through the ordered fallback, not through the
        next round-robin entry.
        """
        available = self.available_providers()
        if not available:
            return self.mock_suggestion()

        provider_name = available[self._rotation_index % len(available)]
        self._rotation_index += 1

        try:
            return await self.providers[provider_name].generate_suggestion(transcript, context)
        except Exception as e:
            logger.error(f"[AI MANAGER] Load balanced provider {provider_name} failed: {e}")
            return await self.generate_suggestion(transcript, context)

    async def health_check_all(self) -> Dict[str, bool]:
        results: Dict[str, bool] = {}
        for name, provider in self.providers.items():
            try:
                results[name] = await provider.health_check()
            except Exception:
                results[name] = False
        return results

    @staticmethod
    def mock_suggestion() -> AISuggestion:
        return AISuggestion(
            text=MOCK_SUGGESTION_TEXT,
            confidence=0.5,
            provider="mock",
            latency_ms=0,
        )

    @staticmethod
    def mock_analysis() -> AIAnalysis:
        return AIAnalysis(
            sentiment="neutral",
            key_points=["Customer inquiry received"],
            suggested_actions=["Follow up with more questions"],
            confidence=0.5,
            provider="mock",
        )
