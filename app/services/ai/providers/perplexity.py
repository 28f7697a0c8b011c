"""Perplexity provider (OpenAI-compatible API)."""
from app.services.ai.providers.base import ProviderConfig
from app.services.ai.providers.openai_provider import OpenAIProvider

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"


class PerplexityProvider(OpenAIProvider):
    """Suggestions through Perplexity's OpenAI-compatible endpoint."""

    default_model = "llama-3.1-sonar-large-128k-online"
    suggestion_confidence = 0.85
    analysis_confidence = 0.8

    def __init__(self, config: ProviderConfig):
        super().__init__(config, name="Perplexity", base_url=PERPLEXITY_BASE_URL)
