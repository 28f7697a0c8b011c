"""AI provider interface.

Every LLM vendor is wrapped behind :class:`AIProvider` so the manager can
swap, fall back and balance between them without knowing vendor SDKs.
"""
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel

SUGGESTION_SYSTEM_PROMPT = (
    "You are an expert sales coach analyzing calls in real-time. "
    "Provide ONE concise, actionable suggestion."
)

ANALYSIS_PROMPT = (
    "Analyze this sales conversation and return ONLY valid JSON with: "
    "sentiment (positive/neutral/negative), keyPoints (array), "
    "suggestedActions (array)."
)


class ProviderConfig(BaseModel):
    """Provider connection settings."""

    api_key: str
    model: Optional[str] = None
    timeout: float = 10.0
    max_tokens: int = 150


class AISuggestion(BaseModel):
    """Suggestion returned by a provider."""

    text: str
    confidence: float
    provider: str
    latency_ms: int
    tokens_used: Optional[int] = None


class AIAnalysis(BaseModel):
    """Conversation analysis returned by a provider."""

    sentiment: Literal["positive", "neutral", "negative"]
    key_points: List[str] = []
    suggested_actions: List[str] = []
    confidence: float
    provider: str


class AIProvider(ABC):
    """Abstract base class for LLM providers."""

    default_model: str = ""

    def __init__(self, config: ProviderConfig, name: str):
        self.config = config
        self.name = name

    @property
    def model(self) -> str:
        return self.config.model or self.default_model

    @abstractmethod
    async def generate_suggestion(
        self, transcript: str, context: Optional[Dict[str, Any]] = None
    ) -> AISuggestion:
        """Generate a sales suggestion for the latest customer utterance."""
        pass

    @abstractmethod
    async def analyze_conversation(
        self, transcript: str, context: Optional[Dict[str, Any]] = None
    ) -> AIAnalysis:
        """Analyze sentiment and key points of a conversation."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check whether the provider answers."""
        pass


def build_suggestion_prompt(transcript: str, context: Optional[Dict[str, Any]] = None) -> str:
    """Build the user prompt for a suggestion request."""
    context = context or {}
    prompt = f'Customer said: "{transcript}"\n\n'

    recent = context.get("recent_transcript") or context.get("conversation_history")
    if recent:
        prompt += f"Recent conversation:\n{recent}\n\n"

    if context.get("sentiment"):
        prompt += f"Customer sentiment: {context['sentiment']}\n"

    prompt += "Provide ONE specific suggestion for the salesperson:"
    return prompt


def parse_analysis(text: str, provider: str, confidence: float) -> AIAnalysis:
    """Parse the JSON analysis returned by a model.

    Tolerates markdown code fences around the JSON. Raises ``ValueError`` when
    the content is not a JSON object.
    """
    content = (text or "").strip()
    if content.startswith("```"):
        content = content.strip("`")
        if content.lower().startswith("json"):
            content = content[4:]
        content = content.strip()

    data = json.loads(content or "{}")
    if not isinstance(data, dict):
        raise ValueError("Analysis is not a JSON object")

    sentiment = data.get("sentiment", "neutral")
    if sentiment not in ("positive", "neutral", "negative"):
        sentiment = "neutral"

    return AIAnalysis(
        sentiment=sentiment,
        key_points=data.get("keyPoints") or data.get("key_points") or [],
        suggested_actions=data.get("suggestedActions") or data.get("suggested_actions") or [],
        confidence=confidence,
        provider=provider,
    )
