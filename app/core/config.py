"""Application configuration."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str

    # LLM providers (a provider is enabled when its key is set)
    openai_api_key: Optional[str] = None
    claude_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    perplexity_api_key: Optional[str] = None

    openai_model: str = "gpt-4o-mini"
    claude_model: str = "claude-3-5-sonnet-20241022"
    gemini_model: str = "gemini-1.5-flash"
    perplexity_model: str = "llama-3.1-sonar-large-128k-online"

    ai_timeout_seconds: float = 10.0
    ai_max_tokens: int = 150

    # Deepgram
    deepgram_api_key: Optional[str] = None
    deepgram_model: str = "nova-2"
    deepgram_language: str = "pt-BR"

    # Twilio
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    # Caller ID for outbound calls
    twilio_phone_number: Optional[str] = None

    # Public URL used to build the media stream URL (e.g. behind ngrok)
    base_url: Optional[str] = None

    # Socket fan-out
    redis_url: Optional[str] = None
    frontend_url: str = "http://localhost:3000"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
